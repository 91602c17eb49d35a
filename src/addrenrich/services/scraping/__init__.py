"""Discovery (scraping) services module."""

from addrenrich.services.scraping.directory_scraper import (
    AnytimeMailboxDirectory,
    DiscoverySourceProtocol,
)

__all__ = ["AnytimeMailboxDirectory", "DiscoverySourceProtocol"]
