"""AnytimeMailbox location directory scraper.

Discovery targets are US state slugs taken from the locations index. Each
state page lists mailbox locations as cards, which are parsed into raw
``Address`` records with their enrichment fields left at ``UNKNOWN``.
"""

import re
from typing import Protocol, Sequence

import httpx
import structlog
from bs4 import BeautifulSoup

from addrenrich.exceptions import DiscoveryError
from addrenrich.models.address import Address

logger = structlog.get_logger(__name__)

PRICE_RE = re.compile(r"\d+\.\d+")
STREET_RE = re.compile(r"(?i)(.*?)\s*<br\s*/?>\s*(.*?),?\s*([A-Z]{2})\s+(\d{5})")


class DiscoverySourceProtocol(Protocol):
    """Protocol for address discovery sources."""

    async def list_targets(self) -> list[str]:
        """List every discovery target."""
        ...

    async def fetch(self, target: str) -> Sequence[Address]:
        """Fetch raw address records for one target."""
        ...


class AnytimeMailboxDirectory:
    """
    Scraper for the public AnytimeMailbox US location directory.

    Usage:
        async with AnytimeMailboxDirectory() as directory:
            for state in await directory.list_targets():
                addresses = await directory.fetch(state)
    """

    LOCATIONS_PATH = "/locations"
    STATE_PATH_PREFIX = "/l/usa/"

    def __init__(
        self,
        base_url: str = "https://www.anytimemailbox.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get_html(self, path: str) -> str:
        client = await self._get_client()
        url = f"{self.base_url}{path}"
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DiscoveryError(f"Request to {url} failed: {e}") from e
        return response.text

    async def list_targets(self) -> list[str]:
        """Get the unique, sorted state slugs from the locations index."""
        logger.info("Fetching state list")
        soup = BeautifulSoup(await self._get_html(self.LOCATIONS_PATH), "html.parser")

        states = set()
        for anchor in soup.select(f'a[href^="{self.STATE_PATH_PREFIX}"]'):
            slug = anchor["href"][len(self.STATE_PATH_PREFIX):].strip("/").split("/")[0]
            if slug:
                states.add(slug)

        logger.info("Fetched state list", states=len(states))
        return sorted(states)

    async def fetch(self, target: str) -> list[Address]:
        """Get every mailbox location listed for one state."""
        logger.info("Fetching state locations", state=target)
        html = await self._get_html(f"{self.STATE_PATH_PREFIX}{target}")
        addresses = self._parse_locations(html, target)
        logger.info("Fetched state locations", state=target, addresses=len(addresses))
        return addresses

    def _parse_locations(self, html: str, target: str) -> list[Address]:
        """Parse location cards into addresses, skipping malformed ones."""
        soup = BeautifulSoup(html, "html.parser")
        addresses = []

        for card in soup.select(".theme-location-item"):
            title_el = card.select_one("h3.t-title")
            title = title_el.get_text(strip=True) if title_el else ""

            price = ""
            if price_el := card.select_one("div.t-price > b"):
                if match := PRICE_RE.search(price_el.get_text()):
                    price = match.group(0)

            addr_el = card.select_one("div.t-addr")
            street_match = STREET_RE.search(addr_el.decode_contents()) if addr_el else None
            if not street_match:
                logger.warning("Could not parse location address", state=target, title=title)
                continue

            anchor = card.select_one("a[href]")
            link = f"{self.base_url}{anchor['href']}" if anchor else ""

            street, city, state, zip_code = (part.strip() for part in street_match.groups())
            addresses.append(
                Address(
                    title=title,
                    street=street,
                    city=city,
                    state=state,
                    zip=zip_code,
                    link=link,
                    price=price,
                )
            )

        return addresses

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
