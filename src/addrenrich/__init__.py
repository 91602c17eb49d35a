"""Mailbox address discovery and enrichment pipeline."""

__version__ = "0.1.0"
