"""Tests for the AnytimeMailbox directory scraper."""

import httpx
import pytest

from addrenrich.exceptions import DiscoveryError
from addrenrich.models.address import UNKNOWN
from addrenrich.services.scraping.directory_scraper import AnytimeMailboxDirectory

BASE_URL = "https://directory.test"

LOCATIONS_HTML = """
<html><body>
  <ul>
    <li><a href="/l/usa/texas">Texas</a></li>
    <li><a href="/l/usa/ohio/">Ohio</a></li>
    <li><a href="/l/usa/texas">Texas (again)</a></li>
    <li><a href="/l/usa/">All of USA</a></li>
    <li><a href="/l/can/ontario">Ontario</a></li>
    <li><a href="/pricing">Pricing</a></li>
  </ul>
</body></html>
"""

TEXAS_HTML = """
<html><body>
  <div class="theme-location-item">
    <a href="/s/austin-congress"><h3 class="t-title">Austin - Congress Ave</h3></a>
    <div class="t-price"><b>US$ 19.99/month</b></div>
    <div class="t-addr">100 Congress Ave Suite 200<br>Austin, TX 78701</div>
  </div>
  <div class="theme-location-item">
    <a href="/s/dallas-elm"><h3 class="t-title">Dallas - Elm St</h3></a>
    <div class="t-price"><b>Call for price</b></div>
    <div class="t-addr">1 Elm St<br/>Dallas TX 75201</div>
  </div>
  <div class="theme-location-item">
    <h3 class="t-title">Broken card</h3>
    <div class="t-addr">Somewhere in Texas</div>
  </div>
</body></html>
"""


def build_directory(pages: dict[str, tuple[int, str]]) -> AnytimeMailboxDirectory:
    def handler(request: httpx.Request) -> httpx.Response:
        status, body = pages.get(request.url.path, (404, "not found"))
        return httpx.Response(status, text=body)

    return AnytimeMailboxDirectory(BASE_URL, timeout=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_list_targets_unique_sorted_usa_states():
    """Test only US state slugs are returned, deduplicated and sorted."""
    async with build_directory({"/locations": (200, LOCATIONS_HTML)}) as directory:
        targets = await directory.list_targets()

    assert targets == ["ohio", "texas"]


@pytest.mark.asyncio
async def test_fetch_parses_location_cards():
    """Test each well-formed card becomes one raw address."""
    async with build_directory({"/l/usa/texas": (200, TEXAS_HTML)}) as directory:
        addresses = await directory.fetch("texas")

    assert len(addresses) == 2
    austin, dallas = addresses

    assert austin.title == "Austin - Congress Ave"
    assert austin.street == "100 Congress Ave Suite 200"
    assert austin.city == "Austin"
    assert austin.state == "TX"
    assert austin.zip == "78701"
    assert austin.price == "19.99"
    assert austin.link == f"{BASE_URL}/s/austin-congress"
    assert austin.cmra == UNKNOWN
    assert austin.rdi == UNKNOWN

    assert dallas.city == "Dallas"
    assert dallas.zip == "75201"
    assert dallas.price == ""


@pytest.mark.asyncio
async def test_fetch_empty_page_returns_nothing():
    """Test a state page without cards yields no addresses."""
    async with build_directory({"/l/usa/maine": (200, "<html><body></body></html>")}) as directory:
        assert await directory.fetch("maine") == []


@pytest.mark.asyncio
async def test_http_error_raises_discovery_error():
    """Test a failed page request surfaces as DiscoveryError."""
    async with build_directory({"/l/usa/texas": (500, "oops")}) as directory:
        with pytest.raises(DiscoveryError):
            await directory.fetch("texas")

        with pytest.raises(DiscoveryError):
            await directory.list_targets()
