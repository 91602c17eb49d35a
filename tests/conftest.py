"""Shared fixtures and in-memory collaborators."""

import asyncio
from typing import AsyncIterable

import pytest

from addrenrich.exceptions import AddressNotFoundError, DiscoveryError, TransientProviderError
from addrenrich.models.address import Address
from addrenrich.schemas.credential import Credential
from addrenrich.services.enrichment.address_validator import ValidationResult


def make_address(n: int, state: str = "TX") -> Address:
    return Address(
        title=f"Location {n}",
        street=f"{n} Main St",
        city="Austin",
        state=state,
        zip="78701",
        link=f"https://example.test/l/{n}",
        price="9.99",
    )


def make_credentials(count: int) -> list[Credential]:
    return [Credential(auth_id=f"id-{i}", auth_token=f"token-{i}") for i in range(count)]


class FakeSource:
    """Discovery source backed by a dict of target -> addresses."""

    def __init__(self, pages: dict[str, list[Address]], failing: set[str] | None = None, delay: float = 0):
        self.pages = pages
        self.failing = failing or set()
        self.delay = delay
        self.fetched: list[str] = []

    async def list_targets(self) -> list[str]:
        return sorted(self.pages) + sorted(self.failing)

    async def fetch(self, target: str) -> list[Address]:
        self.fetched.append(target)
        if self.delay:
            await asyncio.sleep(self.delay)
        if target in self.failing:
            raise DiscoveryError(f"boom: {target}")
        return list(self.pages.get(target, []))


class FakeValidator:
    """
    Validator driven by a script of results per street.

    Each script entry is "ok", "not_found" or "transient". The last entry
    repeats once the script runs out. Streets without a script succeed.
    """

    def __init__(self, scripts: dict[str, list[str]] | None = None, delay: float = 0):
        self.scripts = scripts or {}
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def validate(self, credential, street, city, state, zip_code) -> ValidationResult:
        self.calls.append((credential.auth_id, street))
        if self.delay:
            await asyncio.sleep(self.delay)

        script = self.scripts.get(street, ["ok"])
        attempt = sum(1 for _, s in self.calls if s == street) - 1
        step = script[min(attempt, len(script) - 1)]

        if step == "not_found":
            raise AddressNotFoundError(street)
        if step == "transient":
            raise TransientProviderError("HTTP error: 500", status_code=500)
        return ValidationResult(cmra="Y", rdi="Commercial")


class RecordingSink:
    """Result sink that keeps everything it consumes."""

    def __init__(self):
        self.items: list = []

    async def consume(self, stream: AsyncIterable) -> int:
        async for item in stream:
            self.items.append(item)
        return len(self.items)


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakePrompt:
    """Replenisher that hands out pre-set batches, then refuses."""

    def __init__(self, batches: list[list[Credential]] | None = None):
        self.batches = list(batches or [])
        self.calls: list[int] = []

    async def __call__(self, min_count: int) -> list[Credential]:
        self.calls.append(min_count)
        return self.batches.pop(0) if self.batches else []


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def success_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failure_sink() -> RecordingSink:
    return RecordingSink()
