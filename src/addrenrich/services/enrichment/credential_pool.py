"""Rotating pool of validation provider credentials."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable

import structlog

from addrenrich.schemas.credential import Credential

logger = structlog.get_logger(__name__)

# Called with the minimum number of credentials wanted; an empty list is a refusal.
Replenisher = Callable[[int], Awaitable[list[Credential]]]


@dataclass(frozen=True)
class CredentialLease:
    """A credential handed to a worker, tagged with the cursor it came from."""

    credential: Credential
    index: int


class CredentialPool:
    """
    Ordered credentials with a single active cursor.

    The cursor only moves forward. It advances when the active credential has
    served ``quota`` lookups, or when a worker invalidates it after a provider
    failure. Once past the end the pool asks ``replenish`` for more; if that
    returns nothing the pool is exhausted for good and ``acquire`` returns None.

    All cursor and counter access happens under one asyncio lock, which stays
    held while waiting on ``replenish`` so only one replenishment round runs.

    Usage:
        pool = CredentialPool(store.load(), quota=1000, replenish=prompt.prompt_for_more)
        lease = await pool.acquire()
        if lease is None:
            ...  # exhausted
        ...
        await pool.invalidate(lease)
    """

    def __init__(
        self,
        credentials: Iterable[Credential],
        quota: int = 1000,
        replenish: Replenisher | None = None,
    ):
        if quota < 1:
            raise ValueError("quota must be >= 1")
        self.quota = quota
        self._credentials: list[Credential] = list(credentials)
        self._replenish = replenish
        self._cursor = 0
        self._usage = 0
        self._refused = False
        self._lock = asyncio.Lock()

    @property
    def cursor(self) -> int:
        """Index of the active credential (may equal len when exhausted)."""
        return self._cursor

    @property
    def usage(self) -> int:
        """Lookups served by the active credential."""
        return self._usage

    @property
    def exhausted(self) -> bool:
        """True once a replenishment request was refused."""
        return self._refused

    def __len__(self) -> int:
        return len(self._credentials)

    async def acquire(self) -> CredentialLease | None:
        """
        Get a usable credential, rotating or replenishing as needed.

        Returns:
            A lease on the active credential, or None when the pool is
            exhausted and no more credentials were provided.
        """
        async with self._lock:
            if self._usage >= self.quota and self._cursor < len(self._credentials):
                logger.info(
                    "Credential reached quota, rotating",
                    auth_id=self._credentials[self._cursor].auth_id,
                    quota=self.quota,
                )
                self._rotate()

            if self._cursor >= len(self._credentials):
                if not await self._replenish_locked():
                    return None

            credential = self._credentials[self._cursor]
            self._usage += 1
            credential.uses += 1
            return CredentialLease(credential=credential, index=self._cursor)

    async def invalidate(self, lease: CredentialLease) -> bool:
        """
        Force rotation away from the credential a lease was served from.

        Only the first caller holding a lease for the current cursor advances
        it; later callers with the same stale lease are no-ops.

        Returns:
            True if this call advanced the cursor.
        """
        async with self._lock:
            if lease.index != self._cursor or self._cursor >= len(self._credentials):
                logger.debug(
                    "Credential already rotated",
                    auth_id=lease.credential.auth_id,
                    lease_index=lease.index,
                    cursor=self._cursor,
                )
                return False

            logger.warning(
                "Credential invalidated, forcing rotation",
                auth_id=lease.credential.auth_id,
                uses=self._usage,
            )
            self._rotate()
            return True

    def snapshot(self) -> list[Credential]:
        """Copy of every credential, including ones added mid-run."""
        # No await here, so the copy is consistent without taking the lock
        return [credential.model_copy() for credential in self._credentials]

    def _rotate(self) -> None:
        """Advance the cursor. Caller must hold the lock."""
        self._cursor += 1
        self._usage = 0

    async def _replenish_locked(self) -> bool:
        """Ask for more credentials. Caller must hold the lock."""
        if self._refused:
            return False

        if self._replenish is None:
            logger.error("All credentials exhausted and no replenishment source configured")
            self._refused = True
            return False

        logger.warning(
            "All credentials exhausted or rejected, requesting more",
            known=len(self._credentials),
        )
        added = list(await self._replenish(1))

        if not added:
            logger.error("No new credentials provided, enrichment will stop")
            self._refused = True
            return False

        # Cursor already points at the first appended credential
        self._credentials.extend(added)
        logger.info("Added credentials", added=len(added), total=len(self._credentials))
        return True
