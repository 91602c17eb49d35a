"""Close the job queue exactly once, on discovery completion or exhaustion."""

import asyncio
import enum
import threading
from typing import Awaitable

import structlog

from addrenrich.workers.queues import ClosableQueue

logger = structlog.get_logger(__name__)


class ShutdownReason(str, enum.Enum):
    """What triggered the job queue close."""

    DISCOVERY_COMPLETE = "discovery-complete"
    CREDENTIALS_EXHAUSTED = "credentials-exhausted"


class OnceGate:
    """Lets exactly one caller through, however many race for it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def claim(self) -> bool:
        """Return True for the first caller only."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True


class ShutdownCoordinator:
    """
    Two watchers race to close the job queue.

    One waits for the discovery pool to finish, the other for an enrichment
    worker to report credential exhaustion. Whichever fires first closes the
    queue through the gate; the other becomes a no-op. Closing lets enrichment
    workers drain what is already queued, then exit.
    """

    def __init__(self, jobs: ClosableQueue):
        self.jobs = jobs
        self.reason: ShutdownReason | None = None
        self._gate = OnceGate()
        self._exhausted = asyncio.Event()
        self._watchers: list[asyncio.Task] = []

    @property
    def exhaustion_detected(self) -> bool:
        return self._exhausted.is_set()

    def report_exhaustion(self) -> None:
        """Called by an enrichment worker that could not get a credential."""
        self._exhausted.set()

    async def trigger(self, reason: ShutdownReason) -> bool:
        """Close the job queue if nobody has yet. Returns True if this call did."""
        if not self._gate.claim():
            logger.debug("Shutdown already initiated", reason=reason.value, by=self.reason)
            return False

        self.reason = reason
        logger.info("Shutdown signal received, closing job queue", reason=reason.value)
        await self.jobs.close()
        return True

    def start(self, discovery_done: Awaitable[None]) -> None:
        """Start both watchers."""
        self._watchers = [
            asyncio.create_task(self._watch_discovery(discovery_done), name="watch-discovery"),
            asyncio.create_task(self._watch_exhaustion(), name="watch-exhaustion"),
        ]

    async def stop(self) -> None:
        """Cancel whichever watcher never fired."""
        for task in self._watchers:
            task.cancel()
        await asyncio.gather(*self._watchers, return_exceptions=True)
        self._watchers = []

    async def _watch_discovery(self, discovery_done: Awaitable[None]) -> None:
        await discovery_done
        logger.info("All discovery workers finished")
        await self.trigger(ShutdownReason.DISCOVERY_COMPLETE)

    async def _watch_exhaustion(self) -> None:
        await self._exhausted.wait()
        logger.warning("Credential exhaustion detected")
        await self.trigger(ShutdownReason.CREDENTIALS_EXHAUSTED)
