"""Discovery worker pool: targets in, address jobs out."""

import asyncio
from typing import Iterable

import structlog

from addrenrich.exceptions import QueueClosed
from addrenrich.models.address import Address
from addrenrich.models.outcome import Outcome, UnprocessedReason
from addrenrich.services.scraping.directory_scraper import DiscoverySourceProtocol
from addrenrich.workers.queues import ClosableQueue

logger = structlog.get_logger(__name__)


class DiscoveryWorkerPool:
    """
    Fixed set of workers that fetch targets and enqueue their addresses.

    A failing target is logged and skipped. Once the job queue is closed
    (credential exhaustion), workers stop taking new targets and any address
    they could not enqueue is reported as ``credentials-exhausted`` so it is
    still accounted for.
    """

    def __init__(
        self,
        source: DiscoverySourceProtocol,
        jobs: ClosableQueue[Address],
        outcomes: ClosableQueue[Outcome],
        workers: int = 5,
    ):
        self.source = source
        self.jobs = jobs
        self.outcomes = outcomes
        self.workers = workers
        self.discovered = 0
        self.failed_targets: list[str] = []
        self._targets: asyncio.Queue[str] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self._remaining = 0
        self._finished = asyncio.Event()

    def start(self, targets: Iterable[str]) -> None:
        """Queue the targets and start the workers."""
        for target in targets:
            self._targets.put_nowait(target)

        logger.info("Starting discovery", targets=self._targets.qsize(), workers=self.workers)
        self._remaining = self.workers
        self._tasks = [
            asyncio.create_task(self._worker(worker_id), name=f"discovery-{worker_id}")
            for worker_id in range(1, self.workers + 1)
        ]

    async def wait(self) -> None:
        """Block until every worker has exited."""
        await self._finished.wait()

    async def cancel(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _worker(self, worker_id: int) -> None:
        log = logger.bind(worker=f"discovery-{worker_id}")
        try:
            while not self.jobs.closed:
                try:
                    target = self._targets.get_nowait()
                except asyncio.QueueEmpty:
                    break

                await self._process_target(target, log)

            log.info("Discovery worker finished")
        finally:
            self._remaining -= 1
            if self._remaining == 0:
                self._finished.set()

    async def _process_target(self, target: str, log) -> None:
        log.info("Fetching target", target=target)
        try:
            addresses = list(await self.source.fetch(target))
        except Exception as e:
            log.error("Target fetch failed, skipping", target=target, error=str(e), error_type=type(e).__name__)
            self.failed_targets.append(target)
            return

        self.discovered += len(addresses)
        log.info("Queueing addresses", target=target, addresses=len(addresses))

        for i, address in enumerate(addresses):
            try:
                await self.jobs.put(address)
            except QueueClosed:
                leftover = addresses[i:]
                log.warning(
                    "Job queue closed, reporting remaining addresses as unprocessed",
                    target=target,
                    remaining=len(leftover),
                )
                for unqueued in leftover:
                    await self.outcomes.put(
                        Outcome.unprocessed(unqueued, UnprocessedReason.CREDENTIALS_EXHAUSTED)
                    )
                return
