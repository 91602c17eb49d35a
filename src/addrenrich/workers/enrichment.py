"""Enrichment worker pool: validate queued addresses with rotating credentials."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog

from addrenrich.exceptions import AddressNotFoundError, TransientProviderError
from addrenrich.models.address import Address
from addrenrich.models.outcome import Outcome, UnprocessedReason
from addrenrich.services.enrichment.address_validator import AddressValidatorProtocol
from addrenrich.services.enrichment.credential_pool import CredentialPool
from addrenrich.workers.queues import ClosableQueue

logger = structlog.get_logger(__name__)


@dataclass
class EnrichmentConfig:
    """Configuration for the enrichment worker pool."""

    workers: int = 10
    max_retries: int = 4  # total attempts = max_retries + 1
    backoff_base: float = 2.0  # seconds
    record_dropped: bool = True  # emit retries-exhausted instead of dropping


def backoff_delay(attempt: int, base: float) -> float:
    """Wait before retry ``attempt`` (1-based): base, 2*base, 4*base, ..."""
    return base * (2 ** (attempt - 1))


class EnrichmentWorkerPool:
    """
    Fixed set of workers that validate addresses from the job queue.

    Per address:
    1. Acquire a credential. If the pool is exhausted, report the address as
       ``credentials-exhausted``, signal exhaustion and stop this worker.
    2. Validate it.
    3. Success -> Enriched. Not found -> ``unknown-address``, no retry.
       Transient failure -> invalidate the credential and retry with
       exponential backoff, up to ``max_retries`` more attempts.

    Workers exit when the job queue is closed and drained.
    """

    def __init__(
        self,
        credentials: CredentialPool,
        validator: AddressValidatorProtocol,
        jobs: ClosableQueue[Address],
        outcomes: ClosableQueue[Outcome],
        on_exhausted: Callable[[], None],
        config: EnrichmentConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.credentials = credentials
        self.validator = validator
        self.jobs = jobs
        self.outcomes = outcomes
        self.on_exhausted = on_exhausted
        self.config = config or EnrichmentConfig()
        self.dropped = 0
        self._sleep = sleep
        self._tasks: list[asyncio.Task] = []

    def start(self) -> None:
        logger.info(
            "Starting enrichment workers",
            workers=self.config.workers,
            max_retries=self.config.max_retries,
        )
        self._tasks = [
            asyncio.create_task(self._worker(worker_id), name=f"enrichment-{worker_id}")
            for worker_id in range(1, self.config.workers + 1)
        ]

    async def wait(self) -> None:
        """Block until every worker has exited."""
        await asyncio.gather(*self._tasks)

    async def cancel(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _worker(self, worker_id: int) -> None:
        log = logger.bind(worker=f"enrichment-{worker_id}")

        async for address in self.jobs:
            log.info("Processing address", street=address.street, city=address.city)
            if not await self.process(address, log):
                log.warning("No credentials left, enrichment worker exiting")
                return

        log.info("Enrichment worker finished")

    async def process(self, address: Address, log=logger) -> bool:
        """
        Run one address through the retry loop.

        Returns:
            False if the worker must stop because credentials ran out.
        """
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            if attempt > 0:
                delay = backoff_delay(attempt, self.config.backoff_base)
                log.info("Retrying after backoff", attempt=attempt + 1, delay_seconds=delay)
                await self._sleep(delay)

            lease = await self.credentials.acquire()
            if lease is None:
                await self.outcomes.put(
                    Outcome.unprocessed(address, UnprocessedReason.CREDENTIALS_EXHAUSTED)
                )
                self.on_exhausted()
                return False

            try:
                result = await self.validator.validate(
                    lease.credential,
                    address.street,
                    address.city,
                    address.state,
                    address.zip,
                )
            except AddressNotFoundError:
                log.info("Unknown address, not retrying", street=address.street, city=address.city)
                await self.outcomes.put(
                    Outcome.unprocessed(address, UnprocessedReason.UNKNOWN_ADDRESS)
                )
                return True
            except TransientProviderError as e:
                log.warning(
                    "Validation attempt failed",
                    auth_id=lease.credential.auth_id,
                    attempt=attempt + 1,
                    max_attempts=max_retries + 1,
                    error=str(e),
                )
                if attempt < max_retries:
                    await self.credentials.invalidate(lease)
                continue

            address.cmra = result.cmra
            address.rdi = result.rdi
            log.info("Address enriched", street=address.street, cmra=address.cmra, rdi=address.rdi)
            await self.outcomes.put(Outcome.enriched(address))
            return True

        log.warning("All retries failed, giving up on address", street=address.street, city=address.city)
        if self.config.record_dropped:
            await self.outcomes.put(
                Outcome.unprocessed(address, UnprocessedReason.RETRIES_EXHAUSTED)
            )
        else:
            self.dropped += 1
        return True
