"""Wire discovery, enrichment, shutdown and routing into one pipeline run."""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterable, Awaitable, Callable, Iterable, Protocol

import structlog

from addrenrich.config import Settings
from addrenrich.models.address import Address
from addrenrich.models.outcome import Outcome, UnprocessedReason
from addrenrich.services.enrichment.address_validator import AddressValidatorProtocol
from addrenrich.services.enrichment.credential_pool import CredentialPool
from addrenrich.services.scraping.directory_scraper import DiscoverySourceProtocol
from addrenrich.workers.discovery import DiscoveryWorkerPool
from addrenrich.workers.enrichment import EnrichmentConfig, EnrichmentWorkerPool
from addrenrich.workers.queues import ClosableQueue
from addrenrich.workers.router import ResultRouter
from addrenrich.workers.shutdown import ShutdownCoordinator, ShutdownReason

logger = structlog.get_logger(__name__)


class ResultSinkProtocol(Protocol):
    """Protocol for downstream result consumers."""

    async def consume(self, stream: AsyncIterable) -> int:
        """Consume the stream until it closes. Returns items consumed."""
        ...


@dataclass
class PipelineConfig:
    """Configuration for a pipeline run."""

    discovery_workers: int = 5
    enrichment_workers: int = 10
    queue_size: int = 1000
    max_retries: int = 4
    backoff_base: float = 2.0
    record_dropped: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            discovery_workers=settings.discovery_workers,
            enrichment_workers=settings.enrichment_workers,
            queue_size=settings.job_queue_size,
            max_retries=settings.max_retries,
            backoff_base=settings.backoff_base_seconds,
            record_dropped=settings.record_dropped,
        )

    def enrichment(self) -> EnrichmentConfig:
        return EnrichmentConfig(
            workers=self.enrichment_workers,
            max_retries=self.max_retries,
            backoff_base=self.backoff_base,
            record_dropped=self.record_dropped,
        )


@dataclass
class PipelineSummary:
    """Totals for one run. ``accounted`` always equals ``discovered``."""

    discovered: int = 0
    succeeded: int = 0
    unknown_address: int = 0
    credentials_exhausted: int = 0
    retries_exhausted: int = 0
    dropped: int = 0
    failed_targets: list[str] = field(default_factory=list)
    shutdown_reason: ShutdownReason | None = None
    exhaustion_detected: bool = False

    @property
    def failed(self) -> int:
        return self.unknown_address + self.credentials_exhausted + self.retries_exhausted

    @property
    def accounted(self) -> int:
        return self.succeeded + self.failed + self.dropped


class AddressPipeline:
    """
    Full discovery and enrichment pipeline.

    Flow:
    1. Discovery workers fetch each target and queue its addresses as jobs
    2. Enrichment workers validate jobs using the shared credential pool
    3. The job queue closes once, when discovery is done or credentials run out
    4. The router splits outcomes into success and failure streams for the sinks

    Usage:
        pipeline = AddressPipeline(directory, validator, pool, success_sink, failure_sink)
        summary = await pipeline.run()
    """

    def __init__(
        self,
        source: DiscoverySourceProtocol,
        validator: AddressValidatorProtocol,
        credentials: CredentialPool,
        success_sink: ResultSinkProtocol,
        failure_sink: ResultSinkProtocol,
        config: PipelineConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.source = source
        self.validator = validator
        self.credentials = credentials
        self.success_sink = success_sink
        self.failure_sink = failure_sink
        self.config = config or PipelineConfig()
        self._sleep = sleep

    async def run(self, targets: Iterable[str] | None = None) -> PipelineSummary:
        """
        Run the pipeline to completion.

        Args:
            targets: Discovery targets. Defaults to everything the source lists.

        Returns:
            Summary of how every discovered address ended up
        """
        if targets is None:
            targets = await self.source.list_targets()
        targets = list(targets)

        cfg = self.config
        jobs: ClosableQueue[Address] = ClosableQueue(cfg.queue_size)
        outcomes: ClosableQueue[Outcome] = ClosableQueue(cfg.queue_size)
        succeeded: ClosableQueue[Address] = ClosableQueue(cfg.queue_size)
        failed: ClosableQueue[Outcome] = ClosableQueue(cfg.queue_size)

        coordinator = ShutdownCoordinator(jobs)
        enrichment = EnrichmentWorkerPool(
            credentials=self.credentials,
            validator=self.validator,
            jobs=jobs,
            outcomes=outcomes,
            on_exhausted=coordinator.report_exhaustion,
            config=cfg.enrichment(),
            sleep=self._sleep,
        )
        discovery = DiscoveryWorkerPool(self.source, jobs, outcomes, workers=cfg.discovery_workers)
        router = ResultRouter(outcomes, succeeded, failed)

        router_task = asyncio.create_task(router.run(), name="result-router")
        sink_tasks = [
            asyncio.create_task(self.success_sink.consume(succeeded), name="success-sink"),
            asyncio.create_task(self.failure_sink.consume(failed), name="failure-sink"),
        ]

        enrichment.start()
        discovery.start(targets)
        coordinator.start(discovery.wait())

        try:
            await enrichment.wait()
            await discovery.wait()

            # Every enrichment worker may have stopped on exhaustion with jobs still queued
            leftover = jobs.drain_nowait()
            if leftover:
                logger.warning("Reporting queued jobs left after exhaustion", count=len(leftover))
            for address in leftover:
                await outcomes.put(
                    Outcome.unprocessed(address, UnprocessedReason.CREDENTIALS_EXHAUSTED)
                )
        finally:
            await coordinator.stop()
            await discovery.cancel()
            await enrichment.cancel()
            await outcomes.close()
            counts = await router_task
            await asyncio.gather(*sink_tasks)

        summary = PipelineSummary(
            discovered=discovery.discovered,
            succeeded=counts["enriched"],
            unknown_address=counts[UnprocessedReason.UNKNOWN_ADDRESS.value],
            credentials_exhausted=counts[UnprocessedReason.CREDENTIALS_EXHAUSTED.value],
            retries_exhausted=counts[UnprocessedReason.RETRIES_EXHAUSTED.value],
            dropped=enrichment.dropped,
            failed_targets=list(discovery.failed_targets),
            shutdown_reason=coordinator.reason,
            exhaustion_detected=coordinator.exhaustion_detected,
        )

        logger.info(
            "Pipeline finished",
            discovered=summary.discovered,
            succeeded=summary.succeeded,
            failed=summary.failed,
            dropped=summary.dropped,
            failed_targets=len(summary.failed_targets),
            shutdown_reason=summary.shutdown_reason.value if summary.shutdown_reason else None,
        )
        if summary.accounted != summary.discovered:
            logger.error(
                "Address accounting mismatch",
                discovered=summary.discovered,
                accounted=summary.accounted,
            )
        return summary
