"""Concurrent pipeline workers."""

from addrenrich.workers.discovery import DiscoveryWorkerPool
from addrenrich.workers.enrichment import EnrichmentConfig, EnrichmentWorkerPool, backoff_delay
from addrenrich.workers.orchestrator import AddressPipeline, PipelineConfig, PipelineSummary
from addrenrich.workers.queues import ClosableQueue
from addrenrich.workers.router import ResultRouter
from addrenrich.workers.shutdown import OnceGate, ShutdownCoordinator, ShutdownReason

__all__ = [
    "AddressPipeline",
    "ClosableQueue",
    "DiscoveryWorkerPool",
    "EnrichmentConfig",
    "EnrichmentWorkerPool",
    "OnceGate",
    "PipelineConfig",
    "PipelineSummary",
    "ResultRouter",
    "ShutdownCoordinator",
    "ShutdownReason",
    "backoff_delay",
]
