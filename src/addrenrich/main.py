"""Command-line entry point."""

import argparse
import asyncio
import logging
import sys

import structlog

from addrenrich.config import Settings, settings
from addrenrich.exceptions import CredentialStoreError, DiscoveryError
from addrenrich.repositories.credential_repo import ConsoleCredentialPrompt, JsonCredentialStore
from addrenrich.repositories.result_csv import CsvResultSink
from addrenrich.services.enrichment.address_validator import SmartyStreetsValidator
from addrenrich.services.enrichment.credential_pool import CredentialPool
from addrenrich.services.scraping.directory_scraper import AnytimeMailboxDirectory
from addrenrich.workers.orchestrator import AddressPipeline, PipelineConfig, PipelineSummary

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure stdlib logging and structlog processors."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape mailbox locations and classify them with SmartyStreets."
    )
    parser.add_argument("--discovery-workers", type=int, help="Concurrent directory fetchers")
    parser.add_argument("--enrichment-workers", type=int, help="Concurrent address validators")
    parser.add_argument("--quota", type=int, help="Lookups per credential before rotating")
    parser.add_argument("--max-retries", type=int, help="Extra attempts after a transient failure")
    parser.add_argument("--backoff-base", type=float, help="First retry delay in seconds")
    parser.add_argument("--credentials-file", help="JSON file of auth_id/auth_token pairs")
    parser.add_argument("--results-file", help="CSV for enriched addresses")
    parser.add_argument("--failed-file", help="CSV for unprocessed addresses")
    parser.add_argument(
        "-t", "--target",
        action="append",
        dest="targets",
        help="Only scrape this state slug (repeatable; default: every state)",
    )
    return parser.parse_args(argv)


def apply_overrides(base: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with any CLI overrides applied and re-validated."""
    overrides = {
        "discovery_workers": args.discovery_workers,
        "enrichment_workers": args.enrichment_workers,
        "credential_quota": args.quota,
        "max_retries": args.max_retries,
        "backoff_base_seconds": args.backoff_base,
        "credentials_file": args.credentials_file,
        "results_file": args.results_file,
        "failed_results_file": args.failed_file,
    }
    data = base.model_dump()
    data.update({key: value for key, value in overrides.items() if value is not None})
    return Settings.model_validate(data)


async def enrich(cfg: Settings, targets: list[str] | None = None) -> PipelineSummary:
    """Run one full pipeline and persist credentials whatever happens."""
    store = JsonCredentialStore(cfg.credentials_file)
    pool = CredentialPool(
        store.load(),
        quota=cfg.credential_quota,
        replenish=ConsoleCredentialPrompt().prompt_for_more,
    )

    try:
        async with (
            AnytimeMailboxDirectory(cfg.directory_base_url, timeout=cfg.directory_timeout) as directory,
            SmartyStreetsValidator(cfg.smarty_base_url, timeout=cfg.validation_timeout) as validator,
        ):
            pipeline = AddressPipeline(
                source=directory,
                validator=validator,
                credentials=pool,
                success_sink=CsvResultSink(cfg.results_file),
                failure_sink=CsvResultSink(cfg.failed_results_file, include_reason=True),
                config=PipelineConfig.from_settings(cfg),
            )
            return await pipeline.run(targets)
    finally:
        try:
            store.save(pool.snapshot())
        except CredentialStoreError as e:
            logger.warning("Could not save credentials", error=str(e))


def run(argv: list[str] | None = None) -> int:
    """Console script entry point."""
    args = parse_args(argv)
    cfg = apply_overrides(settings, args)
    configure_logging(cfg)

    logger.info("Starting address enrichment", version=cfg.app_version, environment=cfg.environment)
    try:
        summary = asyncio.run(enrich(cfg, args.targets))
    except CredentialStoreError as e:
        logger.error("Could not load credentials", error=str(e))
        return 1
    except DiscoveryError as e:
        logger.error("Could not list discovery targets", error=str(e))
        return 1

    logger.info(
        "Address enrichment complete",
        succeeded=summary.succeeded,
        failed=summary.failed,
        dropped=summary.dropped,
    )
    return 0


if __name__ == "__main__":
    sys.exit(run())
