"""Split the outcome stream into success and failure streams."""

from collections import Counter

import structlog

from addrenrich.models.address import Address
from addrenrich.models.outcome import Outcome
from addrenrich.workers.queues import ClosableQueue

logger = structlog.get_logger(__name__)


class ResultRouter:
    """
    Forward every outcome to exactly one downstream stream.

    The downstream streams are closed only after the outcome stream itself is
    closed and drained, i.e. after every producer has terminated.
    """

    def __init__(
        self,
        outcomes: ClosableQueue[Outcome],
        succeeded: ClosableQueue[Address],
        failed: ClosableQueue[Outcome],
    ):
        self.outcomes = outcomes
        self.succeeded = succeeded
        self.failed = failed
        self.counts: Counter[str] = Counter()

    async def run(self) -> Counter[str]:
        """Route until the outcome stream closes. Returns counts per status/reason."""
        try:
            async for outcome in self.outcomes:
                if outcome.is_enriched:
                    self.counts["enriched"] += 1
                    await self.succeeded.put(outcome.address)
                else:
                    self.counts[outcome.reason.value] += 1
                    await self.failed.put(outcome)
        finally:
            await self.succeeded.close()
            await self.failed.close()

        logger.info("Result routing finished", **dict(self.counts))
        return self.counts
