"""Terminal classification of an address."""

import enum
from dataclasses import dataclass

from addrenrich.models.address import Address


class OutcomeStatus(str, enum.Enum):
    """Outcome status enum."""

    ENRICHED = "enriched"
    UNPROCESSED = "unprocessed"


class UnprocessedReason(str, enum.Enum):
    """Why an address left the pipeline without enrichment."""

    UNKNOWN_ADDRESS = "unknown-address"
    CREDENTIALS_EXHAUSTED = "credentials-exhausted"
    RETRIES_EXHAUSTED = "retries-exhausted"


@dataclass(frozen=True)
class Outcome:
    """Either Enriched(address) or Unprocessed(address, reason)."""

    address: Address
    status: OutcomeStatus
    reason: UnprocessedReason | None = None

    @classmethod
    def enriched(cls, address: Address) -> "Outcome":
        return cls(address=address, status=OutcomeStatus.ENRICHED)

    @classmethod
    def unprocessed(cls, address: Address, reason: UnprocessedReason) -> "Outcome":
        return cls(address=address, status=OutcomeStatus.UNPROCESSED, reason=reason)

    @property
    def is_enriched(self) -> bool:
        return self.status == OutcomeStatus.ENRICHED
