"""Pipeline data models."""

from addrenrich.models.address import UNKNOWN, Address
from addrenrich.models.outcome import Outcome, OutcomeStatus, UnprocessedReason

__all__ = [
    "UNKNOWN",
    "Address",
    "Outcome",
    "OutcomeStatus",
    "UnprocessedReason",
]
