"""Enrichment services module."""

from addrenrich.services.enrichment.address_validator import (
    AddressValidatorProtocol,
    SmartyStreetsValidator,
    ValidationResult,
)
from addrenrich.services.enrichment.credential_pool import (
    CredentialLease,
    CredentialPool,
)

__all__ = [
    "AddressValidatorProtocol",
    "SmartyStreetsValidator",
    "ValidationResult",
    "CredentialLease",
    "CredentialPool",
]
