"""Exception hierarchy shared by the pipeline and its collaborators."""


class AddrEnrichError(Exception):
    """Base class for all addrenrich errors."""


class ValidationProviderError(AddrEnrichError):
    """The validation provider could not enrich an address."""


class AddressNotFoundError(ValidationProviderError):
    """The provider has no match for the address. Retrying is pointless."""


class TransientProviderError(ValidationProviderError):
    """Network, auth, rate-limit or malformed-response failure. Worth retrying."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DiscoveryError(AddrEnrichError):
    """A discovery target could not be fetched or parsed."""


class CredentialStoreError(AddrEnrichError):
    """Credentials could not be loaded or saved."""


class QueueClosed(AddrEnrichError):
    """Raised by put() on a closed queue, and by get() once closed and drained."""
