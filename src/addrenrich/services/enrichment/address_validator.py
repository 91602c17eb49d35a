"""Address validation using the SmartyStreets US Street API."""

from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from addrenrich.exceptions import AddressNotFoundError, TransientProviderError
from addrenrich.models.address import UNKNOWN
from addrenrich.schemas.credential import Credential

logger = structlog.get_logger(__name__)


@dataclass
class ValidationResult:
    """Classification fields returned for a matched address."""

    cmra: str = UNKNOWN  # "Y" when the address is a commercial mail receiving agency
    rdi: str = UNKNOWN  # "Residential" or "Commercial"


class AddressValidatorProtocol(Protocol):
    """Protocol for address validation services."""

    async def validate(
        self,
        credential: Credential,
        street: str,
        city: str,
        state: str,
        zip_code: str,
    ) -> ValidationResult:
        """
        Validate one address.

        Raises:
            AddressNotFoundError: the provider has no candidate for it
            TransientProviderError: anything else went wrong
        """
        ...


class SmartyStreetsValidator:
    """
    Address validator using the SmartyStreets US Street API directly.

    API Documentation: https://www.smarty.com/docs/cloud/us-street-api

    A lookup with no candidates is a permanent "not found". Every other
    failure, including auth rejections (401/402/403) and rate limiting (429),
    is reported as transient so the caller can rotate credentials and retry.
    """

    STREET_ADDRESS_PATH = "/street-address"

    def __init__(
        self,
        base_url: str = "https://us-street.api.smartystreets.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def validate(
        self,
        credential: Credential,
        street: str,
        city: str,
        state: str,
        zip_code: str,
    ) -> ValidationResult:
        """Validate a single address with the given credential."""
        client = await self._get_client()

        try:
            response = await client.get(
                f"{self.base_url}{self.STREET_ADDRESS_PATH}",
                params={
                    "auth-id": credential.auth_id,
                    "auth-token": credential.auth_token,
                    "street": street,
                    "city": city,
                    "state": state,
                    "zipcode": zip_code,
                    "candidates": 1,
                },
            )
            response.raise_for_status()
            data = response.json()

        except httpx.TimeoutException as e:
            logger.warning("Address validation timed out", street=street, city=city)
            raise TransientProviderError("Address validation timed out") from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code in (401, 402, 403):
                logger.error(
                    "Credential rejected by SmartyStreets",
                    auth_id=credential.auth_id,
                    status=status_code,
                )
            elif status_code == 429:
                logger.warning("SmartyStreets rate limit hit", auth_id=credential.auth_id)
            else:
                logger.error("Address validation HTTP error", status=status_code)
            raise TransientProviderError(f"HTTP error: {status_code}", status_code=status_code) from e
        except httpx.HTTPError as e:
            logger.error("Address validation request failed", error=str(e))
            raise TransientProviderError(str(e)) from e
        except ValueError as e:
            logger.error("Address validation returned invalid JSON", error=str(e))
            raise TransientProviderError("Malformed response body") from e

        return self._parse_response(data, street=street, city=city, state=state, zip_code=zip_code)

    def _parse_response(self, data, **lookup: str) -> ValidationResult:
        """
        Parse a US Street API response.

        API Response format (one entry per candidate, empty when unmatched):
        [
            {
                "delivery_line_1": "1 Santa Claus Ln",
                "metadata": {"rdi": "Commercial", ...},
                "analysis": {"dpv_cmra": "Y", ...},
                ...
            }
        ]
        """
        if not isinstance(data, list):
            raise TransientProviderError(f"Unexpected response type: {type(data).__name__}")

        if not data:
            logger.info("No matching address found", **lookup)
            raise AddressNotFoundError(f"No candidates for {lookup.get('street')}, {lookup.get('city')}")

        candidate = data[0]
        if not isinstance(candidate, dict):
            raise TransientProviderError("Malformed candidate in response")

        analysis = candidate.get("analysis") or {}
        metadata = candidate.get("metadata") or {}
        if not isinstance(analysis, dict) or not isinstance(metadata, dict):
            raise TransientProviderError("Malformed analysis or metadata in response")

        return ValidationResult(
            cmra=analysis.get("dpv_cmra") or UNKNOWN,
            rdi=metadata.get("rdi") or UNKNOWN,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
