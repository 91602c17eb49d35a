"""Credential persistence and interactive replenishment."""

import asyncio
from pathlib import Path
from typing import Callable

import structlog
from pydantic import ValidationError

from addrenrich.exceptions import CredentialStoreError
from addrenrich.schemas.credential import Credential, CredentialList

logger = structlog.get_logger(__name__)


class JsonCredentialStore:
    """Repository for credentials kept in a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> list[Credential]:
        """Load credentials. A missing or empty file means no credentials."""
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            logger.info("Credentials file not found, starting empty", path=str(self.path))
            return []
        except OSError as e:
            raise CredentialStoreError(f"Could not read {self.path}: {e}") from e

        if not data.strip():
            return []

        try:
            credentials = CredentialList.validate_json(data)
        except ValidationError as e:
            raise CredentialStoreError(f"Could not parse {self.path}: {e}") from e

        logger.info("Loaded credentials", path=str(self.path), count=len(credentials))
        return credentials

    def save(self, credentials: list[Credential]) -> None:
        """Write credentials back, without runtime usage counters."""
        try:
            self.path.write_bytes(CredentialList.dump_json(credentials, indent=2))
        except OSError as e:
            raise CredentialStoreError(f"Could not write {self.path}: {e}") from e

        logger.info("Saved credentials", path=str(self.path), count=len(credentials))


class ConsoleCredentialPrompt:
    """
    Ask the operator for more credentials on the terminal.

    Reads Auth ID / Auth Token pairs until an empty line. Returning an empty
    list tells the pool that no more credentials are coming.
    """

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        print_func: Callable[[str], None] = print,
    ):
        self._input = input_func
        self._print = print_func

    async def prompt_for_more(self, min_count: int) -> list[Credential]:
        """Collect credentials without blocking the event loop."""
        return await asyncio.to_thread(self._read_credentials, min_count)

    def _read_credentials(self, min_count: int) -> list[Credential]:
        credentials: list[Credential] = []

        self._print("\n--- More API credentials needed ---")
        if min_count > 0:
            self._print(f"Provide at least {min_count} new credential(s) to continue.")
        self._print("Enter Auth ID and Auth Token for each one (empty line to stop).")

        while True:
            self._print(f"\nCredential #{len(credentials) + 1}:")
            try:
                auth_id = self._input("  Auth ID: ").strip()
                if not auth_id:
                    break
                auth_token = self._input("  Auth Token: ").strip()
                if not auth_token:
                    break
            except EOFError:
                break

            credentials.append(Credential(auth_id=auth_id, auth_token=auth_token))
            if len(credentials) >= min_count:
                self._print("Minimum reached. Add more or press Enter to continue.")

        self._print("-----------------------------------")
        logger.info("Credential prompt finished", provided=len(credentials))
        return credentials
