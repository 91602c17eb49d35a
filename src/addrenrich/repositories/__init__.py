"""Data access repositories."""

from addrenrich.repositories.credential_repo import ConsoleCredentialPrompt, JsonCredentialStore
from addrenrich.repositories.result_csv import CsvResultSink

__all__ = ["ConsoleCredentialPrompt", "JsonCredentialStore", "CsvResultSink"]
