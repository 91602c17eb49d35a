"""Pydantic schemas for persisted data."""

from addrenrich.schemas.credential import Credential, CredentialList

__all__ = ["Credential", "CredentialList"]
