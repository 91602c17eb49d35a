"""Credential schemas for the validation provider."""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class Credential(BaseModel):
    """An Auth ID / Auth Token pair plus a runtime usage counter."""

    model_config = ConfigDict(extra="ignore")

    auth_id: str
    auth_token: str = Field(repr=False)
    # Runtime-only, never written back to the credentials file
    uses: int = Field(default=0, exclude=True)

    @field_validator("auth_id", "auth_token", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace and reject blanks."""
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be blank")
        return v


CredentialList = TypeAdapter(list[Credential])
