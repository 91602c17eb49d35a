"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "addr-enrich"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Credentials
    credentials_file: str = "config.json"
    credential_quota: int = 1000  # lookups per credential before rotation

    # Worker pools
    discovery_workers: int = 5
    enrichment_workers: int = 10
    job_queue_size: int = 1000

    # Retry policy
    max_retries: int = 4  # total attempts = max_retries + 1
    backoff_base_seconds: float = 2.0
    record_dropped: bool = True

    # Discovery (AnytimeMailbox directory)
    directory_base_url: str = Field(default="https://www.anytimemailbox.com")
    directory_timeout: float = 30.0  # seconds

    # Address validation (SmartyStreets US Street API)
    smarty_base_url: str = Field(default="https://us-street.api.smartystreets.com")
    validation_timeout: float = 30.0  # seconds

    # Output
    results_file: str = "results.csv"
    failed_results_file: str = "failed_results.csv"

    @field_validator("discovery_workers", "enrichment_workers", "credential_quota", "job_queue_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Worker counts, quota and queue size must be at least one."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Retries may be zero but never negative."""
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("directory_base_url", "smarty_base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Base URLs are joined with absolute paths."""
        return v.rstrip("/") if isinstance(v, str) else v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
