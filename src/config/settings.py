# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
Cross-field rules are checked in validate_config_consistency().
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ridecoach.core.errors import RidecoachError


class ConfigurationError(RidecoachError):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === REMOTE GENERATION ===
    remote_endpoint_url: str = ""
    remote_auth_token: str = ""
    remote_timeout_s: float = 300.0

    # === Step execution ===
    step_max_retries: int = 0
    step_retry_base_delay_s: float = 1.0
    step_retry_backoff_factor: float = 2.0

    # === Artifact store ===
    artifact_backend: Literal["document", "sqlite", "redis"] = "document"
    artifact_root: Path = Path("~/.ridecoach/artifacts")
    artifact_redis_url: str = ""
    artifact_optimistic_concurrency: bool = False

    # === Document store ===
    document_root: Path = Path("~/.ridecoach/documents")
    plan_collection: str = "eventPrepPlans"
    plan_artifact_field: str = "generatedPlan"

    # === Staleness ===
    stale_grace_days: float = 7.0
    stale_max_age_days: float = 30.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("step_max_retries")
    @classmethod
    def validate_step_max_retries(cls, v: int) -> int:  # noqa: N805
        if v < 0:
            raise ValueError("step_max_retries must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.artifact_backend == "redis" and not self.artifact_redis_url:
            errors.append("ARTIFACT_BACKEND=redis requires ARTIFACT_REDIS_URL")

        if self.stale_grace_days > self.stale_max_age_days:
            errors.append("STALE_GRACE_DAYS must be <= STALE_MAX_AGE_DAYS")

        if self.remote_timeout_s <= 0:
            errors.append("REMOTE_TIMEOUT_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
