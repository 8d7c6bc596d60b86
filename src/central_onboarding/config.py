"""Onboarding client configuration using Pydantic Settings.

The `Settings` class loads the onboarding endpoint, its shared secret, and the
retry/timeout tuning from environment variables or a `.env` file. Settings are
read once at the process boundary (`get_settings`) and handed to the client at
construction; nothing in the call path consults the environment directly.

`resolve_invocation_config` merges per-call overrides with those settings and
reports which of the two mandatory values are missing without ever exposing
the secret itself.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional, Union

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict as _SettingsConfigDict

from .models.onboarding import InvocationConfig

DEFAULT_TIMEOUT_MS = 10_000
MAX_ATTEMPTS = 2


class Settings(BaseSettings):
    """Defines all onboarding client configuration parameters."""

    model_config = _SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Onboarding service; the SELAM_-prefixed names are read for existing deployments
    ONBOARDING_URL: str = Field(
        default="",
        validation_alias=AliasChoices("ONBOARDING_URL", "SELAM_ONBOARDING_URL"),
        description="Full URL of the central onboarding create-student endpoint",
    )
    ONBOARDING_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("ONBOARDING_KEY", "SELAM_ONBOARDING_KEY"),
        description="Shared secret sent in the x-admin-key header",
    )

    # Attempt behavior
    ONBOARDING_TIMEOUT_MS: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description=(
            "Hard timeout (milliseconds) for a single onboarding attempt. "
            "10000 is the supported value; other values are for tests and diagnosis only"
        ),
    )
    ONBOARDING_MAX_ATTEMPTS: int = Field(
        default=MAX_ATTEMPTS,
        ge=1,
        description=(
            "Maximum number of sequential attempts per call (first try included). "
            "2 is the supported value; other values are for tests and diagnosis only"
        ),
    )
    ONBOARDING_RETRY_WAIT_SECONDS: float = Field(
        default=0.0,
        ge=0.0,
        description="Fixed pause between a retryable failure and the next attempt (0 = none)",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @field_validator("ONBOARDING_URL", "ONBOARDING_KEY", mode="before")
    @classmethod
    def strip_blank(cls, v: Any) -> str:
        """Trim whitespace; None and blank strings collapse to empty."""
        if v is None:
            return ""
        return str(v).strip()

    @property
    def timeout_seconds(self) -> float:
        return self.ONBOARDING_TIMEOUT_MS / 1000.0


@dataclass(frozen=True)
class MissingConfiguration:
    """Resolution failure: only presence flags, never the values."""

    has_url: bool
    has_key: bool


def resolve_invocation_config(
    endpoint_url: Optional[str],
    shared_secret: Optional[str],
    settings: Settings,
) -> Union[InvocationConfig, MissingConfiguration]:
    """Resolve the endpoint/secret pair for one call.

    A non-blank explicit value wins; otherwise the configured setting is used.

    Args:
        endpoint_url: Per-call endpoint override.
        shared_secret: Per-call secret override.
        settings: Settings captured by the client at construction.

    Returns:
        An `InvocationConfig`, or `MissingConfiguration` when either value is
        absent after fallback.
    """
    url = (endpoint_url or "").strip() or settings.ONBOARDING_URL
    key = (shared_secret or "").strip() or settings.ONBOARDING_KEY
    if not url or not key:
        return MissingConfiguration(has_url=bool(url), has_key=bool(key))
    return InvocationConfig(endpoint_url=url, shared_secret=key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:  # pragma: no cover - trivial
    """Return a cached, singleton instance of the application settings."""
    return Settings()


__all__ = [
    "DEFAULT_TIMEOUT_MS",
    "MAX_ATTEMPTS",
    "Settings",
    "MissingConfiguration",
    "resolve_invocation_config",
    "get_settings",
]
