"""Runtime settings for the command-line front end."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sql_fingerprint.sql_toolkit import Dialect

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Fingerprinting settings.

    All values can be overridden via environment variables prefixed with
    ``SQL_FINGERPRINT_`` (e.g. ``SQL_FINGERPRINT_DIALECT=postgres``) or
    through a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="SQL_FINGERPRINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Dialect used when the caller does not pick one.
    dialect: Dialect = Dialect.GENERIC

    log_level: str = "WARNING"

    # Emit one JSON object per log line instead of plain text.
    structured_logging: bool = False

    debug: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, v: object) -> str:
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}; got {v!r}")
        return level


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings: dialect=%s log_level=%s", settings.dialect.value, settings.log_level)

    return settings
