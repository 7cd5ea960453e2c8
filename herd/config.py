"""Environment-specific configuration loader."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

ALLOWED_ENVS = {"dev", "prod"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_TRUTHY = {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings populated from the environment."""

    environment: str = "dev"
    debug: bool = False
    log_level: str = "INFO"
    merge_response_headers: bool = False


def validate_settings(settings: Settings) -> None:
    """Validate *settings* for safe operation.

    Raises
    ------
    ValueError
        If the environment or log level is unsupported, or if production
        settings are insecure.
    """

    env = settings.environment
    if env not in ALLOWED_ENVS:
        raise ValueError(f"Unsupported environment: {env}")
    if settings.log_level not in LOG_LEVELS:
        raise ValueError(f"Unsupported log level: {settings.log_level}")
    if env == "prod" and settings.debug:
        raise ValueError("Debug must be disabled in production")


def load_settings() -> Settings:
    """Return configuration derived from ``HERD_*`` variables."""

    env = os.getenv("HERD_ENV", "dev").lower()
    debug = os.getenv("HERD_DEBUG", "0").lower() in _TRUTHY
    default_level = "DEBUG" if debug else "INFO"
    log_level = os.getenv("HERD_LOG_LEVEL", default_level).upper()
    merge = os.getenv("HERD_MERGE_RESPONSE_HEADERS", "0").lower() in _TRUTHY
    settings = Settings(
        environment=env,
        debug=debug,
        log_level=log_level,
        merge_response_headers=merge,
    )
    validate_settings(settings)
    return settings


def configure_logging(settings: Settings) -> None:
    """Install a stream handler for the ``herd`` loggers."""

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("herd").setLevel(settings.log_level)


__all__ = [
    "ALLOWED_ENVS",
    "LOG_LEVELS",
    "Settings",
    "configure_logging",
    "load_settings",
    "validate_settings",
]
