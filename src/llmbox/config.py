"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by ``.env`` file and environment
variables, a cached ``get_settings()`` accessor, and a ``validate_credentials()``
startup gate that enforces credential presence in production mode.

This module imports nothing from ``llmbox`` at module level except the
routing config model, which itself has no further package imports.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path

import structlog
from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from llmbox.email.routing import RoutingConfig

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env`` file.

    ``SecretStr`` fields prevent accidental leaks in logs or error output.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    port: int = 8000

    # -- Storage ---------------------------------------------------------------
    database_path: Path = Path("data/llmbox.db")

    # -- Addresses -------------------------------------------------------------
    service_email_address: str = ""
    personifeed_email_domain: str = "mail.llmbox.local"
    reply_prefix: str = "reply"

    # -- LLM / Anthropic -------------------------------------------------------
    anthropic_api_key: SecretStr = SecretStr("")
    generation_model: str = "claude-sonnet-4-5-20250929"
    generation_max_tokens: int = 2048

    # -- SendGrid --------------------------------------------------------------
    sendgrid_api_key: SecretStr = SecretStr("")
    sendgrid_timeout_seconds: float = 10.0

    # -- Newsletter batch ------------------------------------------------------
    batch_concurrency: int = 10
    batch_trigger_secret: SecretStr = SecretStr("")

    # -- Error tracking --------------------------------------------------------
    sentry_dsn: str = ""

    def routing_config(self) -> RoutingConfig:
        """Derive the address routing configuration."""
        assistant = (self.service_email_address,) if self.service_email_address else ()
        return RoutingConfig(
            assistant_addresses=assistant,
            service_domains=(self.personifeed_email_domain,),
            reply_prefix=self.reply_prefix,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The application ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        # Only the structured errors list: the full exception may echo secrets.
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)


def validate_credentials(settings: Settings) -> None:
    """Enforce credential presence at startup.

    In **production** mode the application exits with a clear error block if
    any required credential is missing.  In **development** mode each
    missing credential is logged as a warning and startup continues.

    Args:
        settings: The loaded application settings.
    """
    errors: list[str] = []

    if not settings.anthropic_api_key.get_secret_value():
        errors.append("ANTHROPIC_API_KEY is empty or not set")

    if not settings.sendgrid_api_key.get_secret_value():
        errors.append("SENDGRID_API_KEY is empty or not set")

    if not settings.service_email_address:
        errors.append("SERVICE_EMAIL_ADDRESS is empty or not set")

    if not settings.batch_trigger_secret.get_secret_value():
        errors.append("BATCH_TRIGGER_SECRET is empty or not set")

    if not errors:
        logger.info("credential_validation_passed")
        return

    if settings.production:
        for err in errors:
            logger.error("credential_missing", detail=err)
        print("\n=== STARTUP FAILED ===", file=sys.stderr)
        print("Missing required credentials for production mode:", file=sys.stderr)
        for err in errors:
            print(f"  - {err}", file=sys.stderr)
        print("======================\n", file=sys.stderr)
        sys.exit(1)
    else:
        for err in errors:
            logger.warning("credential_missing_dev", detail=err)
