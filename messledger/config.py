"""Ledger configuration from environment variables and .env file."""

import logging
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class LedgerSettings(BaseSettings):
    """Ledger settings loaded from environment variables.

    Pydantic automatically loads values from:
    1. OS environment variables (at instantiation time)
    2. .env file (if present)

    Instantiate AFTER environment variables are loaded; use get_settings().
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./messledger.db",
        description="SQLAlchemy async database URL",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Ledger policy
    max_batch_size: int = Field(
        default=500,
        validation_alias="LEDGER_MAX_BATCH_SIZE",
        description="Largest number of records accepted in one atomic batch",
    )
    allow_future_dated_charges: bool = Field(
        default=False,
        validation_alias="LEDGER_ALLOW_FUTURE_DATED_CHARGES",
        description="Accept charges dated after today",
    )
    currency: str = Field(default="LKR", validation_alias="LEDGER_CURRENCY")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/server.log", description="Log file path")

    # API
    api_title: str = Field(default="Mess Ledger API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")

    def validate_settings(self) -> None:
        """Validate configuration values that pydantic types cannot express."""
        if self.max_batch_size < 1:
            raise ValueError("LEDGER_MAX_BATCH_SIZE must be at least 1")


# Lazy loader to ensure environment is loaded before instantiation
_settings_instance: Optional[LedgerSettings] = None


def get_settings() -> LedgerSettings:
    """Get or create the settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = LedgerSettings()
        _settings_instance.validate_settings()
        logger.debug("Loaded settings: database_url=%s", _settings_instance.database_url)
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings_instance
    _settings_instance = None


__all__ = ["LedgerSettings", "get_settings", "reset_settings"]
