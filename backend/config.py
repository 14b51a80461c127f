"""
Application configuration using Pydantic Settings.

This module manages all configuration from environment variables
(and an optional ``.env`` file).
"""

from enum import Enum
from functools import lru_cache
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransactionMode(str, Enum):
    """How storage writes of one import run are committed."""
    PER_ROW = 'per_row'
    ATOMIC = 'atomic'


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore',
    )

    # Database Configuration
    DATABASE_URL: str = "sqlite:///database/invoice.sqlite"
    DB_ECHO: bool = False
    SQLITE_FOREIGN_KEYS: bool = True

    # Import Configuration
    IMPORT_TRANSACTION_MODE: TransactionMode = TransactionMode.PER_ROW
    IMPORT_SHEET_NAME: Optional[str] = None  # None reads every worksheet
    IMPORT_HEADER_ROWS: int = Field(1, ge=0)

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "importer.log"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
