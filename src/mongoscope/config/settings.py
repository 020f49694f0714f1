"""
Configuration settings for mongoscope.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """mongoscope configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # MongoDB
    mongodb_uri: SecretStr = Field(
        default=SecretStr("mongodb://localhost:27017"),
        description="MongoDB connection URI",
    )
    mongodb_database: str = Field(
        default="test",
        description="Default database for the CLI",
    )
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=1,
        description="Driver server selection timeout in milliseconds",
    )

    # Browsing
    documents_per_page: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Page size for collection views (never client controlled)",
    )
    default_key_names: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Display key per collection: {database: {collection: key}}",
    )

    # Response shaping
    max_prop_size: int = Field(
        default=100 * 1024,
        ge=1,
        description="Estimated byte size above which a single field is redacted",
    )
    max_row_size: int = Field(
        default=1000 * 1024,
        ge=1,
        description="Estimated byte size above which a whole document is redacted",
    )

    # Access toggles
    read_only: bool = Field(
        default=False,
        description="Refuse every mutating operation",
    )
    no_delete: bool = Field(
        default=False,
        description="Refuse document deletion, collection drops and index drops",
    )
    no_export: bool = Field(
        default=False,
        description="Refuse collection exports",
    )

    # Observability
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level for mongoscope loggers",
    )

    def default_key_for(self, database: str, collection: str) -> str:
        """Return the display key configured for a collection, else ``_id``."""
        return self.default_key_names.get(database, {}).get(collection, "_id")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Attach a stream handler to the ``mongoscope`` logger tree."""
    level = level or get_settings().log_level
    root = logging.getLogger("mongoscope")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(handler)
    root.setLevel(level)
