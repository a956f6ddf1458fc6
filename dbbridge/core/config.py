"""
Configuration Management

Centralized configuration using Pydantic Settings. Every field can be set
from the environment with the ``DBBRIDGE_`` prefix or from a ``.env`` file:

    DBBRIDGE_LOG_LEVEL=DEBUG
    DBBRIDGE_CONNECT_TIMEOUT=10
    DBBRIDGE_SOURCES_FILE=~/.dbbridge/sources.yaml
    DBBRIDGE_SOURCES='{"local": {"kind": "sqlite", "path": ":memory:"}}'
"""

from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings."""

    model_config = SettingsConfigDict(
        env_prefix="DBBRIDGE_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Logging
    log_level: str = "INFO"

    # Connections
    connect_timeout: Optional[float] = Field(default=None, ge=0)

    # Cursors
    default_batch_size: Optional[int] = Field(default=None, ge=1)

    # Named sources
    sources_file: Optional[str] = None
    sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


def get_settings() -> Settings:
    """Read settings fresh from the environment."""
    return Settings()


# Global settings instance
settings = Settings()
