"""
Runtime configuration for Transmission Injector.
Settings are loaded from the environment (and an optional .env file) once,
then shared process-wide through get_runtime_config().
"""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Transmission connection
    transmission_rpc_url: str = "http://localhost:9091/transmission/rpc"
    rpc_timeout: float = Field(default=30.0, gt=0)  # seconds

    # Injection
    cross_seed_tag: str = "cross-seed"
    skip_recheck: bool = True

    # Logging settings
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "text"  # "text" or "json"
    log_max_size_mb: int = 10
    log_backup_count: int = 5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_runtime_config: Optional[Settings] = None


def get_runtime_config() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _runtime_config
    if _runtime_config is None:
        _runtime_config = Settings()
        logger.debug(f"Loaded runtime config for {_runtime_config.transmission_rpc_url}")
    return _runtime_config


def set_runtime_config(settings: Settings) -> None:
    """Replace the process-wide settings (CLI overrides, tests)."""
    global _runtime_config
    _runtime_config = settings


def reset_runtime_config() -> None:
    """Drop the cached settings so the next read reloads from the environment."""
    global _runtime_config
    _runtime_config = None
