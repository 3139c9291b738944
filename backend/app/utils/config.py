"""
Configuration module for loading and validating environment variables.
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("matchday.config")


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t")


class Settings(BaseModel):
    """Application settings loaded from environment variables with defaults."""

    # Application Settings
    APP_NAME: str = "MatchDay API"
    APP_VERSION: str = "1.0.0"
    APP_DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # Entity store
    STORE_BACKEND: str = Field(default="memory", description="memory or supabase")
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_KEY: Optional[str] = None
    STORE_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)

    # Notification mirror
    REDIS_URL: Optional[str] = None
    NOTIFICATION_STREAM: str = "stream:notifications"

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(default=False)
    SWEEP_INTERVAL_SECONDS: int = Field(default=60, gt=0)
    NOTIFICATION_PRUNE_HOUR: int = Field(default=0, ge=0, le=23)
    NOTIFICATION_RETENTION_DAYS: int = Field(default=7, gt=0)

    # Optimistic concurrency
    SUBMIT_RETRY_LIMIT: int = Field(default=3, ge=1)
    SETTLEMENT_LEASE_SECONDS: int = Field(default=60, gt=0)

    # Other settings
    LOG_LEVEL: str = Field(default="INFO")


def load_settings() -> Settings:
    """Build a settings object from the current environment."""
    return Settings(
        APP_DEBUG=_env_flag("APP_DEBUG"),
        ENVIRONMENT=os.getenv("ENVIRONMENT", "development"),
        STORE_BACKEND=os.getenv("STORE_BACKEND", "memory").lower(),
        SUPABASE_URL=os.getenv("SUPABASE_URL"),
        SUPABASE_SERVICE_KEY=os.getenv("SUPABASE_SERVICE_KEY"),
        STORE_TIMEOUT_SECONDS=float(os.getenv("STORE_TIMEOUT_SECONDS", "15")),
        REDIS_URL=os.getenv("REDIS_URL") or None,
        NOTIFICATION_STREAM=os.getenv("NOTIFICATION_STREAM", "stream:notifications"),
        SCHEDULER_ENABLED=_env_flag("SCHEDULER_ENABLED"),
        SWEEP_INTERVAL_SECONDS=int(os.getenv("SWEEP_INTERVAL_SECONDS", "60")),
        NOTIFICATION_PRUNE_HOUR=int(os.getenv("NOTIFICATION_PRUNE_HOUR", "0")),
        NOTIFICATION_RETENTION_DAYS=int(os.getenv("NOTIFICATION_RETENTION_DAYS", "7")),
        SUBMIT_RETRY_LIMIT=int(os.getenv("SUBMIT_RETRY_LIMIT", "3")),
        SETTLEMENT_LEASE_SECONDS=int(os.getenv("SETTLEMENT_LEASE_SECONDS", "60")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


# Create global settings object
settings = load_settings()


def get_settings() -> Settings:
    """Return the global settings object."""
    return settings


def verify_env_variables(current: Optional[Settings] = None) -> bool:
    """
    Verify that all required environment variables are set.
    Supabase credentials are only required when the Supabase store is selected.
    """
    current = current or settings
    required_vars = []
    if current.STORE_BACKEND == "supabase":
        required_vars = ["SUPABASE_URL", "SUPABASE_SERVICE_KEY"]

    missing_vars = []
    for var in required_vars:
        if not getattr(current, var, None):
            missing_vars.append(var)

    if missing_vars:
        logger.warning(f"Missing required environment variables: {', '.join(missing_vars)}")
        return False

    return True
