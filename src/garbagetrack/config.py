"""
Configuration loaded from the environment.

Values are read from environment variables; a ``.env`` file in the working
directory is loaded first if present.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .catalog_loader import CATALOG_URL
from .timeutil import DEFAULT_TIMEZONE

ENV_PATH = Path.cwd() / ".env"


class CatalogConfig(BaseModel):
    url: str = CATALOG_URL
    timeout: float = Field(default=10, gt=0)
    cache_ttl: float = Field(default=3600, ge=0)


class SchedulerConfig(BaseModel):
    dispatch_interval: float = Field(default=60, ge=1)
    cleanup_interval: float = Field(default=3600, ge=1)
    lookback_minutes: int = Field(default=5, ge=0)
    retention_hours: int = Field(default=24, ge=1)
    advance_minutes: int = Field(default=10, ge=0)


class LineConfig(BaseModel):
    access_token: str = ""


class GeocoderConfig(BaseModel):
    api_key: str = ""


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_file: Optional[Path] = None
    max_bytes: int = Field(default=5 * 1024 * 1024, ge=0)  # 5 MB
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseModel):
    catalog: CatalogConfig = CatalogConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    line: LineConfig = LineConfig()
    geocoder: GeocoderConfig = GeocoderConfig()
    logging: LoggingConfig = LoggingConfig()
    timezone: str = DEFAULT_TIMEZONE
    database_path: str = "data/reminders.db"


@lru_cache
def get_settings() -> Settings:
    """
    Load and cache settings.

    Raises pydantic.ValidationError if a value is out of range.
    """
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH, override=False)
    env = os.environ

    def _get(name: str, default: str) -> str:
        return env.get(name) or default

    return Settings(
        catalog=CatalogConfig(
            url=_get("CATALOG_URL", CATALOG_URL),
            timeout=_get("CATALOG_TIMEOUT", "10"),
            cache_ttl=_get("CATALOG_CACHE_TTL", "3600"),
        ),
        scheduler=SchedulerConfig(
            dispatch_interval=_get("DISPATCH_INTERVAL", "60"),
            cleanup_interval=_get("CLEANUP_INTERVAL", "3600"),
            lookback_minutes=_get("DISPATCH_LOOKBACK_MINUTES", "5"),
            retention_hours=_get("RETENTION_HOURS", "24"),
            advance_minutes=_get("DEFAULT_ADVANCE_MINUTES", "10"),
        ),
        line=LineConfig(access_token=env.get("LINE_CHANNEL_ACCESS_TOKEN", "")),
        geocoder=GeocoderConfig(api_key=env.get("GOOGLE_MAPS_API_KEY", "")),
        logging=LoggingConfig(
            level=_get("LOG_LEVEL", "INFO").upper(),
            log_file=env.get("LOG_FILE") or None,
            max_bytes=_get("LOG_MAX_BYTES", str(5 * 1024 * 1024)),
            backup_count=_get("LOG_BACKUP_COUNT", "5"),
        ),
        timezone=_get("TIMEZONE", DEFAULT_TIMEZONE),
        database_path=_get("DATABASE_PATH", "data/reminders.db"),
    )


__all__ = ["Settings", "get_settings"]
