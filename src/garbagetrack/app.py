"""
Builds the tracker and reminder services from settings.

Every factory takes an optional ``Settings``; when omitted the cached
``get_settings()`` result is used.
"""

import logging
from datetime import timedelta
from typing import Optional

from .catalog_loader import CatalogLoader
from .config import Settings, get_settings
from .geocoder import Geocoder
from .logging_setup import setup_logging
from .matcher import CollectionMatcher
from .notifier import LinePushNotifier, LoggingNotifier, Notifier
from .scheduler import ReminderScheduler
from .store import ReminderStore, SQLiteStore
from .timeutil import get_timezone
from .tracker import GarbageTracker

logger = logging.getLogger(__name__)


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    setup_logging(
        settings.logging.level,
        settings.logging.log_file,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )


def create_tracker(settings: Optional[Settings] = None) -> GarbageTracker:
    """Tracker over the configured catalog feed; geocoding is enabled when an API key is set."""
    settings = settings or get_settings()
    geocoder = None
    if settings.geocoder.api_key:
        geocoder = Geocoder(settings.geocoder.api_key)
    else:
        logger.info("GOOGLE_MAPS_API_KEY not set, address search disabled")

    return GarbageTracker(
        loader=CatalogLoader(settings.catalog.url, settings.catalog.timeout, settings.catalog.cache_ttl),
        matcher=CollectionMatcher(tz=get_timezone(settings.timezone)),
        geocoder=geocoder,
    )


def create_store(settings: Optional[Settings] = None) -> ReminderStore:
    settings = settings or get_settings()
    return SQLiteStore(settings.database_path)


def create_notifier(settings: Optional[Settings] = None) -> Notifier:
    """LINE push when a channel token is set, otherwise log-only delivery."""
    settings = settings or get_settings()
    if settings.line.access_token:
        return LinePushNotifier(settings.line.access_token)
    logger.warning("LINE_CHANNEL_ACCESS_TOKEN not set, reminders will only be logged")
    return LoggingNotifier()


def create_scheduler(
    settings: Optional[Settings] = None,
    store: Optional[ReminderStore] = None,
    notifier: Optional[Notifier] = None,
) -> ReminderScheduler:
    """
    Scheduler with intervals, lookback and retention taken from settings.

    Args:
        settings: Defaults to ``get_settings()``.
        store: Defaults to ``create_store(settings)``.
        notifier: Defaults to ``create_notifier(settings)``.
    """
    settings = settings or get_settings()
    scheduler_config = settings.scheduler
    return ReminderScheduler(
        store if store is not None else create_store(settings),
        notifier if notifier is not None else create_notifier(settings),
        tz=get_timezone(settings.timezone),
        dispatch_interval=scheduler_config.dispatch_interval,
        cleanup_interval=scheduler_config.cleanup_interval,
        lookback=timedelta(minutes=scheduler_config.lookback_minutes),
        retention=timedelta(hours=scheduler_config.retention_hours),
    )


__all__ = ["configure_logging", "create_tracker", "create_store", "create_notifier", "create_scheduler"]
