"""Tests for building services from settings."""

import os
import tempfile
import unittest
from unittest.mock import patch
from datetime import timedelta
import sys
from pathlib import Path

# Add src to path so we can import garbagetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from garbagetrack.app import configure_logging, create_notifier, create_scheduler, create_store, create_tracker
from garbagetrack.config import (
    CatalogConfig,
    GeocoderConfig,
    LineConfig,
    LoggingConfig,
    SchedulerConfig,
    Settings,
    get_settings,
)
from garbagetrack.geocoder import Geocoder
from garbagetrack.notifier import LinePushNotifier, LoggingNotifier
from garbagetrack.store import InMemoryStore, SQLiteStore
from garbagetrack.timeutil import get_timezone


class TestServiceWiring(unittest.TestCase):
    """Test that every setting reaches the service it configures."""

    def setUp(self):
        self.settings = Settings(
            catalog=CatalogConfig(url="http://example.test/catalog.json", timeout=3, cache_ttl=120),
            scheduler=SchedulerConfig(
                dispatch_interval=15,
                cleanup_interval=900,
                lookback_minutes=2,
                retention_hours=48,
            ),
            logging=LoggingConfig(level="DEBUG", log_file="logs/app.log", max_bytes=1024, backup_count=2),
            timezone="UTC",
        )

    def test_scheduler_uses_scheduler_settings(self):
        scheduler = create_scheduler(self.settings, store=InMemoryStore(), notifier=LoggingNotifier())

        self.assertEqual(scheduler.dispatch_interval, 15)
        self.assertEqual(scheduler.cleanup_interval, 900)
        self.assertEqual(scheduler.lookback, timedelta(minutes=2))
        self.assertEqual(scheduler.retention, timedelta(hours=48))
        self.assertEqual(scheduler.tz, get_timezone("UTC"))

    def test_scheduler_defaults_to_configured_store_and_notifier(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.settings.database_path = os.path.join(tmp, "data", "reminders.db")
            scheduler = create_scheduler(self.settings)
            try:
                self.assertIsInstance(scheduler.store, SQLiteStore)
                self.assertIsInstance(scheduler.notifier, LoggingNotifier)
            finally:
                scheduler.store.close()

    def test_store_uses_database_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            db_path = os.path.join(tmp, "data", "reminders.db")
            self.settings.database_path = db_path

            store = create_store(self.settings)
            try:
                self.assertIsInstance(store, SQLiteStore)
                self.assertTrue(os.path.exists(db_path))
            finally:
                store.close()

    def test_notifier_without_token_only_logs(self):
        self.assertIsInstance(create_notifier(self.settings), LoggingNotifier)

    def test_notifier_with_token_pushes_to_line(self):
        self.settings.line = LineConfig(access_token="tok")

        notifier = create_notifier(self.settings)

        self.assertIsInstance(notifier, LinePushNotifier)
        self.assertEqual(notifier.session.headers["Authorization"], "Bearer tok")

    def test_tracker_uses_catalog_settings(self):
        tracker = create_tracker(self.settings)

        self.assertEqual(tracker.loader.url, "http://example.test/catalog.json")
        self.assertEqual(tracker.loader.timeout, 3)
        self.assertEqual(tracker.loader.cache_ttl, 120)
        self.assertEqual(tracker.matcher.tz, get_timezone("UTC"))
        self.assertIsNone(tracker.geocoder)

    def test_tracker_geocoder_needs_api_key(self):
        self.settings.geocoder = GeocoderConfig(api_key="maps-key")

        tracker = create_tracker(self.settings)

        self.assertIsInstance(tracker.geocoder, Geocoder)
        self.assertEqual(tracker.geocoder.api_key, "maps-key")

    @patch("garbagetrack.app.setup_logging")
    def test_logging_uses_rotation_settings(self, mock_setup):
        configure_logging(self.settings)

        mock_setup.assert_called_once_with(
            "DEBUG",
            Path("logs/app.log"),
            max_bytes=1024,
            backup_count=2,
        )

    @patch.dict(os.environ, {"DISPATCH_INTERVAL": "20", "LOG_MAX_BYTES": "2048", "LOG_BACKUP_COUNT": "3"}, clear=True)
    @patch("garbagetrack.app.setup_logging")
    def test_defaults_to_environment_settings(self, mock_setup):
        get_settings.cache_clear()
        try:
            configure_logging()
            scheduler = create_scheduler(store=InMemoryStore(), notifier=LoggingNotifier())
        finally:
            get_settings.cache_clear()

        self.assertEqual(scheduler.dispatch_interval, 20)
        self.assertEqual(mock_setup.call_args.kwargs, {"max_bytes": 2048, "backup_count": 3})


if __name__ == "__main__":
    unittest.main()
