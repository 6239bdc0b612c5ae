"""Example usage of GarbageTracker and ReminderScheduler."""

import logging
import sys
from pathlib import Path

# Add src to path so we can import garbagetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from garbagetrack.app import configure_logging, create_scheduler, create_tracker
from garbagetrack.config import get_settings
from garbagetrack.exceptions import GarbageTrackError

logger = logging.getLogger(__name__)


def main(lat: float, lng: float, remind: bool = False):
    """
    Print the nearest stops to a coordinate and optionally set a reminder on the first.

    Args:
        lat: Latitude (e.g., 25.0330)
        lng: Longitude (e.g., 121.5654)
        remind: Register a reminder for the nearest stop and run one dispatch pass.
    """
    settings = get_settings()
    configure_logging(settings)
    tracker = create_tracker(settings)

    print(f"\n{'='*70}")
    print(f"Nearest garbage truck stops to {lat}, {lng}")
    print(f"{'='*70}\n")

    try:
        stops = tracker.search(lat, lng)
    except GarbageTrackError as e:
        logger.error(f"Search failed: {e}", exc_info=True)
        print(f"Error: {e}")
        sys.exit(1)

    if not stops:
        print("No stops found nearby")
        return

    for stop in stops:
        print(tracker.describe(stop))
        print("-" * 70)

    if remind:
        scheduler = create_scheduler(settings)
        first = stops[0]
        reminder = scheduler.create(
            "example-user",
            first.stop_name,
            first.route_id,
            first.eta,
            settings.scheduler.advance_minutes,
        )
        print(f"\nReminder {reminder.reminder_id} will fire at {reminder.notify_at:%Y-%m-%d %H:%M}")
        result = scheduler.process_reminders()
        print(f"Dispatch pass: {result}")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python example.py LAT LNG [--remind]")
        sys.exit(1)
    main(float(sys.argv[1]), float(sys.argv[2]), remind="--remind" in sys.argv[3:])
