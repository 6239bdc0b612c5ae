"""garbagetrack - Find nearby garbage truck stops and get reminded before the truck arrives."""

__version__ = "0.1.0"

from .models import CollectionPoint, NearestStop, Reminder, ReminderStatus, TimeWindow
from .catalog_loader import CatalogLoader
from .matcher import CollectionMatcher
from .tracker import GarbageTracker
from .scheduler import ReminderScheduler
from .store import InMemoryStore, ReminderStore, SQLiteStore

__all__ = [
    "GarbageTracker",
    "CatalogLoader",
    "CollectionMatcher",
    "ReminderScheduler",
    "ReminderStore",
    "InMemoryStore",
    "SQLiteStore",
    "CollectionPoint",
    "NearestStop",
    "Reminder",
    "ReminderStatus",
    "TimeWindow",
]
