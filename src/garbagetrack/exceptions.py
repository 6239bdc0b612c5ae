"""Exceptions raised by garbagetrack."""


class GarbageTrackError(Exception):
    """Base class for all garbagetrack errors."""


class CatalogUnavailableError(GarbageTrackError):
    """The collection catalog could not be fetched or decoded."""


class GeocodeError(GarbageTrackError):
    """An address could not be resolved to a coordinate."""


class StoreError(GarbageTrackError):
    """The reminder store failed."""


class ReminderNotFoundError(StoreError):
    """No reminder exists with the given ID."""

    def __init__(self, reminder_id: str):
        super().__init__(f"Reminder {reminder_id} not found")
        self.reminder_id = reminder_id


class NotificationError(GarbageTrackError):
    """A notification could not be delivered."""
