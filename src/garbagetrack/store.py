"""Reminder and user persistence."""

import json
import logging
import os
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .exceptions import ReminderNotFoundError, StoreError
from .models import Favorite, Reminder, ReminderStatus, User

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderStore(ABC):
    """Document store for reminders and users."""

    @abstractmethod
    def create_reminder(self, reminder: Reminder) -> str:
        """Persist a new reminder and return its assigned ID."""

    @abstractmethod
    def get_reminder(self, reminder_id: str) -> Reminder:
        """Get a reminder by ID. Raises ReminderNotFoundError if missing."""

    @abstractmethod
    def get_active_reminders(self, after: Optional[datetime] = None) -> List[Reminder]:
        """Get active reminders, limited to ETAs strictly after ``after`` when given."""

    @abstractmethod
    def update_reminder_status(self, reminder_id: str, status: ReminderStatus) -> None:
        """Set a reminder's status and bump its update time."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user, or None if unknown."""

    @abstractmethod
    def upsert_user(self, user: User) -> None:
        """Create or replace a user."""

    def add_favorite(self, user_id: str, favorite: Favorite) -> User:
        """Append a favorite to a user, creating the user if needed."""
        user = self.get_user(user_id) or User(user_id=user_id)
        user.favorites.append(favorite)
        self.upsert_user(user)
        return user

    @staticmethod
    def _filter_active(reminders: List[Reminder], after: Optional[datetime]) -> List[Reminder]:
        return [
            r for r in reminders
            if r.status is ReminderStatus.ACTIVE and (after is None or r.eta > after)
        ]


class InMemoryStore(ReminderStore):
    """Process-local store. Documents are kept as dicts, as a document store would."""

    def __init__(self):
        self._reminders: Dict[str, dict] = {}
        self._users: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def create_reminder(self, reminder: Reminder) -> str:
        reminder_id = uuid.uuid4().hex
        now = _utcnow()
        reminder.reminder_id = reminder_id
        reminder.status = ReminderStatus.ACTIVE
        reminder.created_at = reminder.created_at or now
        reminder.updated_at = reminder.updated_at or now
        with self._lock:
            self._reminders[reminder_id] = reminder.to_dict()
        return reminder_id

    def get_reminder(self, reminder_id: str) -> Reminder:
        with self._lock:
            doc = self._reminders.get(reminder_id)
        if doc is None:
            raise ReminderNotFoundError(reminder_id)
        return Reminder.from_dict(doc)

    def get_active_reminders(self, after: Optional[datetime] = None) -> List[Reminder]:
        with self._lock:
            docs = list(self._reminders.values())
        return self._filter_active([Reminder.from_dict(doc) for doc in docs], after)

    def update_reminder_status(self, reminder_id: str, status: ReminderStatus) -> None:
        with self._lock:
            doc = self._reminders.get(reminder_id)
            if doc is None:
                raise ReminderNotFoundError(reminder_id)
            doc["status"] = ReminderStatus(status).value
            doc["updatedAt"] = _utcnow().isoformat()

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            doc = self._users.get(user_id)
        return User.from_dict(doc) if doc is not None else None

    def upsert_user(self, user: User) -> None:
        now = _utcnow()
        user.created_at = user.created_at or now
        user.updated_at = now
        with self._lock:
            self._users[user.user_id] = user.to_dict()


class SQLiteStore(ReminderStore):
    """
    SQLite-backed store.

    Each reminder and user is kept as a JSON document in a two-column table
    keyed by ID. Access is serialized through a lock so one connection can be
    shared by the scheduler threads and request handlers.
    """

    def __init__(self, db_path: str):
        """
        Open (and create if needed) the database.

        Args:
            db_path: Path to the SQLite file, or ":memory:".
        """
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            with self._conn:
                self._conn.execute("CREATE TABLE IF NOT EXISTS reminders (id TEXT PRIMARY KEY, doc TEXT NOT NULL)")
                self._conn.execute("CREATE TABLE IF NOT EXISTS users (id TEXT PRIMARY KEY, doc TEXT NOT NULL)")
        except sqlite3.Error as e:
            logger.error(f"Failed to open reminder database {db_path}: {e}")
            raise StoreError(f"Failed to open reminder database: {e}") from e
        logger.info(f"Opened reminder database {db_path}")

    def _fetch_doc(self, table: str, doc_id: str) -> Optional[dict]:
        try:
            with self._lock:
                row = self._conn.execute(f"SELECT doc FROM {table} WHERE id = ?", (doc_id,)).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read {table} {doc_id}: {e}") from e
        return json.loads(row[0]) if row else None

    def _put_doc(self, table: str, doc_id: str, doc: dict) -> None:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO {table} (id, doc) VALUES (?, ?)",
                    (doc_id, json.dumps(doc, ensure_ascii=False)),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write {table} {doc_id}: {e}") from e

    def create_reminder(self, reminder: Reminder) -> str:
        reminder_id = uuid.uuid4().hex
        now = _utcnow()
        reminder.reminder_id = reminder_id
        reminder.status = ReminderStatus.ACTIVE
        reminder.created_at = reminder.created_at or now
        reminder.updated_at = reminder.updated_at or now
        self._put_doc("reminders", reminder_id, reminder.to_dict())
        return reminder_id

    def get_reminder(self, reminder_id: str) -> Reminder:
        doc = self._fetch_doc("reminders", reminder_id)
        if doc is None:
            raise ReminderNotFoundError(reminder_id)
        return Reminder.from_dict(doc)

    def get_active_reminders(self, after: Optional[datetime] = None) -> List[Reminder]:
        # Single-field filter on status; the ETA filter is applied here
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT doc FROM reminders WHERE json_extract(doc, '$.status') = ?",
                    (ReminderStatus.ACTIVE.value,),
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to query active reminders: {e}") from e

        reminders = []
        for (doc,) in rows:
            try:
                reminders.append(Reminder.from_dict(json.loads(doc)))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping unreadable reminder document: {e}")
        return self._filter_active(reminders, after)

    def update_reminder_status(self, reminder_id: str, status: ReminderStatus) -> None:
        with self._lock:
            try:
                with self._conn:
                    row = self._conn.execute("SELECT doc FROM reminders WHERE id = ?", (reminder_id,)).fetchone()
                    if row is None:
                        raise ReminderNotFoundError(reminder_id)
                    doc = json.loads(row[0])
                    doc["status"] = ReminderStatus(status).value
                    doc["updatedAt"] = _utcnow().isoformat()
                    self._conn.execute(
                        "UPDATE reminders SET doc = ? WHERE id = ?",
                        (json.dumps(doc, ensure_ascii=False), reminder_id),
                    )
            except sqlite3.Error as e:
                raise StoreError(f"Failed to update reminder {reminder_id}: {e}") from e

    def get_user(self, user_id: str) -> Optional[User]:
        doc = self._fetch_doc("users", user_id)
        return User.from_dict(doc) if doc is not None else None

    def upsert_user(self, user: User) -> None:
        now = _utcnow()
        user.created_at = user.created_at or now
        user.updated_at = now
        self._put_doc("users", user.user_id, user.to_dict())

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()
