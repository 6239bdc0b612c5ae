"""Reminder lifecycle and background dispatch."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Callable, List, Optional

from .exceptions import StoreError
from .models import Reminder, ReminderStatus
from .notifier import Notifier, format_reminder_message
from .store import ReminderStore
from .timeutil import get_timezone, now_local, to_local

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome counts of one dispatch pass."""
    fetched: int = 0
    sent: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0


class ReminderScheduler:
    """
    Owns reminder state and delivers reminders before a truck arrives.

    State machine: active -> sent | expired | cancelled. Only active
    reminders are ever evaluated, so a reminder is never sent again once a
    terminal status has been written.

    Two background loops run once started:
    - dispatch (every ``dispatch_interval`` seconds): sends due reminders
    - cleanup (every ``cleanup_interval`` seconds): expires stale reminders
    """

    def __init__(
        self,
        store: ReminderStore,
        notifier: Notifier,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
        dispatch_interval: float = 60.0,
        cleanup_interval: float = 3600.0,
        lookback: timedelta = timedelta(minutes=5),
        retention: timedelta = timedelta(hours=24),
    ):
        """
        Initialize the scheduler.

        Args:
            store: Reminder persistence.
            notifier: Delivers reminder messages.
            tz: Zone for timestamps written by the scheduler.
            clock: Returns the current instant. Defaults to the system clock.
            dispatch_interval: Seconds between dispatch passes.
            cleanup_interval: Seconds between cleanup passes.
            lookback: How far before now a dispatch pass still fetches reminders.
            retention: Age past ETA after which cleanup expires a reminder.
        """
        self.store = store
        self.notifier = notifier
        self.tz = tz or get_timezone()
        self._clock = clock or (lambda: now_local(self.tz))
        self.dispatch_interval = dispatch_interval
        self.cleanup_interval = cleanup_interval
        self.lookback = lookback
        self.retention = retention

        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self.last_dispatch_at: Optional[datetime] = None
        self.last_cleanup_at: Optional[datetime] = None

    def now(self) -> datetime:
        return to_local(self._clock(), self.tz)

    # region reminders
    def create(
        self,
        user_id: str,
        stop_name: str,
        route_id: str,
        eta: datetime,
        advance_minutes: int = 10,
    ) -> Reminder:
        """
        Register a reminder for a stop.

        Duplicates are allowed: a user may hold several active reminders,
        even for the same stop.

        Raises:
            ValueError: If the user ID is empty or advance_minutes is negative.
            StoreError: If the reminder could not be saved.
        """
        if not user_id:
            raise ValueError("user_id is required")
        if advance_minutes < 0:
            raise ValueError(f"advance_minutes must not be negative, got {advance_minutes}")

        now = self.now()
        reminder = Reminder(
            user_id=user_id,
            stop_name=stop_name,
            route_id=route_id,
            eta=to_local(eta, self.tz),
            advance_minutes=advance_minutes,
            status=ReminderStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        reminder.reminder_id = self.store.create_reminder(reminder)
        logger.info(
            f"Created reminder {reminder.reminder_id} for user {user_id}: "
            f"stop={stop_name}, route={route_id}, eta={reminder.eta:%Y-%m-%d %H:%M}, "
            f"advance={advance_minutes}m"
        )
        return reminder

    def cancel(self, reminder_id: str) -> None:
        """
        Cancel a reminder. Cancelling a finished reminder simply overwrites its status.

        Raises:
            ReminderNotFoundError: If no such reminder exists.
        """
        self.store.update_reminder_status(reminder_id, ReminderStatus.CANCELLED)
        logger.info(f"Cancelled reminder {reminder_id}")

    def get_user_reminders(self, user_id: str) -> List[Reminder]:
        """Active reminders of a user, soonest first."""
        reminders = [r for r in self.store.get_active_reminders() if r.user_id == user_id]
        return sorted(reminders, key=lambda r: r.eta)

    # endregion

    # region passes
    def process_reminders(self, now: Optional[datetime] = None, after: Optional[datetime] = None) -> DispatchResult:
        """
        Run one dispatch pass.

        Args:
            now: Evaluation instant. Defaults to the clock.
            after: Only reminders with an ETA strictly after this are fetched.
                Defaults to ``now - lookback``.

        Returns:
            Counts of what happened to the fetched reminders.

        Raises:
            StoreError: If active reminders could not be fetched. Nothing is
                written in that case.
        """
        now = to_local(now, self.tz) if now is not None else self.now()
        after = after if after is not None else now - self.lookback

        reminders = self._fetch_active(after)

        result = DispatchResult(fetched=len(reminders))
        logger.info(f"Found {len(reminders)} active reminders to process at {now:%Y-%m-%d %H:%M:%S}")

        for reminder in reminders:
            try:
                outcome = self._process_one(reminder, now)
            except Exception as e:
                logger.error(f"Error processing reminder {reminder.reminder_id}: {e}", exc_info=True)
                result.failed += 1
                continue
            setattr(result, outcome, getattr(result, outcome) + 1)

        self.last_dispatch_at = now
        return result

    def _process_one(self, reminder: Reminder, now: datetime) -> str:
        """Evaluate one reminder. Returns the DispatchResult field to count it under."""
        if reminder.status is not ReminderStatus.ACTIVE:
            return "skipped"

        notify_at = reminder.notify_at
        logger.debug(
            f"Reminder {reminder.reminder_id}: now={now:%H:%M:%S}, "
            f"notify_at={notify_at:%H:%M:%S}, eta={reminder.eta:%H:%M:%S}"
        )

        if now < notify_at:
            return "skipped"

        if now > reminder.eta:
            logger.info(f"Reminder {reminder.reminder_id}: ETA has passed, marking as expired")
            self.store.update_reminder_status(reminder.reminder_id, ReminderStatus.EXPIRED)
            return "expired"

        minutes_left = int((reminder.eta - now).total_seconds() // 60)
        text = format_reminder_message(reminder.stop_name, minutes_left)
        try:
            self.notifier.push(reminder.user_id, text)
        except Exception as e:
            # Stays active, the next pass retries until the ETA passes
            logger.warning(f"Failed to send reminder {reminder.reminder_id} to {reminder.user_id}: {e}")
            return "failed"

        self.store.update_reminder_status(reminder.reminder_id, ReminderStatus.SENT)
        logger.info(f"Sent reminder {reminder.reminder_id} to user {reminder.user_id} for stop {reminder.stop_name}")
        return "sent"

    def cleanup_expired(self, cutoff: Optional[datetime] = None) -> int:
        """
        Expire active reminders whose ETA is older than ``cutoff``.

        Args:
            cutoff: Defaults to ``now - retention``.

        Returns:
            Number of reminders expired.

        Raises:
            StoreError: If active reminders could not be fetched.
        """
        now = self.now()
        cutoff = to_local(cutoff, self.tz) if cutoff is not None else now - self.retention

        reminders = self._fetch_active()
        expired = 0
        for reminder in reminders:
            if reminder.eta >= cutoff:
                continue
            try:
                self.store.update_reminder_status(reminder.reminder_id, ReminderStatus.EXPIRED)
                expired += 1
            except Exception as e:
                logger.error(f"Failed to clean up expired reminder {reminder.reminder_id}: {e}")

        if expired:
            logger.info(f"Expired {expired} stale reminders older than {cutoff:%Y-%m-%d %H:%M}")
        self.last_cleanup_at = now
        return expired

    def _fetch_active(self, after: Optional[datetime] = None) -> List[Reminder]:
        try:
            return self.store.get_active_reminders(after)
        except StoreError:
            logger.error("Failed to fetch active reminders", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Failed to fetch active reminders: {e}", exc_info=True)
            raise StoreError(f"Failed to fetch active reminders: {e}") from e

    # endregion

    # region background
    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start the dispatch and cleanup loops in background threads."""
        with self._lock:
            if self.is_running:
                if self._stop_event.is_set():
                    logger.warning("Reminder scheduler is still stopping; not starting new loops")
                else:
                    logger.info("Reminder scheduler already running")
                return
            self._stop_event.clear()
            self._threads = [
                threading.Thread(
                    target=self._run_loop,
                    args=(self.dispatch_interval, self.process_reminders),
                    name="reminder-dispatch",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._run_loop,
                    args=(self.cleanup_interval, self.cleanup_expired),
                    name="reminder-cleanup",
                    daemon=True,
                ),
            ]
            for thread in self._threads:
                thread.start()
        logger.info("Reminder scheduler started")

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop the background loops.

        No new passes are started; a pass already running is allowed to finish.
        Threads still running after ``timeout`` are kept, and ``start`` refuses
        to launch new loops until they have exited.
        """
        with self._lock:
            self._stop_event.set()
            for thread in self._threads:
                thread.join(timeout)
                if thread.is_alive():
                    logger.warning(f"Thread {thread.name} did not stop within timeout")
            self._threads = [t for t in self._threads if t.is_alive()]
        logger.info("Reminder scheduler stopped")

    def _run_loop(self, interval: float, run_pass: Callable[[], object]) -> None:
        while not self._stop_event.wait(interval):
            try:
                run_pass()
            except Exception as e:
                logger.error(f"Error in {threading.current_thread().name} pass: {e}", exc_info=True)

    def get_status(self) -> dict:
        return {
            "running": self.is_running,
            "last_dispatch_at": self.last_dispatch_at,
            "last_cleanup_at": self.last_cleanup_at,
        }

    # endregion
