"""Outbound notifications to users."""

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

import requests

from .exceptions import NotificationError

logger = logging.getLogger(__name__)

LINE_PUSH_URL = "https://api.line.me/v2/bot/message/push"


def format_reminder_message(stop_name: str, minutes_left: int) -> str:
    """
    Text of a reminder notification.

    Args:
        stop_name: Stop the truck is heading for.
        minutes_left: Whole minutes until arrival. 0 or less means imminent.
    """
    if minutes_left <= 0:
        return (
            "🗑️ 垃圾車提醒\n\n"
            f"垃圾車即將抵達 {stop_name}！\n"
            "請準備好垃圾袋出門。"
        )
    return (
        "🗑️ 垃圾車提醒\n\n"
        f"垃圾車將在 {minutes_left} 分鐘後抵達 {stop_name}\n"
        "請準備好垃圾袋。"
    )


class Notifier(ABC):
    """Sends text messages to users."""

    @abstractmethod
    def push(self, user_id: str, text: str) -> None:
        """
        Send a message to a user.

        Raises:
            NotificationError: If the message was not accepted.
        """


class LinePushNotifier(Notifier):
    """Sends push messages through the LINE Messaging API."""

    def __init__(self, access_token: str, timeout: float = 10, url: str = LINE_PUSH_URL):
        if not access_token:
            raise ValueError("LINE channel access token is required")
        self.url = url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        })

    def push(self, user_id: str, text: str) -> None:
        body = {"to": user_id, "messages": [{"type": "text", "text": text}]}
        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotificationError(f"Push to {user_id} failed: {e}") from e

        if not response.ok:
            raise NotificationError(
                f"Push to {user_id} rejected with status {response.status_code}: {response.text[:200]}"
            )
        logger.debug(f"Pushed message to {user_id}")


class LoggingNotifier(Notifier):
    """Writes messages to the log instead of sending them. Keeps a record of pushes."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    def push(self, user_id: str, text: str) -> None:
        logger.info(f"Notify {user_id}: {text!r}")
        self.sent.append((user_id, text))
