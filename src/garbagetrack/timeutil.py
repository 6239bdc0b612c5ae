"""Time zone handling and wall-clock resolution.

All wall-clock times in the catalog are interpreted in a single zone
(Asia/Taipei unless configured otherwise).
"""

import logging
import re
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Taipei"

_TIME_OF_DAY = re.compile(r"^(\d{1,2}):?(\d{2})(?::(\d{2}))?$")


def get_timezone(name: str = DEFAULT_TIMEZONE) -> tzinfo:
    """
    Load an IANA time zone.

    Falls back to a fixed UTC+8 offset when tz data for the zone is missing.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Time zone {name!r} not available, using fixed UTC+8")
        return timezone(timedelta(hours=8), "CST")


def now_local(tz: Optional[tzinfo] = None) -> datetime:
    """Current instant in the given zone."""
    return datetime.now(tz or get_timezone())


def to_local(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert to the given zone. Naive datetimes are taken to already be local."""
    tz = tz or get_timezone()
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def parse_time_of_day(value: str) -> time:
    """
    Parse a catalog time of day.

    Accepts "HH:MM", "H:MM", "HHMM" and "HH:MM:SS".

    Raises:
        ValueError: If the value is not a valid time of day.
    """
    match = _TIME_OF_DAY.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    return time(hour, minute, second)


def resolve_arrival(time_of_day: time, now: datetime) -> datetime:
    """
    Resolve a time of day to the next instant it occurs at or after ``now``.

    The result is on the same calendar day as ``now`` (in ``now``'s zone),
    moved forward exactly one day when that moment has already passed.
    """
    eta = datetime.combine(now.date(), time_of_day, tzinfo=now.tzinfo)
    if eta < now:
        eta = datetime.combine(now.date() + timedelta(days=1), time_of_day, tzinfo=now.tzinfo)
    return eta
