"""Matching of collection points against a user's location and time window."""

import logging
from datetime import datetime, tzinfo
from typing import Callable, Iterable, List, Optional

from .geo import calculate_distance, parse_coordinates
from .models import CollectionPoint, NearestStop, Route, Stop, TimeWindow
from .timeutil import get_timezone, now_local, parse_time_of_day, resolve_arrival, to_local

logger = logging.getLogger(__name__)


class CollectionMatcher:
    """
    Ranks collection points for a query location.

    Two rankings are offered:
    - find_nearest: closest stops first
    - find_in_window: stops arriving inside a time window, earliest first

    Matching touches no shared state and may be called from several threads.
    """

    def __init__(self, tz: Optional[tzinfo] = None, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the matcher.

        Args:
            tz: Zone the catalog's wall-clock times are expressed in.
            clock: Returns the current instant. Defaults to the system clock.
        """
        self.tz = tz or get_timezone()
        self._clock = clock or (lambda: now_local(self.tz))

    def find_nearest(
        self,
        user_lat: float,
        user_lng: float,
        catalog: Iterable[CollectionPoint],
        limit: int = 0,
        now: Optional[datetime] = None,
    ) -> List[NearestStop]:
        """
        Get catalog stops ordered by distance from the user.

        Args:
            user_lat: Query latitude.
            user_lng: Query longitude.
            catalog: Collection points to consider.
            limit: Maximum number of results. 0 or less means no limit.
            now: Reference instant for resolving arrival times.

        Returns:
            Matched stops, nearest first. Ties keep catalog order.
        """
        now = self._now(now)
        stops = [
            stop
            for stop in (self._resolve(point, user_lat, user_lng, now) for point in catalog)
            if stop is not None
        ]

        stops.sort(key=lambda s: s.distance)

        if limit > 0:
            stops = stops[:limit]
        return stops

    def find_in_window(
        self,
        user_lat: float,
        user_lng: float,
        catalog: Iterable[CollectionPoint],
        window: Optional[TimeWindow] = None,
        max_distance: float = 0,
        now: Optional[datetime] = None,
    ) -> List[NearestStop]:
        """
        Get catalog stops arriving within a time window.

        Args:
            user_lat: Query latitude.
            user_lng: Query longitude.
            catalog: Collection points to consider.
            window: Inclusive arrival window. None matches every arrival.
            max_distance: Drop stops farther than this many meters. 0 or less disables.
            now: Reference instant for resolving arrival times.

        Returns:
            Matched stops, earliest arrival first.
        """
        now = self._now(now)
        window = self._localize_window(window)
        stops: List[NearestStop] = []

        for point in catalog:
            stop = self._resolve(point, user_lat, user_lng, now)
            if stop is None:
                continue
            if max_distance > 0 and stop.distance > max_distance:
                continue
            if not window.contains(stop.eta):
                continue
            stops.append(stop)

        stops.sort(key=lambda s: s.eta)
        return stops

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_local(now if now is not None else self._clock(), self.tz)

    def _localize_window(self, window: Optional[TimeWindow]) -> TimeWindow:
        if window is None:
            return TimeWindow()
        return TimeWindow(
            start=to_local(window.start, self.tz) if window.start is not None else None,
            end=to_local(window.end, self.tz) if window.end is not None else None,
        )

    @staticmethod
    def _resolve(point: CollectionPoint, user_lat: float, user_lng: float, now: datetime) -> Optional[NearestStop]:
        """Build a candidate for one catalog row, or None if the row is malformed."""
        try:
            lat, lng = parse_coordinates(point.latitude, point.longitude)
            time_of_day = parse_time_of_day(point.arrival_time)
        except (AttributeError, ValueError) as e:
            logger.debug(f"Skipping catalog row {point.location!r}: {e}")
            return None

        return NearestStop(
            stop=Stop(name=point.location, latitude=lat, longitude=lng, time=point.arrival_time),
            route=Route(route_id=point.vehicle_number, name=point.route),
            distance=calculate_distance(user_lat, user_lng, lat, lng),
            eta=resolve_arrival(time_of_day, now),
            point=point,
        )
