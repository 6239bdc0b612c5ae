"""Main garbage truck tracker class."""

import logging
from datetime import datetime
from typing import List, Optional

from .catalog_loader import CatalogLoader
from .exceptions import GeocodeError
from .geo import directions_url, format_distance
from .geocoder import Geocoder
from .matcher import CollectionMatcher
from .models import NearestStop, TimeWindow

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
DEFAULT_MAX_DISTANCE = 2000.0  # Meters, for window searches


class GarbageTracker:
    """
    Finds garbage truck stops near a user.

    This class provides methods to:
    - Search stops near a coordinate, optionally within a time window
    - Search stops near a free-text address
    - Render a stop as a short text summary
    """

    def __init__(
        self,
        loader: Optional[CatalogLoader] = None,
        matcher: Optional[CollectionMatcher] = None,
        geocoder: Optional[Geocoder] = None,
    ):
        """
        Initialize the tracker.

        Args:
            loader: Catalog source. Defaults to the public feed.
            matcher: Ranking engine. Defaults to one in the default zone.
            geocoder: Needed only for search_address().
        """
        self.loader = loader or CatalogLoader()
        self.matcher = matcher or CollectionMatcher()
        self.geocoder = geocoder

    def search(
        self,
        lat: float,
        lng: float,
        window: Optional[TimeWindow] = None,
        limit: int = DEFAULT_LIMIT,
        max_distance: float = DEFAULT_MAX_DISTANCE,
        now: Optional[datetime] = None,
    ) -> List[NearestStop]:
        """
        Find stops for a location.

        With a bounded window, stops arriving in the window within
        ``max_distance`` are returned earliest first. Without one, or when
        the window matches nothing, the ``limit`` nearest stops are returned.

        Raises:
            CatalogUnavailableError: If the catalog cannot be fetched.
        """
        catalog = self.loader.get_catalog()

        if window is not None and not window.is_unbounded():
            stops = self.matcher.find_in_window(lat, lng, catalog, window, max_distance, now=now)
            if stops:
                return stops
            logger.info("No stops in the requested time window, falling back to nearest stops")

        return self.matcher.find_nearest(lat, lng, catalog, limit, now=now)

    def search_address(
        self,
        address: str,
        window: Optional[TimeWindow] = None,
        limit: int = DEFAULT_LIMIT,
        max_distance: float = DEFAULT_MAX_DISTANCE,
        now: Optional[datetime] = None,
    ) -> List[NearestStop]:
        """
        Find stops near a free-text address.

        Raises:
            GeocodeError: If no geocoder is configured or the address is unknown.
            CatalogUnavailableError: If the catalog cannot be fetched.
        """
        if self.geocoder is None:
            raise GeocodeError("No geocoder configured")
        location = self.geocoder.geocode(address)
        logger.info(f"Resolved {address!r} to {location.latitude:.5f}, {location.longitude:.5f}")
        return self.search(location.latitude, location.longitude, window, limit, max_distance, now=now)

    @staticmethod
    def describe(stop: NearestStop) -> str:
        """Short text summary of a stop for chat replies."""
        return "\n".join([
            stop.stop_name,
            f"下一班：{stop.eta:%H:%M}",
            f"距離：{format_distance(stop.distance)}",
            f"路線：{stop.route_name}",
            directions_url(stop.latitude, stop.longitude),
        ])
