"""Collection catalog loader."""

import json
import logging
import time
from typing import Any, List, Optional

import requests

from .exceptions import CatalogUnavailableError
from .geo import parse_coordinates
from .models import CollectionPoint, Route, Stop

logger = logging.getLogger(__name__)

# Published snapshot of the Taipei collection points
CATALOG_URL = "https://raw.githubusercontent.com/Yukaii/garbage/data/trash-collection-points.json"


class CatalogLoader:
    """
    Fetches and caches the collection catalog.

    The catalog is replaced wholesale on every refresh. A fetched catalog is
    served from memory until ``cache_ttl`` seconds have passed; ``refresh()``
    forces a reload.
    """

    def __init__(self, url: str = CATALOG_URL, timeout: float = 10, cache_ttl: float = 3600):
        """
        Initialize the loader.

        Args:
            url: Catalog feed URL.
            timeout: HTTP timeout in seconds.
            cache_ttl: Seconds a fetched catalog stays fresh. 0 disables caching.
        """
        self.url = url
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.session = requests.Session()
        self._points: List[CollectionPoint] = []
        self._fetched_at: Optional[float] = None

    def get_catalog(self) -> List[CollectionPoint]:
        """
        Return the current catalog, fetching it when the cache is stale.

        Raises:
            CatalogUnavailableError: If the feed cannot be fetched or decoded.
        """
        now = time.time()
        if self._fetched_at is not None and now - self._fetched_at < self.cache_ttl:
            logger.debug("Using cached catalog")
            return list(self._points)
        return self.refresh()

    def refresh(self) -> List[CollectionPoint]:
        """Download the catalog from the feed URL, replacing the cached one."""
        logger.info(f"Downloading collection catalog from {self.url}")
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch collection catalog: {e}")
            raise CatalogUnavailableError(f"Failed to fetch collection catalog: {e}") from e

        self._replace(self.parse(payload))
        return list(self._points)

    def load_from_file(self, path: str) -> List[CollectionPoint]:
        """Load the catalog from a local JSON file in the feed's format."""
        logger.info(f"Loading collection catalog from {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load collection catalog: {e}")
            raise CatalogUnavailableError(f"Failed to load collection catalog: {e}") from e

        self._replace(self.parse(payload))
        return list(self._points)

    @staticmethod
    def parse(payload: Any) -> List[CollectionPoint]:
        """
        Parse a feed payload into collection points.

        Accepts the feed envelope ({"result": {"results": [...]}}) or a bare
        list of rows. Rows that are not objects are dropped.

        Raises:
            CatalogUnavailableError: If the payload has no list of rows.
        """
        rows = payload
        if isinstance(payload, dict):
            result = payload.get("result")
            rows = result.get("results") if isinstance(result, dict) else None
        if not isinstance(rows, list):
            raise CatalogUnavailableError("Catalog payload has no results list")

        points = [CollectionPoint.from_feed(row) for row in rows if isinstance(row, dict)]
        if len(points) != len(rows):
            logger.debug(f"Dropped {len(rows) - len(points)} malformed catalog rows")
        return points

    def _replace(self, points: List[CollectionPoint]) -> None:
        self._points = points
        self._fetched_at = time.time()
        logger.info(f"Loaded {len(points)} collection points")

    def get_route_by_id(self, route_id: str, catalog: Optional[List[CollectionPoint]] = None) -> Optional[Route]:
        """
        Get a route and its stops by vehicle number.

        Rows with unparseable coordinates are left out of the stop list.
        Returns None if no usable row belongs to the route.
        """
        points = self._points if catalog is None else catalog
        route: Optional[Route] = None
        stops: List[Stop] = []

        for point in points:
            if point.vehicle_number != route_id:
                continue
            try:
                lat, lng = parse_coordinates(point.latitude, point.longitude)
            except (AttributeError, ValueError):
                continue
            if route is None:
                route = Route(route_id=point.vehicle_number, name=point.route)
            stops.append(Stop(name=point.location, latitude=lat, longitude=lng, time=point.arrival_time))

        if route is None:
            return None
        return Route(route_id=route.route_id, name=route.name, stops=tuple(stops))

    def get_point(
        self,
        vehicle_number: str,
        location: str,
        catalog: Optional[List[CollectionPoint]] = None,
    ) -> Optional[CollectionPoint]:
        """Find the catalog row for a vehicle at a location."""
        points = self._points if catalog is None else catalog
        for point in points:
            if point.vehicle_number == vehicle_number and point.location == location:
                return point
        return None

    def clear(self) -> None:
        """Drop the cached catalog."""
        self._points = []
        self._fetched_at = None
        logger.info("Cleared collection catalog from memory")
