"""Geographic helpers."""

import math
from typing import Tuple

EARTH_RADIUS_METERS = 6371000


def parse_coordinates(lat: str, lng: str) -> Tuple[float, float]:
    """
    Parse a feed latitude/longitude pair.

    Raises:
        ValueError: If either value is not a finite number within range.
    """
    latitude = float(lat.strip())
    longitude = float(lng.strip())
    if not (math.isfinite(latitude) and -90 <= latitude <= 90):
        raise ValueError(f"Invalid latitude: {lat!r}")
    if not (math.isfinite(longitude) and -180 <= longitude <= 180):
        raise ValueError(f"Invalid longitude: {lng!r}")
    return latitude, longitude


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two points (haversine)."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def format_distance(meters: float) -> str:
    """Human-readable distance, e.g. "約350公尺" or "約1.2公里"."""
    if meters < 1000:
        return f"約{meters:.0f}公尺"
    return f"約{meters / 1000:.1f}公里"


def directions_url(lat: float, lng: float) -> str:
    """Map link for a coordinate."""
    return f"https://maps.google.com/?q={lat:f},{lng:f}"
