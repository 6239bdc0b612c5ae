"""Address lookup through the Google Geocoding API."""

import logging
from dataclasses import dataclass

import requests

from .exceptions import GeocodeError

logger = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


@dataclass
class Location:
    """A geocoded place."""
    latitude: float
    longitude: float
    address: str


class Geocoder:
    """Resolves free-text addresses to coordinates and back."""

    def __init__(self, api_key: str, timeout: float = 10, url: str = GEOCODE_URL):
        if not api_key:
            raise ValueError("Google Maps API key is required")
        self.api_key = api_key
        self.timeout = timeout
        self.url = url
        self.session = requests.Session()

    def geocode(self, address: str) -> Location:
        """
        Look up an address.

        Raises:
            GeocodeError: If the lookup fails or finds nothing.
        """
        result = self._first_result({"address": address}, f"address {address!r}")
        try:
            coords = result["geometry"]["location"]
            latitude, longitude = float(coords["lat"]), float(coords["lng"])
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Geocoding result for address {address!r} has no usable location: {e!r}")
            raise GeocodeError(f"Geocoding result for address {address!r} has no location") from e
        return Location(
            latitude=latitude,
            longitude=longitude,
            address=result.get("formatted_address", address),
        )

    def reverse_geocode(self, lat: float, lng: float) -> Location:
        """
        Look up the address of a coordinate.

        Raises:
            GeocodeError: If the lookup fails or finds nothing.
        """
        result = self._first_result({"latlng": f"{lat},{lng}"}, f"coordinates {lat}, {lng}")
        return Location(latitude=lat, longitude=lng, address=result.get("formatted_address", ""))

    def _first_result(self, params: dict, what: str) -> dict:
        try:
            response = self.session.get(
                self.url,
                params={**params, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Geocoding request for {what} failed: {e}")
            raise GeocodeError(f"Geocoding request for {what} failed: {e}") from e

        status = data.get("status")
        results = data.get("results") or []
        if status not in (None, "OK") or not results:
            raise GeocodeError(f"No results found for {what} (status {status})")
        return results[0]
