"""Data models for the garbage truck tracker."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional


# Feed column -> CollectionPoint field
FEED_FIELDS = {
    "_id": "point_id",
    "行政區": "district",
    "里別": "neighborhood",
    "分隊": "squad",
    "局編": "station_code",
    "車號": "vehicle_number",
    "路線": "route",
    "車次": "vehicle_trip",
    "抵達時間": "arrival_time",
    "離開時間": "departure_time",
    "地點": "location",
    "經度": "longitude",
    "緯度": "latitude",
}


@dataclass
class CollectionPoint:
    """One row of the collection catalog, as published by the feed."""
    location: str
    vehicle_number: str  # Route ID
    route: str  # Route display name
    latitude: str  # Raw feed value, parsed by the matcher
    longitude: str
    arrival_time: str  # Wall-clock time of day, e.g. "19:30" or "1930"
    departure_time: str = ""
    district: str = ""
    neighborhood: str = ""
    squad: str = ""
    station_code: str = ""
    vehicle_trip: str = ""
    point_id: str = ""

    @classmethod
    def from_feed(cls, row: Dict[str, Any]) -> "CollectionPoint":
        """Build a point from a feed row. Unknown keys are ignored."""
        values: Dict[str, str] = {}
        for key, value in row.items():
            name = FEED_FIELDS.get(key, key)
            if name in cls.__dataclass_fields__:
                values[name] = "" if value is None else str(value)
        for name in ("location", "vehicle_number", "route", "latitude", "longitude", "arrival_time"):
            values.setdefault(name, "")
        return cls(**values)


@dataclass(frozen=True)
class Stop:
    """A single stop on a route."""
    name: str
    latitude: float
    longitude: float
    time: str  # Time of day as listed in the catalog


@dataclass(frozen=True)
class Route:
    """A collection route (one vehicle)."""
    route_id: str
    name: str
    stops: tuple = ()


@dataclass(frozen=True)
class NearestStop:
    """A matched catalog entry with its distance and resolved arrival."""
    stop: Stop
    route: Route
    distance: float  # Meters from the query point
    eta: datetime  # Timezone-aware
    point: Optional[CollectionPoint] = None

    @property
    def stop_name(self) -> str:
        return self.stop.name

    @property
    def route_id(self) -> str:
        return self.route.route_id

    @property
    def route_name(self) -> str:
        return self.route.name

    @property
    def latitude(self) -> float:
        return self.stop.latitude

    @property
    def longitude(self) -> float:
        return self.stop.longitude


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive time window. A missing bound means unbounded on that side."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment > self.end:
            return False
        return True


class ReminderStatus(str, Enum):
    """Reminder lifecycle states. Everything but ACTIVE is terminal."""
    ACTIVE = "active"
    SENT = "sent"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not ReminderStatus.ACTIVE


@dataclass
class Reminder:
    """A one-shot reminder for a truck arriving at a stop."""
    user_id: str
    stop_name: str
    route_id: str
    eta: datetime
    advance_minutes: int
    status: ReminderStatus = ReminderStatus.ACTIVE
    reminder_id: Optional[str] = None  # Assigned by the store
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def notify_at(self) -> datetime:
        """Moment from which the notification is due."""
        return self.eta - timedelta(minutes=self.advance_minutes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.reminder_id,
            "userId": self.user_id,
            "stopName": self.stop_name,
            "routeId": self.route_id,
            "eta": self.eta.isoformat(),
            "advanceMinutes": self.advance_minutes,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reminder":
        created_at = data.get("createdAt")
        updated_at = data.get("updatedAt")
        return cls(
            reminder_id=data.get("id"),
            user_id=data["userId"],
            stop_name=data["stopName"],
            route_id=data["routeId"],
            eta=datetime.fromisoformat(data["eta"]),
            advance_minutes=int(data["advanceMinutes"]),
            status=ReminderStatus(data["status"]),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


@dataclass
class Favorite:
    """A saved place for a user."""
    name: str
    latitude: float
    longitude: float
    address: str = ""


@dataclass
class User:
    """A user and their saved places."""
    user_id: str
    favorites: List[Favorite] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "favorites": [
                {"name": f.name, "lat": f.latitude, "lng": f.longitude, "address": f.address}
                for f in self.favorites
            ],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        created_at = data.get("createdAt")
        updated_at = data.get("updatedAt")
        return cls(
            user_id=data["id"],
            favorites=[
                Favorite(name=f["name"], latitude=f["lat"], longitude=f["lng"], address=f.get("address", ""))
                for f in data.get("favorites", [])
            ],
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
