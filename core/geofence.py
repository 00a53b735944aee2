"""
Geofence evaluation.

Great-circle distance between two coordinates (haversine) and the
within-radius verdict used to gate access requests to physical presence.
"""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """A point in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class GeofenceVerdict:
    """Result of evaluating a location against a geofence."""

    distance_km: float
    within_range: bool


def haversine_distance(a: Coordinates, b: Coordinates, radius_km: float = EARTH_RADIUS_KM) -> float:
    """
    Great-circle distance between two points in kilometers.

    Args:
        a: First point
        b: Second point
        radius_km: Sphere radius (Earth by default)

    Returns:
        Distance in kilometers, 0.0 for coincident points
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    # rounding can push h just outside [0, 1] near antipodes
    h = min(1.0, max(0.0, h))

    return radius_km * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class Geofence:
    """Fixed-radius circular boundary around a target coordinate."""

    def __init__(self, target: Coordinates, radius_km: float = 1.0):
        if radius_km <= 0:
            raise ValueError("Geofence radius must be positive")
        self.target = target
        self.radius_km = radius_km

    @classmethod
    def from_settings(cls, settings) -> "Geofence":
        """Build the configured access geofence."""
        return cls(
            Coordinates(settings.target_latitude, settings.target_longitude),
            settings.access_radius_km,
        )

    def evaluate(self, location: Coordinates) -> GeofenceVerdict:
        distance = haversine_distance(location, self.target)
        return GeofenceVerdict(distance_km=distance, within_range=distance <= self.radius_km)

    def contains(self, location: Coordinates) -> bool:
        return self.evaluate(location).within_range

    def __repr__(self) -> str:
        return (
            f"Geofence(target=({self.target.latitude}, {self.target.longitude}), "
            f"radius_km={self.radius_km})"
        )
