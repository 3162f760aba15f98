"""
Geographic Shapes Module
========================

Pure geographic representations - NO state, NO side effects.

Design:
- Immutable shapes (frozen dataclass pattern)
- Validation at construction (fail-fast)
- Haversine distance for containment (spherical earth, meters)
- Thread-safe (immutable)
"""

from dataclasses import dataclass
from typing import Tuple

from fooddiary_geofence.geometry.distance import haversine_m


@dataclass(frozen=True)
class Coordinate:
    """
    Immutable WGS84 coordinate in decimal degrees.

    Attributes:
        latitude: Degrees in [-90, 90]
        longitude: Degrees in [-180, 180]
    """

    latitude: float
    longitude: float

    def __post_init__(self):
        """Validate coordinate ranges."""
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Invalid longitude: {self.longitude}")

    @classmethod
    def from_tuple(cls, pair: Tuple[float, float]) -> "Coordinate":
        """Build from a (latitude, longitude) pair."""
        return cls(latitude=float(pair[0]), longitude=float(pair[1]))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def distance_to(self, other: "Coordinate") -> float:
        """Great-circle distance to another coordinate, in meters."""
        return haversine_m(self.latitude, self.longitude, other.latitude, other.longitude)


@dataclass(frozen=True)
class CircularRegion:
    """
    Immutable circular geofence.

    Design:
    - Entry/exit flags mirror platform region monitoring
    - region_id is opaque to geometry (callers use place ids)

    Attributes:
        region_id: Unique identifier for this region
        center: Region center
        radius_m: Radius in meters (> 0)
        notify_on_entry: Whether crossing into the region is reported
        notify_on_exit: Whether crossing out of the region is reported
    """

    region_id: str
    center: Coordinate
    radius_m: float
    notify_on_entry: bool = True
    notify_on_exit: bool = False

    def __post_init__(self):
        """Validate region."""
        if not self.region_id:
            raise ValueError("region_id cannot be empty")
        if self.radius_m <= 0:
            raise ValueError(f"radius_m must be > 0, got {self.radius_m}")

    def contains(self, point: Coordinate) -> bool:
        """
        Check if a point lies inside the region (boundary inclusive).

        Args:
            point: Coordinate to test

        Returns:
            True if distance from center <= radius
        """
        return self.center.distance_to(point) <= self.radius_m
