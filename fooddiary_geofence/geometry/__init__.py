"""
Geometry Layer
==============

Bounded Context: Pure geographic shapes and spatial queries.

Responsibilities:
- Coordinate and circular region representation (immutable)
- Great-circle distance
- Inside/entry detection against location fixes
- NO state, NO notifications, NO persistence
"""

from fooddiary_geofence.geometry.distance import (
    EARTH_RADIUS_M,
    METERS_PER_MILE,
    haversine_m,
    haversine_many_m,
)
from fooddiary_geofence.geometry.shapes import Coordinate, CircularRegion
from fooddiary_geofence.geometry.detector import RegionDetector

__all__ = [
    "EARTH_RADIUS_M",
    "METERS_PER_MILE",
    "haversine_m",
    "haversine_many_m",
    "Coordinate",
    "CircularRegion",
    "RegionDetector",
]
