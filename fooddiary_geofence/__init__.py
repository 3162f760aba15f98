"""
Food Diary Geofence
===================

Bounded Context: Geographic regions for arrival detection.

Architecture:

    fooddiary_geofence/
    └── geometry/          # Pure geometry (immutable, stateless)
        ├── shapes.py      # Coordinate, CircularRegion
        ├── distance.py    # Haversine (scalar + numpy)
        └── detector.py    # RegionDetector (stateless detection logic)

Usage:

    from fooddiary_geofence import Coordinate, CircularRegion, RegionDetector

    region = CircularRegion(
        region_id="Joe's Diner_40.7123_-74.0099",
        center=Coordinate(40.7123, -74.0099),
        radius_m=150,
    )
    entered, _, state = RegionDetector.detect_entries(
        [region], Coordinate(40.7124, -74.0098), state
    )
"""

from fooddiary_geofence.geometry import (
    EARTH_RADIUS_M,
    METERS_PER_MILE,
    haversine_m,
    haversine_many_m,
    Coordinate,
    CircularRegion,
    RegionDetector,
)

__all__ = [
    "EARTH_RADIUS_M",
    "METERS_PER_MILE",
    "haversine_m",
    "haversine_many_m",
    "Coordinate",
    "CircularRegion",
    "RegionDetector",
]

__version__ = "1.0.0"
