"""
Great-Circle Distance
=====================

Haversine distance on a spherical earth.

Design:
- Scalar version for single region checks
- Vectorized numpy version for "distance to every saved place"
- Meters everywhere
"""

import math

import numpy as np

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_MILE = 1609.34


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distance between two coordinates in meters.

    Args:
        lat1: First latitude (degrees)
        lon1: First longitude (degrees)
        lat2: Second latitude (degrees)
        lon2: Second longitude (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def haversine_many_m(
    lat: float,
    lon: float,
    lats: np.ndarray,
    lons: np.ndarray,
) -> np.ndarray:
    """
    Distances from one origin to N points, in meters.

    Args:
        lat: Origin latitude (degrees)
        lon: Origin longitude (degrees)
        lats: Shape (N,) latitudes
        lons: Shape (N,) longitudes

    Returns:
        Shape (N,) float64 array of distances
    """
    lats = np.asarray(lats, dtype=np.float64)
    lons = np.asarray(lons, dtype=np.float64)
    if lats.shape != lons.shape:
        raise ValueError(f"lats/lons shape mismatch: {lats.shape} vs {lons.shape}")
    if lats.size == 0:
        return np.array([], dtype=np.float64)

    lat_rad = np.radians(lat)
    lats_rad = np.radians(lats)
    dlat = lats_rad - lat_rad
    dlon = np.radians(lons - lon)

    a = np.sin(dlat / 2) ** 2 + np.cos(lat_rad) * np.cos(lats_rad) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_M * c
