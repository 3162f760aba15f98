"""
Region Detector Module
======================

Stateless detection logic - applies region geometry to location fixes.

Design:
- Pure functions (no state)
- Dependency injection for external state (last inside/outside per region)
- Returns detection results + updated state
- Thread-safe (no mutations)
"""

from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from fooddiary_geofence.geometry.distance import haversine_many_m
from fooddiary_geofence.geometry.shapes import CircularRegion, Coordinate


class RegionDetector:
    """
    Stateless detector for applying circular regions to a location.

    Design Philosophy:
    - All methods are static (no instance state)
    - External state injected (inside_state)
    - Returns results + updated state (functional style)
    """

    @staticmethod
    def detect_inside(
        regions: List[CircularRegion],
        point: Coordinate,
    ) -> np.ndarray:
        """
        Check which regions contain a point.

        Args:
            regions: Regions to test
            point: Current location

        Returns:
            Boolean mask of shape (N,) where True = point inside region
        """
        if not regions:
            return np.array([], dtype=bool)

        lats = np.array([r.center.latitude for r in regions], dtype=np.float64)
        lons = np.array([r.center.longitude for r in regions], dtype=np.float64)
        radii = np.array([r.radius_m for r in regions], dtype=np.float64)

        distances = haversine_many_m(point.latitude, point.longitude, lats, lons)
        return distances <= radii

    @staticmethod
    def detect_entries(
        regions: List[CircularRegion],
        point: Coordinate,
        inside_state: Dict[str, bool],
    ) -> Tuple[List[str], List[str], Dict[str, bool]]:
        """
        Detect boundary crossings with per-region state.

        A region without previous state only records its current side; it
        never reports a crossing on its first evaluation.

        Args:
            regions: Regions to test
            point: Current location
            inside_state: External state {region_id: was_inside}

        Returns:
            Tuple of:
            - entered: region ids crossed outside -> inside (entry-enabled only)
            - exited: region ids crossed inside -> outside (exit-enabled only)
            - updated_state: New state dict (input is not mutated)
        """
        mask = RegionDetector.detect_inside(regions, point)

        entered: List[str] = []
        exited: List[str] = []
        new_state = dict(inside_state)

        for region, is_inside in zip(regions, mask):
            is_inside = bool(is_inside)
            previous = inside_state.get(region.region_id)

            if previous is not None and previous != is_inside:
                if is_inside and region.notify_on_entry:
                    entered.append(region.region_id)
                elif not is_inside and region.notify_on_exit:
                    exited.append(region.region_id)

            new_state[region.region_id] = is_inside

        return entered, exited, new_state

    @staticmethod
    def nearest_within(
        point: Coordinate,
        centers: Iterable[Coordinate],
        threshold_m: float,
    ) -> Optional[Tuple[int, float]]:
        """
        Find the nearest center within a distance threshold.

        Ties resolve to the first center in iteration order.

        Args:
            point: Current location
            centers: Candidate centers
            threshold_m: Maximum distance (inclusive)

        Returns:
            (index, distance_m) of the nearest center, or None if none qualify
        """
        centers = list(centers)
        if not centers:
            return None

        lats = np.array([c.latitude for c in centers], dtype=np.float64)
        lons = np.array([c.longitude for c in centers], dtype=np.float64)
        distances = haversine_many_m(point.latitude, point.longitude, lats, lons)

        index = int(np.argmin(distances))
        distance = float(distances[index])
        if distance > threshold_m:
            return None
        return index, distance
