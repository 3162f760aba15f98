"""
Software geofence monitor.

In-process implementation of the location-monitoring capability, driven by
location fixes from the device. Mirrors platform region monitoring:

- A fixed ceiling on simultaneously monitored regions; a watch beyond it
  reports MonitoringFailed("region limit exceeded") and is not armed
- Entry means crossing the boundary. A newly watched region takes its
  starting side from the last known fix; with no fix yet, its first
  evaluated fix only records the side and does not fire
- Failures are reported as events only, never retried

Thread Safety:
- Region dict and inside-state guarded by a lock
- Snapshot pattern: events are emitted after the lock is released
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from fooddiary_geofence import CircularRegion, Coordinate, RegionDetector
from fooddiary_mqtt.schemas import LocationFix, MonitoringFailed, RegionEntered

logger = logging.getLogger(__name__)

REGION_LIMIT_EXCEEDED = "region limit exceeded"


class GeofenceMonitor:
    """
    Example:
        monitor = GeofenceMonitor(emit=bus.emit, max_regions=20)
        monitor.watch("Joe's Diner_40.7123_-74.0099", 40.7123, -74.0099, 150.0)
        monitor.update_location(LocationFix(latitude=40.7, longitude=-74.0))
    """

    def __init__(self, emit: Callable[[Any], Any], max_regions: int = 20):
        if max_regions < 1:
            raise ValueError(f"max_regions must be >= 1, got {max_regions}")
        self._emit = emit
        self.max_regions = max_regions
        self._regions: Dict[str, CircularRegion] = {}
        self._inside: Dict[str, bool] = {}
        self._last_point: Optional[Coordinate] = None
        self._lock = threading.Lock()

    def watch(
        self,
        region_id: str,
        center_lat: float,
        center_lon: float,
        radius_m: float,
        notify_on_entry: bool = True,
        notify_on_exit: bool = False,
    ) -> None:
        try:
            region = CircularRegion(
                region_id=region_id,
                center=Coordinate(center_lat, center_lon),
                radius_m=radius_m,
                notify_on_entry=notify_on_entry,
                notify_on_exit=notify_on_exit,
            )
        except ValueError as e:
            self._fail(region_id, str(e))
            return

        with self._lock:
            at_limit = region_id not in self._regions and len(self._regions) >= self.max_regions
            if not at_limit:
                self._regions[region_id] = region
                # Starting side comes from the last fix, if any
                if self._last_point is not None:
                    self._inside[region_id] = region.contains(self._last_point)
                else:
                    self._inside.pop(region_id, None)

        if at_limit:
            self._fail(region_id, REGION_LIMIT_EXCEEDED)

    def unwatch(self, region_id: str) -> None:
        with self._lock:
            self._regions.pop(region_id, None)
            self._inside.pop(region_id, None)

    def list_watched(self) -> List[str]:
        with self._lock:
            return list(self._regions)

    def get_region(self, region_id: str) -> CircularRegion:
        with self._lock:
            return self._regions[region_id]

    def update_location(self, fix: LocationFix) -> List[str]:
        """Evaluate a fix against every region; returns the ids entered."""
        try:
            point = Coordinate(fix.latitude, fix.longitude)
        except ValueError as e:
            logger.warning(f"⚠️ Ignoring invalid location fix: {e}")
            return []

        with self._lock:
            self._last_point = point
            regions = list(self._regions.values())
            entered, _, new_state = RegionDetector.detect_entries(regions, point, self._inside)
            watched = {r.region_id for r in regions}
            self._inside = {k: v for k, v in new_state.items() if k in watched}

        for region_id in entered:
            logger.info(f"📍 Entered region {region_id}")
            self._emit(RegionEntered(region_id=region_id))
        return entered

    def _fail(self, region_id: str, error: str) -> None:
        logger.warning(f"⚠️ Monitoring failed for {region_id or '<unknown>'}: {error}")
        self._emit(MonitoringFailed(region_id=region_id, error=error))
