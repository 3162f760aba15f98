"""
Foreground proximity banner.

On foreground and refresh events the nearest saved place within the
threshold (default 150 m) is surfaced as a banner. Dismissal suppresses the
banner until the next explicit refresh; foreground events keep it suppressed.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from fooddiary_geofence import Coordinate, RegionDetector
from fooddiary_mqtt.schemas import PlaceRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProximityMatch:
    """Nearest saved place within the threshold."""
    place: PlaceRecord
    distance_m: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'place': self.place.to_dict(),
            'distance_m': round(self.distance_m, 1),
        }


def find_nearest(
    current: Coordinate,
    places: Sequence[PlaceRecord],
    threshold_m: float,
) -> Optional[ProximityMatch]:
    """Nearest place with distance <= threshold_m; first wins ties."""
    found = RegionDetector.nearest_within(current, [p.coordinate for p in places], threshold_m)
    if found is None:
        return None
    index, distance = found
    return ProximityMatch(place=places[index], distance_m=distance)


class ProximityBanner:
    """
    Example:
        banner = ProximityBanner(threshold_m=150.0)
        match = banner.on_foreground(current, store.fetch_all())
        banner.dismiss()
        banner.refresh(current, store.fetch_all())  # visible again
    """

    def __init__(self, threshold_m: float = 150.0):
        if threshold_m <= 0:
            raise ValueError(f"threshold_m must be > 0, got {threshold_m}")
        self.threshold_m = threshold_m
        self._lock = threading.Lock()
        self._match: Optional[ProximityMatch] = None
        self._dismissed = False

    def _evaluate(self, current: Coordinate, places: Sequence[PlaceRecord]) -> Optional[ProximityMatch]:
        match = find_nearest(current, places, self.threshold_m)
        with self._lock:
            self._match = match
            visible = None if self._dismissed else match
        if visible is not None:
            logger.debug(f"📍 Near {visible.place.name} ({visible.distance_m:.0f} m)")
        return visible

    def on_foreground(self, current: Coordinate, places: Sequence[PlaceRecord]) -> Optional[ProximityMatch]:
        """Recompute on app foreground; a dismissed banner stays hidden."""
        return self._evaluate(current, places)

    def refresh(self, current: Coordinate, places: Sequence[PlaceRecord]) -> Optional[ProximityMatch]:
        """User-initiated refresh: clears dismissal, then recomputes."""
        with self._lock:
            self._dismissed = False
        return self._evaluate(current, places)

    def dismiss(self) -> None:
        with self._lock:
            self._dismissed = True

    @property
    def dismissed(self) -> bool:
        with self._lock:
            return self._dismissed

    @property
    def visible(self) -> Optional[ProximityMatch]:
        """Banner currently shown, if any."""
        with self._lock:
            return None if self._dismissed else self._match
