"""
Region Monitor Reconciler.

Decides which saved places are geofence-monitored under the platform's
ceiling on simultaneously monitored regions, and rebuilds the monitored set
from scratch on every pass.

Selection Policy:
- Places sorted by name, ties broken by place_id
- The first max_regions places are monitored; the rest are dropped (logged)

Rebuild Protocol:
1. Unwatch every currently monitored region
2. If authorization allows monitoring, watch one entry-only circular region
   per selected place (region id == place id)
3. Otherwise arm nothing, but keep the intended set for inspection;
   an AuthorizationChanged event triggers the next pass

Concurrency:
- request() serialises passes with a non-reentrant guard. A request that
  arrives while a pass is running is coalesced into exactly one follow-up
  pass, which reads the store afresh.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from fooddiary_mqtt.schemas import AuthorizationStatus, PlaceRecord

from .capabilities import LocationMonitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """
    Snapshot of one reconciliation pass.

    Attributes:
        intended: Region ids that should be monitored (name order)
        armed: Region ids actually watched in this pass
        unwatched: Number of regions stopped before rebuilding
        dropped: Places beyond the region ceiling
        authorization: Authorization level the pass ran under
    """
    intended: Tuple[str, ...]
    armed: Tuple[str, ...]
    unwatched: int
    dropped: int
    authorization: AuthorizationStatus

    @property
    def monitoring_active(self) -> bool:
        return bool(self.armed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intended': list(self.intended),
            'armed': list(self.armed),
            'unwatched': self.unwatched,
            'dropped': self.dropped,
            'authorization': self.authorization.value,
        }


class RegionReconciler:
    """
    Example:
        reconciler = RegionReconciler(max_regions=20, region_radius_m=150.0)
        result = reconciler.reconcile(store.fetch_all(), AuthorizationStatus.ALWAYS, monitor)
        print(result.armed)
    """

    def __init__(self, max_regions: int = 20, region_radius_m: float = 150.0):
        if max_regions < 1:
            raise ValueError(f"max_regions must be >= 1, got {max_regions}")
        if region_radius_m <= 0:
            raise ValueError(f"region_radius_m must be > 0, got {region_radius_m}")

        self.max_regions = max_regions
        self.region_radius_m = region_radius_m

        self._lock = threading.Lock()
        self._running = False
        self._pending = False
        self._last_result: Optional[ReconcileResult] = None

    @property
    def last_result(self) -> Optional[ReconcileResult]:
        with self._lock:
            return self._last_result

    def select(self, places: Sequence[PlaceRecord]) -> Tuple[List[PlaceRecord], int]:
        """First max_regions places by (name, place_id), plus the dropped count."""
        ordered = sorted(places, key=lambda p: (p.name, p.place_id))
        selected = ordered[:self.max_regions]
        return selected, len(ordered) - len(selected)

    def reconcile(
        self,
        all_places: Sequence[PlaceRecord],
        authorization: AuthorizationStatus,
        monitor: LocationMonitor,
    ) -> ReconcileResult:
        """Run one full rebuild of the monitored region set."""
        currently_watched = list(monitor.list_watched())
        for region_id in currently_watched:
            monitor.unwatch(region_id)

        selected, dropped = self.select(all_places)
        intended = tuple(p.place_id for p in selected)

        if dropped:
            logger.info(
                f"📉 {dropped} place(s) not monitored (limit {self.max_regions} regions)"
            )

        armed: List[str] = []
        if selected and authorization.allows_monitoring:
            for place in selected:
                monitor.watch(
                    place.place_id,
                    place.latitude,
                    place.longitude,
                    self.region_radius_m,
                    notify_on_entry=True,
                    notify_on_exit=False,
                )
                armed.append(place.place_id)
        elif selected:
            logger.info(
                f"⏸️ Authorization '{authorization.value}' does not allow monitoring; "
                f"{len(intended)} region(s) pending"
            )

        result = ReconcileResult(
            intended=intended,
            armed=tuple(armed),
            unwatched=len(currently_watched),
            dropped=dropped,
            authorization=authorization,
        )
        with self._lock:
            self._last_result = result

        logger.debug(
            f"🔁 Reconciled: unwatched={result.unwatched} armed={len(result.armed)} "
            f"intended={len(result.intended)}"
        )
        return result

    def request(
        self,
        load_places: Callable[[], Sequence[PlaceRecord]],
        get_authorization: Callable[[], AuthorizationStatus],
        monitor: LocationMonitor,
    ) -> Optional[ReconcileResult]:
        """
        Reconcile unless a pass is already running.

        Returns the result of the last pass this call ran, or None if the
        request was coalesced into a pass owned by another caller.
        """
        with self._lock:
            if self._running:
                self._pending = True
                logger.debug("🔁 Reconcile already running; coalescing request")
                return None
            self._running = True

        try:
            while True:
                with self._lock:
                    self._pending = False
                result = self.reconcile(load_places(), get_authorization(), monitor)
                with self._lock:
                    if not self._pending:
                        self._running = False
                        return result
        except BaseException:
            with self._lock:
                self._running = False
                self._pending = False
            raise
