"""
Capability interfaces the arrival core depends on.

Each external collaborator is reduced to the narrow surface the core
actually calls, so tests can substitute fakes and the service can swap the
in-process geofence monitor for a device-backed one.
"""

from typing import Any, Callable, Dict, List, Optional, Protocol

from fooddiary_geofence import Coordinate
from fooddiary_mqtt.schemas import CandidatePlace, PlaceRecord


class LocationMonitor(Protocol):
    """Region monitoring (platform geofencing or GeofenceMonitor)."""

    def watch(
        self,
        region_id: str,
        center_lat: float,
        center_lon: float,
        radius_m: float,
        notify_on_entry: bool = True,
        notify_on_exit: bool = False,
    ) -> None: ...

    def unwatch(self, region_id: str) -> None: ...

    def list_watched(self) -> List[str]: ...


class NotificationSink(Protocol):
    """Local notification delivery."""

    def request_permission(self) -> bool: ...

    def send(
        self,
        notification_id: str,
        title: str,
        body: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool: ...


class PlaceSearchProvider(Protocol):
    """Nearby place search."""

    def search(self, coordinate: Coordinate) -> List[CandidatePlace]: ...


class PlaceStore(Protocol):
    """Saved place records keyed by place_id."""

    def fetch_all(self) -> List[PlaceRecord]: ...

    def get(self, place_id: str) -> Optional[PlaceRecord]: ...

    def insert(self, record: PlaceRecord) -> None: ...

    def update(self, record: PlaceRecord) -> None: ...

    def delete(self, place_id: str) -> None: ...

    def add_listener(self, listener: Callable[[str, str], None]) -> None:
        """listener(operation, place_id) runs after every mutation attempt."""
