"""
fooddiary_arrivals - Arrival notifications for saved food diary places

Bounded Context: Geofence-triggered arrival notifications
Responsibilities:
  - Keep the monitored region set in step with the place store
  - Notify on arrival at a saved place (with a notes preview)
  - Route notification taps to the UI exactly once
  - Foreground proximity banner
  - Nearby place search

Architecture:
  - RegionReconciler: which places to monitor under the region ceiling
  - ArrivalNotifier: region entered → notification
  - GeofenceMonitor: in-process region monitoring from location fixes
  - DuckDBPlaceStore: persisted place records
  - ArrivalService: wiring + control-plane commands
"""

from .config import (
    MQTTConfig,
    MonitoringConfig,
    NotificationConfig,
    ProximityConfig,
    SearchConfig,
    ServiceConfig,
)
from .event_bus import EventBus
from .monitor import GeofenceMonitor
from .notifier import ArrivalNotifier, build_body, notes_preview
from .pending import PendingPlaceChannel
from .proximity import ProximityBanner, ProximityMatch
from .reconciler import ReconcileResult, RegionReconciler
from .search import GooglePlacesSearchProvider, SearchCoordinator
from .service import ArrivalService
from .store import (
    DuckDBPlaceStore,
    DuplicatePlaceError,
    PlaceNotFoundError,
    PlaceStoreError,
)

__all__ = [
    "MQTTConfig",
    "MonitoringConfig",
    "NotificationConfig",
    "ProximityConfig",
    "SearchConfig",
    "ServiceConfig",
    "EventBus",
    "GeofenceMonitor",
    "ArrivalNotifier",
    "build_body",
    "notes_preview",
    "PendingPlaceChannel",
    "ProximityBanner",
    "ProximityMatch",
    "ReconcileResult",
    "RegionReconciler",
    "GooglePlacesSearchProvider",
    "SearchCoordinator",
    "ArrivalService",
    "DuckDBPlaceStore",
    "DuplicatePlaceError",
    "PlaceNotFoundError",
    "PlaceStoreError",
]
