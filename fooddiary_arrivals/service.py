"""
Arrival Service - orchestrates the food diary arrival subsystem.

Wires the place store, region reconciler, geofence monitor, arrival
notifier, pending-place channel, proximity banner and place search
together, and exposes them as control-plane commands.

Event Flow:
    device → DeviceEventSubscriber → EventBus ─┬─ LocationFix → GeofenceMonitor
                                               ├─ AuthorizationChanged → reconcile
                                               └─ NotificationTapped → pending channel
    GeofenceMonitor → EventBus ─┬─ RegionEntered → ArrivalNotifier → notifications
                                └─ MonitoringFailed → log

Store Flow:
    save/update/delete → PlaceStore → mutation listener → reconcile
    (listeners fire even when the write fails; the error still reaches
    the caller)

Threading Model:
- paho-mqtt network threads deliver device events and commands
- Place search runs on the SearchCoordinator's thread pool
- Reconciliation is serialised by the reconciler's coalescing guard
"""

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Tuple

from fooddiary_geofence import Coordinate
from fooddiary_mqtt.schemas import (
    AuthorizationChanged,
    AuthorizationStatus,
    CandidatePlace,
    LocationFix,
    MonitoringFailed,
    NotificationTapped,
    PlaceRecord,
    RegionEntered,
)

from .capabilities import LocationMonitor, NotificationSink, PlaceStore
from .config import ServiceConfig
from .event_bus import EventBus
from .notifier import ArrivalNotifier
from .pending import PendingPlaceChannel
from .proximity import ProximityBanner, ProximityMatch
from .reconciler import ReconcileResult, RegionReconciler
from .search import SearchCoordinator
from .store import PlaceNotFoundError

logger = logging.getLogger(__name__)

RECENT_FAILURES = 10


def _require(command: Dict[str, Any], key: str) -> Any:
    value = command.get(key)
    if value is None or value == "":
        raise ValueError(f"Missing required field: {key}")
    return value


class ArrivalService:
    """
    Main arrival service.

    Usage:
        config = ServiceConfig.from_yaml("config/service_config.yaml")
        bus = EventBus()
        store = DuckDBPlaceStore.open(config.db_path)
        monitor = GeofenceMonitor(emit=bus.emit, max_regions=config.monitoring.max_regions)

        service = ArrivalService(config, store, monitor, notification_publisher, bus)
        service.register_commands(control_plane.command_registry)
        service.start()
    """

    def __init__(
        self,
        config: ServiceConfig,
        store: PlaceStore,
        monitor: LocationMonitor,
        notifications: NotificationSink,
        bus: EventBus,
        search: Optional[SearchCoordinator] = None,
        control_plane=None,  # MQTTControlPlane
        authorization: AuthorizationStatus = AuthorizationStatus.NOT_DETERMINED,
    ):
        self.config = config
        self.store = store
        self.monitor = monitor
        self.notifications = notifications
        self.bus = bus
        self.search_coordinator = search
        self.control_plane = control_plane

        self.reconciler = RegionReconciler(
            max_regions=config.monitoring.max_regions,
            region_radius_m=config.monitoring.region_radius_m,
        )
        self.pending = PendingPlaceChannel()
        self.notifier = ArrivalNotifier(
            sink=notifications,
            pending=self.pending,
            title=config.notification.title,
            preview_length=config.notification.preview_length,
        )
        self.banner = ProximityBanner(threshold_m=config.proximity.threshold_m)

        self._state_lock = threading.Lock()
        self._authorization = authorization
        self._last_location: Optional[Coordinate] = None
        self._monitoring_failures: Deque[MonitoringFailed] = deque(maxlen=RECENT_FAILURES)
        self._notifications_sent = 0

        self._unsubscribers = [
            bus.subscribe(RegionEntered, self._on_region_entered),
            bus.subscribe(MonitoringFailed, self._on_monitoring_failed),
            bus.subscribe(AuthorizationChanged, self._on_authorization_changed),
            bus.subscribe(NotificationTapped, self.notifier.on_notification_tapped),
            bus.subscribe(LocationFix, self._on_location_fix),
        ]
        store.add_listener(self._on_store_mutation)

        logger.info(f"ArrivalService initialized for device_id={config.device_id}")

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self) -> Optional[ReconcileResult]:
        """App launch: ask for notification permission, then reconcile once."""
        if not self.notifications.request_permission():
            logger.warning("⚠️ Notification permission request was not delivered")
        result = self.reconcile()
        logger.info("✅ Arrival service started")
        return result

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self.search_coordinator is not None:
            self.search_coordinator.shutdown()
        logger.info("✅ Arrival service stopped")

    @property
    def authorization(self) -> AuthorizationStatus:
        with self._state_lock:
            return self._authorization

    @property
    def last_location(self) -> Optional[Coordinate]:
        with self._state_lock:
            return self._last_location

    # ─────────────────────────────────────────────────────────────────────
    # Reconciliation
    # ─────────────────────────────────────────────────────────────────────

    def reconcile(self) -> Optional[ReconcileResult]:
        return self.reconciler.request(
            self.store.fetch_all,
            lambda: self.authorization,
            self.monitor,
        )

    def _on_store_mutation(self, operation: str, place_id: str) -> None:
        logger.debug(f"Store {operation} for {place_id}; reconciling")
        self.reconcile()

    # ─────────────────────────────────────────────────────────────────────
    # Place operations
    # ─────────────────────────────────────────────────────────────────────

    def find_saved(self, candidate: CandidatePlace) -> Optional[PlaceRecord]:
        return self.store.get(candidate.place_id)

    def save_place(self, candidate: CandidatePlace, notes: Optional[str] = None) -> Tuple[PlaceRecord, bool]:
        """
        Save a discovered place.

        Returns:
            (record, created). When the place id is already stored the
            existing record comes back with created=False.
        """
        existing = self.find_saved(candidate)
        if existing is not None:
            logger.info(f"📓 Already saved: {existing.name}")
            return existing, False

        record = PlaceRecord.create(candidate.name, candidate.coordinate, notes)
        self.store.insert(record)
        logger.info(f"📓 Saved place: {record.name} ({record.place_id})")
        return record, True

    def update_notes(self, place_id: str, notes: Optional[str]) -> PlaceRecord:
        record = self.store.get(place_id)
        if record is None:
            raise PlaceNotFoundError(f"Place not found: {place_id}")
        updated = record.with_notes(notes)
        self.store.update(updated)
        logger.info(f"📝 Notes updated for {updated.name}")
        return updated

    def delete_place(self, place_id: str) -> None:
        self.store.delete(place_id)
        logger.info(f"🗑️ Deleted place: {place_id}")

    def list_places(self) -> List[PlaceRecord]:
        return self.store.fetch_all()

    # ─────────────────────────────────────────────────────────────────────
    # Foreground UI
    # ─────────────────────────────────────────────────────────────────────

    def on_foreground(self, coordinate: Coordinate) -> Optional[ProximityMatch]:
        return self.banner.on_foreground(coordinate, self.store.fetch_all())

    def refresh(self, coordinate: Coordinate) -> Optional[ProximityMatch]:
        return self.banner.refresh(coordinate, self.store.fetch_all())

    def dismiss_banner(self) -> None:
        self.banner.dismiss()

    def take_pending_place(self) -> Optional[PlaceRecord]:
        """Consume the tapped place, resolved to its record if still saved."""
        place_id = self.pending.take()
        if place_id is None:
            return None
        record = self.store.get(place_id)
        if record is None:
            logger.debug(f"Pending place {place_id} is no longer saved")
        return record

    def search(self, coordinate: Coordinate, callback) -> Any:
        if self.search_coordinator is None:
            raise RuntimeError("Place search is not configured")
        return self.search_coordinator.start(coordinate, callback)

    # ─────────────────────────────────────────────────────────────────────
    # Event handlers (EventBus, MQTT threads)
    # ─────────────────────────────────────────────────────────────────────

    def _on_region_entered(self, event: RegionEntered) -> None:
        notification = self.notifier.on_region_entered(event.region_id, self.store)
        if notification is not None:
            with self._state_lock:
                self._notifications_sent += 1

    def _on_monitoring_failed(self, event: MonitoringFailed) -> None:
        logger.warning(f"⚠️ Geofence monitoring failed for {event.region_id or '<unknown>'}: {event.error}")
        with self._state_lock:
            self._monitoring_failures.append(event)

    def _on_authorization_changed(self, event: AuthorizationChanged) -> None:
        with self._state_lock:
            previous, self._authorization = self._authorization, event.status
        logger.info(f"🔐 Authorization {previous.value} → {event.status.value}")
        self.reconcile()

    def _on_location_fix(self, event: LocationFix) -> None:
        try:
            coordinate = Coordinate(event.latitude, event.longitude)
        except ValueError as e:
            logger.warning(f"⚠️ Ignoring invalid location fix: {e}")
            return
        with self._state_lock:
            self._last_location = coordinate
        update_location = getattr(self.monitor, "update_location", None)
        if update_location is not None:
            update_location(event)

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (called by Control Plane Thread)
    # ─────────────────────────────────────────────────────────────────────

    def register_commands(self, registry) -> None:
        """Register command handlers with a CommandRegistry."""
        registry.register("save_place", self._handle_save_place, "Save a place (name, latitude, longitude, notes)")
        registry.register("update_notes", self._handle_update_notes, "Edit notes of a saved place")
        registry.register("delete_place", self._handle_delete_place, "Delete a saved place")
        registry.register("list_places", self._handle_list_places, "List saved places")
        registry.register("reconcile", self._handle_reconcile, "Rebuild monitored regions")
        registry.register("foreground", self._handle_foreground, "App foregrounded: check proximity")
        registry.register("refresh", self._handle_refresh, "User refresh: reset banner dismissal")
        registry.register("dismiss_banner", self._handle_dismiss_banner, "Dismiss the proximity banner")
        registry.register("take_pending_place", self._handle_take_pending_place, "Consume the tapped place")
        registry.register("search", self._handle_search, "Search nearby places")
        registry.register("status", self._handle_status, "Service status")
        logger.info("Control handlers registered")

    def _coordinate_from(self, command: Dict[str, Any]) -> Coordinate:
        if command.get("latitude") is not None and command.get("longitude") is not None:
            return Coordinate(float(command["latitude"]), float(command["longitude"]))
        location = self.last_location
        if location is None:
            raise ValueError("No coordinate given and no location fix received yet")
        return location

    def _handle_save_place(self, command: Dict) -> Dict[str, Any]:
        candidate = CandidatePlace(
            name=str(_require(command, "name")),
            latitude=float(_require(command, "latitude")),
            longitude=float(_require(command, "longitude")),
        )
        record, created = self.save_place(candidate, command.get("notes"))
        return {"place": record.to_dict(), "created": created}

    def _handle_update_notes(self, command: Dict) -> Dict[str, Any]:
        record = self.update_notes(str(_require(command, "place_id")), command.get("notes"))
        return {"place": record.to_dict()}

    def _handle_delete_place(self, command: Dict) -> Dict[str, Any]:
        place_id = str(_require(command, "place_id"))
        self.delete_place(place_id)
        return {"place_id": place_id}

    def _handle_list_places(self, command: Dict) -> Dict[str, Any]:
        return {"places": [p.to_dict() for p in self.list_places()]}

    def _handle_reconcile(self, command: Dict) -> Dict[str, Any]:
        result = self.reconcile()
        if result is None:
            return {"coalesced": True}
        return result.to_dict()

    def _handle_foreground(self, command: Dict) -> Dict[str, Any]:
        match = self.on_foreground(self._coordinate_from(command))
        return {"banner": match.to_dict() if match else None}

    def _handle_refresh(self, command: Dict) -> Dict[str, Any]:
        match = self.refresh(self._coordinate_from(command))
        return {"banner": match.to_dict() if match else None}

    def _handle_dismiss_banner(self, command: Dict) -> Dict[str, Any]:
        self.dismiss_banner()
        return {"dismissed": True}

    def _handle_take_pending_place(self, command: Dict) -> Dict[str, Any]:
        record = self.take_pending_place()
        return {"place": record.to_dict() if record else None}

    def _handle_search(self, command: Dict) -> Dict[str, Any]:
        coordinate = self._coordinate_from(command)

        def deliver(candidates: List[CandidatePlace]) -> None:
            if self.control_plane is not None:
                self.control_plane.publish_status(
                    "search_results",
                    {"candidates": [c.to_dict() for c in candidates]},
                )

        self.search(coordinate, deliver)
        return {"started": True, "latitude": coordinate.latitude, "longitude": coordinate.longitude}

    def _handle_status(self, command: Dict) -> Dict[str, Any]:
        return self.get_status()

    def get_status(self) -> Dict[str, Any]:
        last = self.reconciler.last_result
        banner = self.banner.visible
        with self._state_lock:
            failures = [f.to_dict() for f in self._monitoring_failures]
            sent = self._notifications_sent
            authorization = self._authorization
        return {
            "device_id": self.config.device_id,
            "authorization": authorization.value,
            "watched": sorted(self.monitor.list_watched()),
            "last_reconcile": last.to_dict() if last else None,
            "notifications_sent": sent,
            "monitoring_failures": failures,
            "pending_place_id": self.pending.peek(),
            "banner": banner.to_dict() if banner else None,
        }
