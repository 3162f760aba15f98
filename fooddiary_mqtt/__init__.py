"""
Food Diary MQTT Communication Package
=====================================

Bounded Context: Communication Protocol between device and arrival service

The device (or a simulator) streams location fixes, authorization changes
and notification taps in; the service sends arrival notifications out.

Architecture:
- schemas/: Immutable data structures with type safety
- publishers/: Message producers (NotificationPublisher)
- subscriber: Device event consumer (DeviceEventSubscriber)
- logging/: Structured JSON logging for observability

Design Philosophy:
- Type Safety: Leverage Python typing for correctness
- Immutability: Use frozen dataclasses for message DTOs
- Observability: Structured logs (JSON) for production queries

Public API
----------
Schemas:
    Timestamp, PlaceRecord, CandidatePlace, make_place_id
    ArrivalNotification, PermissionRequest
    AuthorizationStatus, LocationFix, RegionEntered, MonitoringFailed,
    AuthorizationChanged, NotificationTapped

Publishers:
    NotificationPublisher, BasePublisher

Subscriber:
    DeviceEventSubscriber

Logging:
    LogEvent, StructuredLogger, create_logger
"""

__version__ = "1.0.0"

from .schemas import (
    Timestamp,
    CandidatePlace,
    PlaceRecord,
    make_place_id,
    ArrivalNotification,
    PermissionRequest,
    AuthorizationStatus,
    AuthorizationChanged,
    LocationFix,
    MonitoringFailed,
    NotificationTapped,
    RegionEntered,
)

from .publishers import (
    BasePublisher,
    NotificationPublisher,
)

from .subscriber import DeviceEventSubscriber

from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'Timestamp',
    'CandidatePlace',
    'PlaceRecord',
    'make_place_id',
    'ArrivalNotification',
    'PermissionRequest',
    'AuthorizationStatus',
    'AuthorizationChanged',
    'LocationFix',
    'MonitoringFailed',
    'NotificationTapped',
    'RegionEntered',
    # Publishers
    'BasePublisher',
    'NotificationPublisher',
    # Subscriber
    'DeviceEventSubscriber',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
