"""
Food Diary MQTT Schemas
=======================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages and in-process events.

Public API
----------
Common Types:
    Timestamp: ISO 8601 timestamp wrapper

Place Types:
    PlaceRecord, CandidatePlace, make_place_id

Notification Types:
    ArrivalNotification, PermissionRequest

Device Event Types:
    AuthorizationStatus, LocationFix, RegionEntered, MonitoringFailed,
    AuthorizationChanged, NotificationTapped
"""

from .common import Timestamp
from .place import CandidatePlace, PlaceRecord, make_place_id, round_half_away
from .notification import ArrivalNotification, PermissionRequest
from .device_event import (
    AuthorizationStatus,
    AuthorizationChanged,
    LocationFix,
    MonitoringFailed,
    NotificationTapped,
    RegionEntered,
)

__all__ = [
    # Common types
    'Timestamp',
    # Place types
    'CandidatePlace',
    'PlaceRecord',
    'make_place_id',
    'round_half_away',
    # Notification types
    'ArrivalNotification',
    'PermissionRequest',
    # Device events
    'AuthorizationStatus',
    'AuthorizationChanged',
    'LocationFix',
    'MonitoringFailed',
    'NotificationTapped',
    'RegionEntered',
]
