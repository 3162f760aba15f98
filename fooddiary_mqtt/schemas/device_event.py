"""
Device Event Schemas
====================

Bounded Context: Events reported by the device (or the in-process monitor)

These replace platform delegate callbacks with explicit, typed events that
the core subscribes to.

Event Types:
- LocationFix: single coordinate fix from the device
- RegionEntered: a monitored region was entered
- MonitoringFailed: a region could not be monitored
- AuthorizationChanged: location authorization level changed
- NotificationTapped: user acted on a notification

Design:
- Frozen dataclasses (immutability)
- from_dict() validates and raises ValueError on bad payloads
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from .common import Timestamp, require


class AuthorizationStatus(str, Enum):
    """Location authorization levels."""
    NOT_DETERMINED = "not_determined"
    RESTRICTED = "restricted"
    DENIED = "denied"
    WHEN_IN_USE = "when_in_use"
    ALWAYS = "always"

    @property
    def allows_monitoring(self) -> bool:
        """Whether regions may actually be armed at this level."""
        return self in (AuthorizationStatus.ALWAYS, AuthorizationStatus.WHEN_IN_USE)


@dataclass(frozen=True)
class LocationFix:
    """One-shot location fix."""
    latitude: float
    longitude: float
    timestamp: Timestamp = field(default_factory=Timestamp.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'timestamp': self.timestamp.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocationFix':
        try:
            ts = data.get('timestamp')
            return cls(
                latitude=float(require(data, 'latitude')),
                longitude=float(require(data, 'longitude')),
                timestamp=Timestamp(value=ts) if ts else Timestamp.now(),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid LocationFix data: {e}") from e


@dataclass(frozen=True)
class RegionEntered:
    """A monitored region was entered."""
    region_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {'region_id': self.region_id}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegionEntered':
        return cls(region_id=str(require(data, 'region_id')))


@dataclass(frozen=True)
class MonitoringFailed:
    """
    A region could not be monitored.

    Attributes:
        region_id: Affected region (may be empty if the platform did not say)
        error: Human-readable reason (e.g. "region limit exceeded")
    """
    region_id: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {'region_id': self.region_id, 'error': self.error}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MonitoringFailed':
        return cls(
            region_id=str(data.get('region_id') or ''),
            error=str(require(data, 'error')),
        )


@dataclass(frozen=True)
class AuthorizationChanged:
    """Location authorization changed."""
    status: AuthorizationStatus

    def to_dict(self) -> Dict[str, Any]:
        return {'status': self.status.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthorizationChanged':
        try:
            return cls(status=AuthorizationStatus(require(data, 'status')))
        except ValueError as e:
            raise ValueError(f"Invalid AuthorizationChanged data: {e}") from e


@dataclass(frozen=True)
class NotificationTapped:
    """The user tapped a notification."""
    notification_id: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'notification_id': self.notification_id, 'payload': dict(self.payload)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NotificationTapped':
        payload = data.get('payload') or {}
        if not isinstance(payload, dict):
            raise ValueError(f"NotificationTapped payload must be an object, got {type(payload).__name__}")
        return cls(
            notification_id=str(require(data, 'notification_id')),
            payload=dict(payload),
        )
