"""
Notification Message Schemas
============================

Bounded Context: Outbound user notifications

Message Flow:
    ArrivalNotifier → ArrivalNotification → NotificationPublisher → MQTT → device

Design:
- ArrivalNotification: one user-facing notification (unique id per emission)
- PermissionRequest: asks the device to prompt for notification permission
- Both carry a "type" discriminator on the wire
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .common import Timestamp, require

ARRIVAL_TYPE = "arrival"
PERMISSION_REQUEST_TYPE = "permission_request"


@dataclass(frozen=True)
class ArrivalNotification:
    """
    Immutable notification shown when the user arrives at a saved place.

    Attributes:
        notification_id: Unique per emission (never reused)
        title: Notification title
        body: Place name plus optional notes preview
        payload: Data handed back on tap ({"place_id": ...})
        timestamp: Creation time
    """
    notification_id: str
    title: str
    body: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: Timestamp = field(default_factory=Timestamp.now)

    def __post_init__(self):
        if not self.notification_id:
            raise ValueError("notification_id cannot be empty")

    @property
    def place_id(self) -> str:
        return self.payload.get('place_id', '')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': ARRIVAL_TYPE,
            'notification_id': self.notification_id,
            'title': self.title,
            'body': self.body,
            'payload': dict(self.payload),
            'timestamp': self.timestamp.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ArrivalNotification':
        try:
            return cls(
                notification_id=str(require(data, 'notification_id')),
                title=str(require(data, 'title')),
                body=str(require(data, 'body')),
                payload=dict(data.get('payload') or {}),
                timestamp=Timestamp(value=require(data, 'timestamp')),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid ArrivalNotification data: {e}") from e


@dataclass(frozen=True)
class PermissionRequest:
    """Request for the device to ask the user for notification permission."""
    options: List[str] = field(default_factory=lambda: ["alert", "sound", "badge"])
    timestamp: Timestamp = field(default_factory=Timestamp.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': PERMISSION_REQUEST_TYPE,
            'options': list(self.options),
            'timestamp': self.timestamp.to_dict(),
        }
