"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for structured logging.

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, notification, device, error
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - notification.*: Outbound notifications
    - device.*: Inbound device events
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    MQTT_DISCONNECTED = "mqtt.disconnected"
    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"

    # ========== Notification Events ==========
    NOTIFICATION_SENT = "notification.sent"
    """Arrival notification handed to the broker."""

    NOTIFICATION_PERMISSION_REQUESTED = "notification.permission_requested"

    # ========== Device Events ==========
    DEVICE_LOCATION_RECEIVED = "device.location.received"
    DEVICE_AUTHORIZATION_RECEIVED = "device.authorization.received"
    DEVICE_TAP_RECEIVED = "device.tap.received"

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    DESERIALIZATION_ERROR = "error.deserialization"
    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    CALLBACK_ERROR = "error.callback"
    """User callback raised while handling a device event."""

