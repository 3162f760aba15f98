"""
Notification Publisher
=====================

Bounded Context: Notification Delivery

Delivers arrival notifications and permission requests to the device over
MQTT. This is the notification capability the arrival core talks to.

Design:
- Inherits from BasePublisher (connection management)
- Formats ArrivalNotification / PermissionRequest to JSON
- send() mirrors the platform call: id, title, body, payload
- Never raises into the caller: failures are logged and return False

Message Flow:
    ArrivalNotifier → NotificationPublisher → MQTT Broker → device

Example:
    >>> from fooddiary_mqtt.publishers import NotificationPublisher
    >>> from fooddiary_mqtt.logging import create_logger
    >>>
    >>> publisher = NotificationPublisher(
    ...     broker_host="localhost",
    ...     topic="fooddiary/device/phone_01/notifications",
    ...     logger=create_logger("notifications", device_id="phone_01"),
    ... )
    >>> publisher.connect()
    >>> publisher.request_permission()
    >>> publisher.send("arrival-abc", "You've been here before", "Joe's Diner", {"place_id": "abc"})
"""

from typing import Any, Dict, Optional, Union

from .base import BasePublisher
from ..schemas import ArrivalNotification, PermissionRequest
from ..logging import LogEvent, StructuredLogger

OutboundMessage = Union[ArrivalNotification, PermissionRequest]


class NotificationPublisher(BasePublisher):
    """
    Publisher for user-facing notifications.

    Example:
        >>> publisher = NotificationPublisher(
        ...     broker_host="localhost",
        ...     topic="fooddiary/device/phone_01/notifications",
        ...     logger=logger,
        ... )
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "fooddiary_notification_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos,
        )

    def format_message(self, message: OutboundMessage) -> Dict[str, Any]:
        """
        Format a notification message to a JSON-compatible dict.

        Raises:
            ValueError: If the message cannot be serialized
        """
        try:
            return message.to_dict()
        except (AttributeError, TypeError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize notification message",
                exc_info=e,
            )
            raise ValueError(f"Failed to format notification message: {e}") from e

    def request_permission(self) -> bool:
        """Ask the device to prompt the user for notification permission."""
        success = self.publish(self.format_message(PermissionRequest()))
        if success:
            self.logger.info(
                event=LogEvent.NOTIFICATION_PERMISSION_REQUESTED,
                message="Requested notification permission",
                metadata={'topic': self.topic},
            )
        return success

    def send(
        self,
        notification_id: str,
        title: str,
        body: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Send one notification; returns False on any failure."""
        try:
            notification = ArrivalNotification(
                notification_id=notification_id,
                title=title,
                body=body,
                payload=dict(payload or {}),
            )
        except ValueError as e:
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Rejected invalid notification",
                exc_info=e,
            )
            return False
        return self.send_notification(notification)

    def send_notification(self, notification: ArrivalNotification) -> bool:
        """Publish a pre-built ArrivalNotification."""
        try:
            message_data = self.format_message(notification)
        except ValueError:
            return False

        success = self.publish(message_data)
        if success:
            self.logger.info(
                event=LogEvent.NOTIFICATION_SENT,
                message="Sent arrival notification",
                metadata={
                    'notification_id': notification.notification_id,
                    'place_id': notification.place_id,
                },
            )
        return success
