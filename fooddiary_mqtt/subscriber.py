"""
Device Event Subscriber
======================

Bounded Context: Message Consumption

Receives device events (location fixes, authorization changes, notification
taps) from the broker and hands them to callbacks as typed events.

Design:
- Topic → (schema, callback) routing table
- Automatic deserialization with error handling
- A callback that raises is logged, never propagated into paho's thread

Message Flow:
    1. Subscriber receives JSON from MQTT
    2. Deserializes to typed events (LocationFix, AuthorizationChanged, NotificationTapped)
    3. Invokes the registered callback
    4. Continues listening (non-blocking)

Example:
    >>> from fooddiary_mqtt import DeviceEventSubscriber, create_logger
    >>>
    >>> subscriber = DeviceEventSubscriber(
    ...     broker_host="localhost",
    ...     topics={
    ...         'location': "fooddiary/device/phone_01/location",
    ...         'authorization': "fooddiary/device/phone_01/authorization",
    ...         'notification_tap': "fooddiary/device/phone_01/notification_tap",
    ...     },
    ...     on_location=bus.emit,
    ...     on_authorization=bus.emit,
    ...     on_notification_tap=bus.emit,
    ...     logger=create_logger("device_events"),
    ... )
    >>> subscriber.connect()
"""

import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import paho.mqtt.client as mqtt

from .client import create_client, is_failure
from .logging import LogEvent, StructuredLogger
from .schemas import AuthorizationChanged, LocationFix, NotificationTapped

EVENT_KINDS = ('location', 'authorization', 'notification_tap')


@dataclass(frozen=True)
class _Route:
    kind: str
    schema: Any
    callback: Callable[[Any], None]
    log_event: LogEvent


class DeviceEventSubscriber:
    """
    MQTT subscriber for device events.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        topics: Mapping of event kind ('location', 'authorization',
            'notification_tap') to MQTT topic
        client_id: MQTT client identifier
        logger: Structured logger instance

    Thread Safety:
        Callbacks are invoked on paho-mqtt's network thread.
    """

    def __init__(
        self,
        broker_host: str,
        topics: Dict[str, str],
        on_location: Callable[[LocationFix], None],
        on_authorization: Callable[[AuthorizationChanged], None],
        on_notification_tap: Callable[[NotificationTapped], None],
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "fooddiary_device_subscriber",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        missing = [kind for kind in EVENT_KINDS if kind not in topics]
        if missing:
            raise ValueError(f"Missing device topics: {missing}")

        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topics = dict(topics)
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self._routes: Dict[str, _Route] = {
            topics['location']: _Route(
                'location', LocationFix, on_location, LogEvent.DEVICE_LOCATION_RECEIVED),
            topics['authorization']: _Route(
                'authorization', AuthorizationChanged, on_authorization,
                LogEvent.DEVICE_AUTHORIZATION_RECEIVED),
            topics['notification_tap']: _Route(
                'notification_tap', NotificationTapped, on_notification_tap,
                LogEvent.DEVICE_TAP_RECEIVED),
        }

        self.client = create_client(client_id, username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()
        self._stats_lock = threading.Lock()
        self._message_count = {kind: 0 for kind in EVENT_KINDS}
        self._error_count = 0

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        """Subscribe to every device topic once connected."""
        if is_failure(reason_code):
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker (rc={reason_code})",
                metadata={'broker': self.broker},
            )
            return

        self._connected.set()
        for topic in self._routes:
            client.subscribe(topic, qos=self.qos)

        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker and subscribed to device topics",
            metadata={'broker': self.broker, 'topics': list(self._routes)},
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)},
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        route = self._routes.get(msg.topic)
        if route is None:
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message=f"Received message from unknown topic: {msg.topic}",
            )
            return

        try:
            data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._record_error()
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode JSON message",
                exc_info=e,
                metadata={'topic': msg.topic},
            )
            return

        self.dispatch(route, data, topic=msg.topic)

    def dispatch(self, route: _Route, data: Any, topic: str = '') -> bool:
        """Validate one decoded payload and invoke its callback."""
        if not isinstance(data, dict):
            self._record_error()
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message=f"Expected a JSON object for {route.kind}",
                metadata={'topic': topic},
            )
            return False

        try:
            event = route.schema.from_dict(data)
        except ValueError as e:
            self._record_error()
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message=f"{route.kind} message failed schema validation",
                exc_info=e,
                metadata={'topic': topic, 'data': data},
            )
            return False

        with self._stats_lock:
            self._message_count[route.kind] += 1

        self.logger.debug(
            event=route.log_event,
            message=f"Received {route.kind} event",
            metadata={'topic': topic},
        )

        try:
            route.callback(event)
        except Exception as e:
            self._record_error()
            self.logger.error(
                event=LogEvent.CALLBACK_ERROR,
                message=f"Callback failed for {route.kind} event",
                exc_info=e,
                metadata={'topic': topic},
            )
            return False
        return True

    def _record_error(self) -> None:
        with self._stats_lock:
            self._error_count += 1

    def connect(self, timeout: float = 10.0) -> bool:
        """Connect, start the network loop and wait for the subscription."""
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()
        except OSError as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': self.broker},
            )
            return False

        if self._connected.wait(timeout=timeout):
            return True

        self.logger.error(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message="Connection timeout",
            metadata={'timeout': timeout},
        )
        return False

    def stop(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self._connected.clear()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Subscriber stopped",
            metadata=self.get_stats(),
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'received': dict(self._message_count),
                'errors': self._error_count,
                'connected': self._connected.is_set(),
                'broker': self.broker,
            }
