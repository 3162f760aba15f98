"""
Base MQTT Publisher
==================

Bounded Context: MQTT Infrastructure

Abstract base class for MQTT publishers.

Design:
- Connection management (connect, disconnect)
- Structured logging integration
- publish() never raises: failures are logged and reported as False

Architecture:
    BasePublisher (abstract)
        ↓
    NotificationPublisher (concrete)
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from ..client import create_client, is_failure
from ..logging import LogEvent, StructuredLogger


class BasePublisher(ABC):
    """
    Abstract base class for MQTT publishers.

    Subclasses implement format_message() for message-specific logic.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        topic: MQTT topic to publish to
        client_id: MQTT client identifier
        qos: Quality of Service
        logger: Structured logger instance

    Thread Safety:
        Thread-safe via paho-mqtt's loop_start() and threading.Event
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.client = create_client(client_id, username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._message_count = 0
        self._stats_lock = threading.Lock()

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if is_failure(reason_code):
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker (rc={reason_code})",
                metadata={'broker': self.broker},
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={'broker': self.broker, 'client_id': self.client_id, 'topic': self.topic},
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)},
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker.

        Returns:
            True if connected within timeout, False otherwise
        """
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
            metadata={'timeout': timeout, 'broker': self.broker},
        )
        return False

    def disconnect(self) -> None:
        """Stop the network loop and disconnect."""
        self.client.loop_stop()
        self.client.disconnect()
        self._connected.clear()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from broker",
            metadata={'message_count': self._message_count},
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Return a JSON-serializable dict for publication."""
        raise NotImplementedError("Subclasses must implement format_message()")

    def publish(self, message_data: Dict[str, Any], retain: bool = False) -> bool:
        """
        Publish a pre-formatted message.

        Returns:
            True if handed to the broker client, False otherwise
        """
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: not connected to broker",
                metadata={'topic': self.topic},
            )
            return False

        try:
            payload = json.dumps(message_data)
        except (TypeError, ValueError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Message is not JSON serializable",
                exc_info=e,
                metadata={'topic': self.topic},
            )
            return False

        result = self.client.publish(topic=self.topic, payload=payload, qos=self.qos, retain=retain)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message=f"Publish failed (rc={result.rc})",
                metadata={'topic': self.topic},
            )
            return False

        with self._stats_lock:
            self._message_count += 1
            count = self._message_count

        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Published message",
            metadata={'topic': self.topic, 'message_count': count, 'qos': self.qos},
        )
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'message_count': self._message_count,
                'connected': self._connected.is_set(),
                'topic': self.topic,
                'broker': self.broker,
            }
