"""
MQTT client wrapper for talking to the arrival service.

Publishes control commands (optionally waiting for the service's reply on
the status topic) and simulated device events.
"""

import json
import threading
from typing import Any, Dict, Optional

from fooddiary_mqtt.client import create_client

REPLY_STATUSES = {"command_completed", "command_failed", "command_rejected"}


class MQTTCommandClient:
    """
    MQTT client for sending commands and device events.

    Commands go out with QoS 1.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "fooddiary_cli",
    ):
        self.broker = broker
        self.port = port
        self.client = create_client(client_id, username, password)
        self._reply: Optional[Dict[str, Any]] = None
        self._reply_event = threading.Event()

    def _on_status(self, client, userdata, msg) -> None:
        # Retained status predates our command
        if msg.retain:
            return
        try:
            data = json.loads(msg.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return
        if isinstance(data, dict) and data.get("status") in REPLY_STATUSES:
            self._reply = data
            self._reply_event.set()

    def publish(self, topic: str, payload: Dict[str, Any], qos: int = 1) -> None:
        """
        Publish one JSON message and disconnect.

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            ValueError: If payload serialization fails
        """
        try:
            message = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid message data: {e}") from e

        self._connect()
        try:
            self.client.loop_start()
            result = self.client.publish(topic, message, qos=qos)
            result.wait_for_publish(timeout=5.0)
        finally:
            self.client.loop_stop()
            self.client.disconnect()

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        status_topic: Optional[str] = None,
        timeout: float = 5.0,
        qos: int = 1,
    ) -> Optional[Dict[str, Any]]:
        """
        Send a command; with status_topic, wait for the service's reply.

        Returns:
            The reply status message, or None when not waiting or timed out
        """
        if status_topic is None:
            self.publish(topic, command, qos=qos)
            return None

        try:
            message = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}") from e

        self._reply = None
        self._reply_event.clear()
        self.client.on_message = self._on_status

        self._connect()
        try:
            self.client.loop_start()
            self.client.subscribe(status_topic, qos=1)
            self.client.publish(topic, message, qos=qos).wait_for_publish(timeout=timeout)
            self._reply_event.wait(timeout=timeout)
            return self._reply
        finally:
            self.client.loop_stop()
            self.client.disconnect()

    def _connect(self) -> None:
        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except OSError as e:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            ) from e
