"""
MQTTControlPlane - MQTT Control Plane for the arrival service

Bounded Context: MQTT connection management + command reception
Responsibilities:
  - MQTT connection lifecycle (connect, disconnect)
  - Command message reception (subscribe to command topic)
  - Status publishing (publish to status topic)
  - Command delegation to CommandRegistry

QoS Policy:
  - Commands: QoS 1 (at-least-once delivery)
  - Status: QoS 1 + retained (last status persisted)

Status Protocol:
  - "connected" / "disconnected" on lifecycle changes
  - "command_completed" with {"command", "result"} after a handler returns
  - "command_failed" with {"command", "error"} when a handler raises
  - "command_rejected" for unknown or malformed commands

Threading:
  - MQTT client runs own background thread (loop_start/loop_stop)
  - Callbacks (_on_connect, _on_message) run in MQTT thread
  - Command handlers run in MQTT thread (keep them fast!)
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from fooddiary_mqtt.client import create_client, is_failure

from .registry import CommandRegistry, CommandNotAvailableError

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    MQTT Control Plane for receiving commands and publishing status.

    Features:
      - QoS 1 for reliable command delivery
      - Retained status messages (last status persisted)
      - Event-based connection synchronization
      - CommandRegistry pattern for command execution

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="fooddiary/control/phone_01/commands",
            status_topic="fooddiary/control/phone_01/status",
            client_id="fooddiary_service_phone_01"
        )

        control_plane.command_registry.register('status', service.handle_status, "Service status")

        if control_plane.connect(timeout=5.0):
            print("Connected to MQTT broker")

        control_plane.disconnect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id

        self.client = create_client(client_id, username, password)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        self._connected = Event()
        self._running = False

        self.command_registry = CommandRegistry()

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect to MQTT broker with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            logger.info(f"🔌 Connecting to MQTT broker: {self.broker_host}:{self.broker_port}")
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            self._running = True
        except OSError as e:
            logger.error(f"❌ Error connecting to MQTT: {e}")
            return False

        if self._connected.wait(timeout=timeout):
            logger.info("✅ MQTT Control Plane connected")
            return True

        logger.error(f"❌ Connection timeout after {timeout}s")
        return False

    def disconnect(self) -> None:
        """Disconnect from MQTT broker. Safe to call multiple times."""
        if self._running:
            logger.info("🔌 Disconnecting from MQTT broker")
            self.publish_status("disconnected")
            self.client.loop_stop()
            self.client.disconnect()
            self._running = False
            self._connected.clear()
            logger.info("✅ MQTT Control Plane disconnected")

    def publish_status(self, status: str, data: Optional[Dict[str, Any]] = None) -> bool:
        """
        Publish status update to status topic (QoS 1, retained).

        Returns:
            True if the message was handed to the client, False otherwise
        """
        message: Dict[str, Any] = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        if data is not None:
            message["data"] = data

        try:
            payload = json.dumps(message, default=str)
        except (TypeError, ValueError) as e:
            logger.error(f"❌ Status is not JSON serializable: {e}")
            return False

        result = self.client.publish(self.status_topic, payload, qos=1, retain=True)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(f"❌ Error publishing status (rc={result.rc})")
            return False

        logger.debug(f"📤 Status published: {status}")
        return True

    def handle_command(self, command_data: Dict[str, Any]) -> None:
        """Run one decoded command and report its outcome on the status topic."""
        command = str(command_data.get('command') or '').lower()
        if not command:
            logger.warning("⚠️ Empty command received")
            self.publish_status("command_rejected", {"error": "empty command"})
            return

        logger.info(f"🎯 Executing command: {command}")
        try:
            result = self.command_registry.execute(command, command_data)
        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            self.publish_status("command_rejected", {
                "command": command,
                "error": str(e),
                "available": sorted(self.command_registry.available_commands),
            })
            return
        except Exception as e:
            logger.error(f"❌ Command '{command}' failed: {e}", exc_info=True)
            self.publish_status("command_failed", {"command": command, "error": str(e)})
            return

        logger.debug(f"✅ Command '{command}' executed successfully")
        self.publish_status("command_completed", {"command": command, "result": result})

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if is_failure(reason_code):
            logger.error(f"❌ Connection failed (rc={reason_code})")
            self._connected.clear()
            return

        logger.info(f"✅ Connected to broker (rc={reason_code})")
        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Subscribed to: {self.command_topic} (QoS 1)")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        if is_failure(reason_code):
            logger.warning(f"⚠️ Unexpected disconnection (rc={reason_code})")
        else:
            logger.info("✅ Disconnected from broker")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        try:
            command_data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Error decoding JSON: {msg.payload!r} ({e})")
            self.publish_status("command_rejected", {"error": "invalid JSON"})
            return

        if not isinstance(command_data, dict):
            logger.warning("⚠️ Command payload must be a JSON object")
            self.publish_status("command_rejected", {"error": "payload must be an object"})
            return

        logger.debug(f"📦 Command received: {command_data}")
        self.handle_command(command_data)
