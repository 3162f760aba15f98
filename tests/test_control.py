"""Tests for the command registry and MQTT control plane."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest

from fooddiary_control import CommandNotAvailableError, CommandRegistry, MQTTControlPlane


class TestCommandRegistry:
    def test_register_and_execute(self):
        registry = CommandRegistry()
        registry.register("echo", lambda data: data.get("value"), "Echo a value")

        assert registry.execute("echo", {"value": 3}) == 3
        assert registry.execute("echo") is None
        assert registry.is_available("echo")
        assert registry.get_help() == {"echo": "Echo a value"}
        assert registry.count() == 1

    def test_duplicate_registration(self):
        registry = CommandRegistry()
        registry.register("echo", lambda data: None, "")
        with pytest.raises(ValueError):
            registry.register("echo", lambda data: None, "")

    def test_unknown_command(self):
        with pytest.raises(CommandNotAvailableError):
            CommandRegistry().execute("nope")


class TestControlPlane:
    @pytest.fixture
    def plane(self):
        plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="fooddiary/control/t/commands",
            status_topic="fooddiary/control/t/status",
            client_id="test_plane",
        )
        plane.client = MagicMock()
        plane.client.publish.return_value.rc = mqtt.MQTT_ERR_SUCCESS
        return plane

    def statuses(self, plane):
        return [json.loads(c.args[1]) for c in plane.client.publish.call_args_list]

    def test_completed_command_reports_result(self, plane):
        plane.command_registry.register("ping", lambda data: {"pong": True}, "Ping")

        plane.handle_command({"command": "PING"})

        [status] = self.statuses(plane)
        assert status["status"] == "command_completed"
        assert status["data"] == {"command": "ping", "result": {"pong": True}}
        assert plane.client.publish.call_args.kwargs == {"qos": 1, "retain": True}

    def test_failed_command_reports_error(self, plane):
        def broken(data):
            raise ValueError("Missing required field: place_id")

        plane.command_registry.register("delete_place", broken, "Delete")
        plane.handle_command({"command": "delete_place"})

        [status] = self.statuses(plane)
        assert status["status"] == "command_failed"
        assert status["data"]["error"] == "Missing required field: place_id"

    def test_unknown_command_rejected(self, plane):
        plane.command_registry.register("ping", lambda data: None, "Ping")
        plane.handle_command({"command": "nope"})

        [status] = self.statuses(plane)
        assert status["status"] == "command_rejected"
        assert status["data"]["available"] == ["ping"]

    def test_empty_command_rejected(self, plane):
        plane.handle_command({})
        assert self.statuses(plane)[0]["status"] == "command_rejected"

    @pytest.mark.parametrize("payload", [b"{not json", b"[1, 2]"])
    def test_malformed_message_rejected(self, plane, payload):
        plane._on_message(None, None, SimpleNamespace(topic=plane.command_topic, payload=payload))
        assert self.statuses(plane)[0]["status"] == "command_rejected"

    def test_on_connect_subscribes_and_announces(self, plane):
        client = MagicMock()
        plane._on_connect(client, None, None, 0)

        client.subscribe.assert_called_once_with("fooddiary/control/t/commands", qos=1)
        assert self.statuses(plane)[0]["status"] == "connected"

    def test_failed_connect_does_not_subscribe(self, plane):
        client = MagicMock()
        plane._on_connect(client, None, None, 5)
        client.subscribe.assert_not_called()
