"""
fooddiary_control - Control Plane for the arrival service

Bounded Context: MQTT-based command-and-control
Responsibilities:
  - MQTT connection management (Control Plane)
  - Command registration and validation
  - Command execution delegation and outcome reporting

Architecture:
  - CommandRegistry: Explicit registration pattern
  - MQTTControlPlane: MQTT client + command reception
  - QoS 1 for control commands (at-least-once delivery)
"""

from .registry import CommandRegistry, CommandNotAvailableError
from .plane import MQTTControlPlane

__all__ = [
    "CommandRegistry",
    "CommandNotAvailableError",
    "MQTTControlPlane",
]
