"""
paho-mqtt client helpers shared by publishers, subscriber and control plane.

Uses the paho-mqtt 2.x callback API (VERSION2): connect/disconnect callbacks
receive a ReasonCode plus properties.
"""

from typing import Any, Optional

import paho.mqtt.client as mqtt


def create_client(
    client_id: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
) -> mqtt.Client:
    """Build a paho client with optional username/password auth."""
    client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
    if username and password:
        client.username_pw_set(username, password)
    return client


def is_failure(reason_code: Any) -> bool:
    """True if a connect/disconnect reason code signals failure.

    Accepts paho ReasonCode objects as well as plain ints.
    """
    flag = getattr(reason_code, "is_failure", None)
    if flag is not None:
        return bool(flag)
    return reason_code != 0
