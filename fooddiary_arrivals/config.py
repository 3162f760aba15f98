"""
Configuration schema for the arrival service.

Covers region monitoring limits, notification text, the foreground proximity
banner, place search and the MQTT wiring for one device.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import yaml


DEFAULT_QUERY_BATCHES: Tuple[Tuple[str, ...], ...] = (
    ("restaurant", "cafe", "coffee", "food"),
    ("store", "grocery", "bakery"),
    ("hotel", "shopping", "mall"),
)


@dataclass(frozen=True)
class MonitoringConfig:
    """
    Geofence monitoring limits.

    max_regions mirrors the platform ceiling on simultaneously monitored
    regions (20 on iOS).
    """

    max_regions: int = 20
    region_radius_m: float = 150.0

    def __post_init__(self):
        if self.max_regions < 1:
            raise ValueError(f"max_regions must be >= 1, got {self.max_regions}")
        if self.region_radius_m <= 0:
            raise ValueError(f"region_radius_m must be > 0, got {self.region_radius_m}")


@dataclass(frozen=True)
class NotificationConfig:
    """Arrival notification text."""

    title: str = "You've been here before"
    preview_length: int = 80

    def __post_init__(self):
        if not self.title:
            raise ValueError("notification title cannot be empty")
        if self.preview_length < 1:
            raise ValueError(f"preview_length must be >= 1, got {self.preview_length}")


@dataclass(frozen=True)
class ProximityConfig:
    """Foreground proximity banner."""

    threshold_m: float = 150.0

    def __post_init__(self):
        if self.threshold_m <= 0:
            raise ValueError(f"threshold_m must be > 0, got {self.threshold_m}")


@dataclass(frozen=True)
class SearchConfig:
    """
    Google Places nearby search.

    The API key itself never lives in the YAML file: api_key_env names the
    environment variable that holds it.
    """

    api_key_env: str = "GOOGLE_PLACES_API_KEY"
    base_url: str = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
    query_batches: Tuple[Tuple[str, ...], ...] = DEFAULT_QUERY_BATCHES
    initial_radius_miles: float = 2.0
    expanded_radius_miles: float = 5.0
    distance_tiers_miles: Tuple[float, ...] = (1.0, 2.0, 3.5, 5.0)
    max_results: int = 50
    batch_timeout_s: float = 10.0
    request_timeout_s: float = 5.0
    max_workers: int = 2

    def __post_init__(self):
        if not self.query_batches or any(not batch for batch in self.query_batches):
            raise ValueError("query_batches must be non-empty lists of queries")
        if not 0 < self.initial_radius_miles <= self.expanded_radius_miles:
            raise ValueError(
                f"radii must satisfy 0 < initial <= expanded, got "
                f"{self.initial_radius_miles} / {self.expanded_radius_miles}"
            )
        if list(self.distance_tiers_miles) != sorted(self.distance_tiers_miles):
            raise ValueError(f"distance_tiers_miles must be ascending, got {self.distance_tiers_miles}")
        if self.max_results < 1:
            raise ValueError(f"max_results must be >= 1, got {self.max_results}")
        if self.batch_timeout_s <= 0 or self.request_timeout_s <= 0:
            raise ValueError("search timeouts must be > 0")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    def api_key(self) -> Optional[str]:
        """Read the API key from the environment (None when unset or blank)."""
        value = os.environ.get(self.api_key_env, "").strip()
        return value or None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchConfig":
        data = dict(data)
        if "query_batches" in data:
            data["query_batches"] = tuple(tuple(batch) for batch in data["query_batches"])
        if "distance_tiers_miles" in data:
            data["distance_tiers_miles"] = tuple(data["distance_tiers_miles"])
        return cls(**data)


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1

    location_topic: str = "fooddiary/device/{device_id}/location"
    authorization_topic: str = "fooddiary/device/{device_id}/authorization"
    notification_tap_topic: str = "fooddiary/device/{device_id}/notification_tap"
    notification_topic: str = "fooddiary/device/{device_id}/notifications"
    command_topic: str = "fooddiary/control/{device_id}/commands"
    status_topic: str = "fooddiary/control/{device_id}/status"

    def __post_init__(self):
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"MQTT port must be in [1, 65535], got {self.port}")
        if self.qos not in {0, 1, 2}:
            raise ValueError(f"MQTT QoS must be 0, 1, or 2, got {self.qos}")

    def topic(self, name: str, device_id: str) -> str:
        """Resolve a topic template, e.g. topic("location", "phone_01")."""
        template = getattr(self, f"{name}_topic")
        return template.format(device_id=device_id)


@dataclass(frozen=True)
class ServiceConfig:
    """
    Main configuration for the arrival service.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    device_id: str
    db_path: str = "food_diary.duckdb"
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)
    proximity: ProximityConfig = field(default_factory=ProximityConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        if not self.device_id:
            raise ValueError("device_id cannot be empty")
        if not self.db_path:
            raise ValueError("db_path cannot be empty (use ':memory:' for a transient store)")

    def topic(self, name: str) -> str:
        return self.mqtt_config.topic(name, self.device_id)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ServiceConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            device_id: "phone_01"
            db_path: "./data/food_diary.duckdb"

            monitoring:
              max_regions: 20
              region_radius_m: 150

            notification:
              title: "You've been here before"
              preview_length: 80

            proximity:
              threshold_m: 150

            search:
              api_key_env: "GOOGLE_PLACES_API_KEY"
              batch_timeout_s: 10

            mqtt_config:
              broker: "localhost"
              port: 1883
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping, got {type(data).__name__}")

        return cls(
            device_id=data.get("device_id", ""),
            db_path=str(data.get("db_path", "food_diary.duckdb")),
            monitoring=MonitoringConfig(**data.get("monitoring", {})),
            notification=NotificationConfig(**data.get("notification", {})),
            proximity=ProximityConfig(**data.get("proximity", {})),
            search=SearchConfig.from_dict(data.get("search", {})),
            mqtt_config=MQTTConfig(**data.get("mqtt_config", {})),
        )
