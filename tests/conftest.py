from typing import Any, Dict, List, Optional

import duckdb
import pytest

from fooddiary_arrivals.store import DuckDBPlaceStore
from fooddiary_mqtt.schemas import PlaceRecord

JOES = (40.7123, -74.0099)
# ~111 m north of Joe's
NEAR_JOES = (40.7133, -74.0099)
# ~2.2 km north of Joe's
FAR_FROM_JOES = (40.7323, -74.0099)


class FakeMonitor:
    """Records watch/unwatch calls like a platform location manager."""

    def __init__(self):
        self.regions: Dict[str, Dict[str, Any]] = {}
        self.watch_calls: List[str] = []
        self.unwatch_calls: List[str] = []

    def watch(self, region_id, center_lat, center_lon, radius_m,
              notify_on_entry=True, notify_on_exit=False):
        self.watch_calls.append(region_id)
        self.regions[region_id] = {
            'center': (center_lat, center_lon),
            'radius_m': radius_m,
            'notify_on_entry': notify_on_entry,
            'notify_on_exit': notify_on_exit,
        }

    def unwatch(self, region_id):
        self.unwatch_calls.append(region_id)
        self.regions.pop(region_id, None)

    def list_watched(self):
        return list(self.regions)


class FakeNotificationSink:
    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent: List[Dict[str, Any]] = []
        self.permission_requests = 0

    def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.deliver

    def send(self, notification_id, title, body, payload=None) -> bool:
        self.sent.append({
            'notification_id': notification_id,
            'title': title,
            'body': body,
            'payload': dict(payload or {}),
        })
        return self.deliver


def make_place(name: str, lat: float = 40.0, lon: float = -74.0, notes: Optional[str] = None) -> PlaceRecord:
    return PlaceRecord.create(name, (lat, lon), notes)


@pytest.fixture
def duckdb_conn():
    conn = duckdb.connect(":memory:")
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def store(duckdb_conn):
    return DuckDBPlaceStore(duckdb_conn)


@pytest.fixture
def monitor():
    return FakeMonitor()


@pytest.fixture
def sink():
    return FakeNotificationSink()
