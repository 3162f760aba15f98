"""Tests for the in-process event bus."""

from fooddiary_arrivals.event_bus import EventBus
from fooddiary_mqtt.schemas import MonitoringFailed, RegionEntered


def test_handlers_run_in_subscription_order():
    bus = EventBus()
    seen = []
    bus.subscribe(RegionEntered, lambda e: seen.append(("first", e.region_id)))
    bus.subscribe(RegionEntered, lambda e: seen.append(("second", e.region_id)))

    assert bus.emit(RegionEntered(region_id="r1")) == 2
    assert seen == [("first", "r1"), ("second", "r1")]


def test_dispatch_matches_exact_type():
    bus = EventBus()
    seen = []
    bus.subscribe(MonitoringFailed, seen.append)

    assert bus.emit(RegionEntered(region_id="r1")) == 0
    assert seen == []


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(RegionEntered, broken)
    bus.subscribe(RegionEntered, seen.append)

    assert bus.emit(RegionEntered(region_id="r1")) == 1
    assert len(seen) == 1


def test_unsubscribe():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(RegionEntered, seen.append)
    assert bus.handler_count(RegionEntered) == 1

    unsubscribe()
    unsubscribe()

    bus.emit(RegionEntered(region_id="r1"))
    assert seen == []
    assert bus.handler_count(RegionEntered) == 0
