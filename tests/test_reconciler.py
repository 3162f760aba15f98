"""Tests for the region monitor reconciler."""

import threading

import pytest

from fooddiary_arrivals.reconciler import RegionReconciler
from fooddiary_mqtt.schemas import AuthorizationStatus

from conftest import FakeMonitor, make_place

ALWAYS = AuthorizationStatus.ALWAYS


def places(count):
    return [make_place(f"Place {i:02d}", 40.0 + i * 0.01, -74.0) for i in range(count)]


class TestReconcile:
    def test_under_cap_watches_every_place(self, monitor):
        saved = places(5)
        result = RegionReconciler().reconcile(saved, ALWAYS, monitor)

        assert set(monitor.list_watched()) == {p.place_id for p in saved}
        assert result.armed == result.intended
        assert result.dropped == 0

    def test_over_cap_watches_first_by_name(self, monitor):
        saved = list(reversed(places(25)))
        result = RegionReconciler(max_regions=20).reconcile(saved, ALWAYS, monitor)

        expected = [p.place_id for p in sorted(saved, key=lambda p: p.name)][:20]
        assert monitor.watch_calls == expected
        assert len(monitor.list_watched()) == 20
        assert result.dropped == 5

    def test_name_ties_broken_by_place_id(self, monitor):
        a = make_place("Same", 40.0, -74.0)
        b = make_place("Same", 39.0, -74.0)
        RegionReconciler(max_regions=1).reconcile([a, b], ALWAYS, monitor)
        assert monitor.list_watched() == [min(a.place_id, b.place_id)]

    def test_regions_are_entry_only_with_configured_radius(self, monitor):
        saved = places(1)
        RegionReconciler(region_radius_m=150.0).reconcile(saved, ALWAYS, monitor)
        region = monitor.regions[saved[0].place_id]
        assert region['radius_m'] == 150.0
        assert region['notify_on_entry'] is True
        assert region['notify_on_exit'] is False
        assert region['center'] == (saved[0].latitude, saved[0].longitude)

    def test_empty_store_clears_all_regions(self, monitor):
        monitor.watch("stale", 1.0, 1.0, 150.0)
        result = RegionReconciler().reconcile([], ALWAYS, monitor)

        assert monitor.list_watched() == []
        assert result.unwatched == 1
        assert result.intended == ()

    def test_full_rebuild_unwatches_before_watching(self, monitor):
        reconciler = RegionReconciler()
        saved = places(3)
        reconciler.reconcile(saved, ALWAYS, monitor)
        monitor.watch_calls.clear()

        reconciler.reconcile(saved[:2], ALWAYS, monitor)

        assert sorted(monitor.unwatch_calls) == sorted(p.place_id for p in saved)
        assert monitor.watch_calls == [p.place_id for p in saved[:2]]
        assert saved[2].place_id not in monitor.list_watched()

    @pytest.mark.parametrize("status", [
        AuthorizationStatus.NOT_DETERMINED,
        AuthorizationStatus.DENIED,
        AuthorizationStatus.RESTRICTED,
    ])
    def test_insufficient_authorization_arms_nothing(self, monitor, status):
        monitor.watch("stale", 1.0, 1.0, 150.0)
        saved = places(3)
        result = RegionReconciler().reconcile(saved, status, monitor)

        assert monitor.list_watched() == []
        assert result.armed == ()
        assert result.intended == tuple(p.place_id for p in saved)

    def test_when_in_use_allows_monitoring(self, monitor):
        result = RegionReconciler().reconcile(places(2), AuthorizationStatus.WHEN_IN_USE, monitor)
        assert len(result.armed) == 2

    def test_last_result_recorded(self, monitor):
        reconciler = RegionReconciler()
        assert reconciler.last_result is None
        result = reconciler.reconcile(places(2), ALWAYS, monitor)
        assert reconciler.last_result == result
        assert result.to_dict()['authorization'] == "always"


class TestCoalescing:
    def test_request_reads_store_each_pass(self, monitor):
        reconciler = RegionReconciler()
        saved = places(2)
        result = reconciler.request(lambda: saved, lambda: ALWAYS, monitor)
        assert len(result.armed) == 2

    def test_reentrant_request_is_coalesced_into_one_follow_up(self, monitor):
        reconciler = RegionReconciler()
        loads = []
        nested_results = []

        def load():
            loads.append(1)
            if len(loads) == 1:
                # Two requests during the first pass collapse into one extra pass
                nested_results.append(reconciler.request(load, lambda: ALWAYS, monitor))
                nested_results.append(reconciler.request(load, lambda: ALWAYS, monitor))
            return places(1)

        result = reconciler.request(load, lambda: ALWAYS, monitor)

        assert nested_results == [None, None]
        assert len(loads) == 2
        assert result is not None

    def test_concurrent_request_does_not_overlap(self, monitor):
        reconciler = RegionReconciler()
        in_pass = threading.Event()
        release = threading.Event()
        calls = []

        def slow_load():
            calls.append(1)
            if len(calls) == 1:
                in_pass.set()
                release.wait(timeout=5)
            return places(1)

        worker = threading.Thread(target=reconciler.request, args=(slow_load, lambda: ALWAYS, monitor))
        worker.start()
        assert in_pass.wait(timeout=5)

        assert reconciler.request(slow_load, lambda: ALWAYS, monitor) is None
        release.set()
        worker.join(timeout=5)

        assert len(calls) == 2

    def test_failure_releases_guard(self):
        reconciler = RegionReconciler()

        def boom():
            raise RuntimeError("store unavailable")

        with pytest.raises(RuntimeError):
            reconciler.request(boom, lambda: ALWAYS, FakeMonitor())

        result = reconciler.request(lambda: [], lambda: ALWAYS, FakeMonitor())
        assert result is not None
