"""Tests for the software geofence monitor."""

import pytest

from fooddiary_arrivals.monitor import REGION_LIMIT_EXCEEDED, GeofenceMonitor
from fooddiary_arrivals.reconciler import RegionReconciler
from fooddiary_mqtt.schemas import AuthorizationStatus, LocationFix, MonitoringFailed, RegionEntered

from conftest import FAR_FROM_JOES, JOES, NEAR_JOES, make_place


@pytest.fixture
def events():
    return []


@pytest.fixture
def geofence(events):
    return GeofenceMonitor(emit=events.append, max_regions=2)


def fix(pair):
    return LocationFix(latitude=pair[0], longitude=pair[1])


class TestWatch:
    def test_watch_and_list(self, geofence):
        geofence.watch("joes", *JOES, 150.0)
        assert geofence.list_watched() == ["joes"]
        assert geofence.get_region("joes").radius_m == 150.0

    def test_limit_exceeded_reports_failure(self, geofence, events):
        geofence.watch("a", 1.0, 1.0, 150.0)
        geofence.watch("b", 2.0, 2.0, 150.0)
        geofence.watch("c", 3.0, 3.0, 150.0)

        assert geofence.list_watched() == ["a", "b"]
        assert events == [MonitoringFailed(region_id="c", error=REGION_LIMIT_EXCEEDED)]

    def test_rewatch_at_limit_replaces_region(self, geofence, events):
        geofence.watch("a", 1.0, 1.0, 150.0)
        geofence.watch("b", 2.0, 2.0, 150.0)
        geofence.watch("a", 1.5, 1.5, 200.0)

        assert events == []
        assert geofence.get_region("a").radius_m == 200.0

    def test_invalid_geometry_reports_failure(self, geofence, events):
        geofence.watch("bad", 1.0, 1.0, -5.0)
        assert geofence.list_watched() == []
        assert len(events) == 1
        assert isinstance(events[0], MonitoringFailed)
        assert events[0].region_id == "bad"

    def test_unwatch_unknown_is_noop(self, geofence):
        geofence.unwatch("never")
        assert geofence.list_watched() == []

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            GeofenceMonitor(emit=lambda e: None, max_regions=0)


class TestEntries:
    def test_entry_fires_once_on_crossing(self, geofence, events):
        geofence.watch("joes", *JOES, 150.0)

        assert geofence.update_location(fix(FAR_FROM_JOES)) == []
        assert geofence.update_location(fix(NEAR_JOES)) == ["joes"]
        assert geofence.update_location(fix(JOES)) == []

        assert events == [RegionEntered(region_id="joes")]

    def test_first_fix_inside_does_not_fire(self, geofence, events):
        geofence.watch("joes", *JOES, 150.0)
        assert geofence.update_location(fix(NEAR_JOES)) == []
        assert events == []

    def test_reentry_fires_again(self, geofence, events):
        geofence.watch("joes", *JOES, 150.0)
        for point in [FAR_FROM_JOES, JOES, FAR_FROM_JOES, JOES]:
            geofence.update_location(fix(point))
        assert events == [RegionEntered(region_id="joes")] * 2

    def test_entry_after_rebuild_still_fires(self, geofence, events):
        reconciler = RegionReconciler(max_regions=2)
        joes = make_place("Joe's Diner", *JOES)
        other = make_place("Other", 1.0, 1.0)

        reconciler.reconcile([joes], AuthorizationStatus.ALWAYS, geofence)
        geofence.update_location(fix(FAR_FROM_JOES))
        reconciler.reconcile([joes, other], AuthorizationStatus.ALWAYS, geofence)

        assert geofence.update_location(fix(JOES)) == [joes.place_id]
        assert events == [RegionEntered(region_id=joes.place_id)]

    def test_region_watched_while_inside_does_not_fire(self, geofence, events):
        geofence.update_location(fix(JOES))
        geofence.watch("joes", *JOES, 150.0)

        assert geofence.update_location(fix(NEAR_JOES)) == []
        assert events == []

    def test_region_watched_while_outside_fires_on_first_entry(self, geofence, events):
        geofence.update_location(fix(FAR_FROM_JOES))
        geofence.watch("joes", *JOES, 150.0)

        assert geofence.update_location(fix(JOES)) == ["joes"]

    def test_unwatched_region_never_fires(self, geofence, events):
        geofence.watch("joes", *JOES, 150.0)
        geofence.update_location(fix(FAR_FROM_JOES))
        geofence.unwatch("joes")

        assert geofence.update_location(fix(JOES)) == []
        assert events == []

    def test_invalid_fix_is_ignored(self, geofence):
        geofence.watch("joes", *JOES, 150.0)
        assert geofence.update_location(LocationFix(latitude=120.0, longitude=0.0)) == []
