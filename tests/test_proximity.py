"""Tests for the foreground proximity banner."""

import pytest

from fooddiary_arrivals.proximity import ProximityBanner, find_nearest
from fooddiary_geofence import Coordinate

from conftest import FAR_FROM_JOES, JOES, NEAR_JOES, make_place


@pytest.fixture
def saved():
    return [
        make_place("Far Cafe", *FAR_FROM_JOES),
        make_place("Joe's Diner", *JOES),
    ]


def test_find_nearest_within_threshold(saved):
    match = find_nearest(Coordinate(*NEAR_JOES), saved, 150.0)
    assert match.place.name == "Joe's Diner"
    assert match.distance_m == pytest.approx(111.2, abs=1.0)


def test_find_nearest_none_when_all_far(saved):
    assert find_nearest(Coordinate(0.0, 0.0), saved, 150.0) is None


def test_find_nearest_no_places():
    assert find_nearest(Coordinate(0.0, 0.0), [], 150.0) is None


class TestBanner:
    def test_foreground_shows_banner(self, saved):
        banner = ProximityBanner()
        match = banner.on_foreground(Coordinate(*NEAR_JOES), saved)
        assert match is not None
        assert banner.visible == match

    def test_dismissed_stays_hidden_on_foreground(self, saved):
        banner = ProximityBanner()
        banner.on_foreground(Coordinate(*NEAR_JOES), saved)
        banner.dismiss()

        assert banner.on_foreground(Coordinate(*NEAR_JOES), saved) is None
        assert banner.visible is None
        assert banner.dismissed

    def test_refresh_resets_dismissal(self, saved):
        banner = ProximityBanner()
        banner.dismiss()

        match = banner.refresh(Coordinate(*NEAR_JOES), saved)

        assert match is not None
        assert not banner.dismissed

    def test_no_banner_when_out_of_range(self, saved):
        banner = ProximityBanner()
        assert banner.refresh(Coordinate(0.0, 0.0), saved) is None
        assert banner.visible is None

    def test_rejects_non_positive_threshold(self):
        with pytest.raises(ValueError):
            ProximityBanner(threshold_m=0)
