"""Tests for nearby place search."""

import threading

import pytest
import requests

from fooddiary_arrivals.config import SearchConfig
from fooddiary_arrivals.search import (
    GooglePlacesSearchProvider,
    SearchCoordinator,
    dropped_pin,
    merge_key,
    rank_results,
)
from fooddiary_geofence import METERS_PER_MILE, Coordinate
from fooddiary_mqtt.schemas import CandidatePlace

ORIGIN = Coordinate(40.7128, -74.0060)


class FakeResponse:
    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code
        self.ok = status_code < 400

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class FakeSession:
    """Serves canned Places responses per keyword and records each request."""

    def __init__(self, by_keyword=None, default=None):
        self.by_keyword = by_keyword or {}
        self.default = default if default is not None else FakeResponse({"status": "ZERO_RESULTS", "results": []})
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({'url': url, 'params': dict(params), 'timeout': timeout})
        response = self.by_keyword.get(params["keyword"], self.default)
        if isinstance(response, Exception):
            raise response
        return response


def place_result(name, lat, lng):
    return {"name": name, "geometry": {"location": {"lat": lat, "lng": lng}}}


def ok(*results):
    return FakeResponse({"status": "OK", "results": list(results)})


def test_merge_key_uses_five_decimals():
    assert merge_key("Cafe", 1.123456, 2.0) == "Cafe_1.12346_2.00000"
    assert merge_key(None, 1.0, 2.0).startswith("?_")


def test_dropped_pin_is_at_origin():
    pin = dropped_pin(ORIGIN)
    assert pin.name.startswith("Dropped Pin")
    assert pin.coordinate == ORIGIN
    assert pin.distance_m == 0.0


class TestRankResults:
    def test_picks_first_non_empty_tier(self):
        near = CandidatePlace("Near", 0.0, 0.0, distance_m=500.0)
        mid = CandidatePlace("Mid", 0.0, 0.0, distance_m=1.5 * METERS_PER_MILE)
        far = CandidatePlace("Far", 0.0, 0.0, distance_m=4.0 * METERS_PER_MILE)
        assert rank_results(ORIGIN, [far, mid, near]) == [near]

    def test_falls_through_to_wider_tier(self):
        mid = CandidatePlace("Mid", 0.0, 0.0, distance_m=1.5 * METERS_PER_MILE)
        far = CandidatePlace("Far", 0.0, 0.0, distance_m=1.8 * METERS_PER_MILE)
        assert rank_results(ORIGIN, [far, mid]) == [mid, far]

    def test_beyond_all_tiers_capped(self):
        beyond = [CandidatePlace(f"P{i}", 0.0, 0.0, distance_m=10_000.0 + i) for i in range(5)]
        assert len(rank_results(ORIGIN, beyond, max_results=3)) == 3

    def test_empty_gives_dropped_pin(self):
        [pin] = rank_results(ORIGIN, [])
        assert pin.name.startswith("Dropped Pin")


class TestGooglePlacesSearchProvider:
    def test_no_api_key_returns_dropped_pin(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_PLACES_API_KEY", raising=False)
        session = FakeSession()
        provider = GooglePlacesSearchProvider(SearchConfig(), session=session)

        [pin] = provider.search(ORIGIN)

        assert pin.name.startswith("Dropped Pin")
        assert session.calls == []

    def test_api_key_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_PLACES_API_KEY", "secret")
        provider = GooglePlacesSearchProvider(SearchConfig(), session=FakeSession())
        assert provider.api_key == "secret"

    def test_results_merged_and_sorted(self):
        session = FakeSession(by_keyword={
            "restaurant": ok(place_result("Joe's", 40.7138, -74.0060), place_result("Bob's", 40.7130, -74.0060)),
            "cafe": ok(place_result("Joe's", 40.7138, -74.0060)),
        })
        provider = GooglePlacesSearchProvider(SearchConfig(), api_key="k", session=session)

        results = provider.search(ORIGIN)

        assert [c.name for c in results] == ["Bob's", "Joe's"]
        assert results[0].distance_m < results[1].distance_m

    def test_query_parameters(self):
        session = FakeSession()
        config = SearchConfig(query_batches=(("restaurant",),))
        GooglePlacesSearchProvider(config, api_key="k", session=session).search(ORIGIN)

        params = session.calls[0]['params']
        assert params["location"] == "40.7128,-74.006"
        assert params["radius"] == int(2.0 * METERS_PER_MILE)
        assert params["keyword"] == "restaurant"
        assert params["key"] == "k"

    def test_radius_widens_after_empty_batch(self):
        session = FakeSession()
        config = SearchConfig(query_batches=(("a",), ("b",)))
        GooglePlacesSearchProvider(config, api_key="k", session=session).search(ORIGIN)

        radii = [call['params']["radius"] for call in session.calls]
        assert radii == [int(2.0 * METERS_PER_MILE), int(5.0 * METERS_PER_MILE)]

    def test_radius_stays_when_batch_found_something(self):
        session = FakeSession(by_keyword={"a": ok(place_result("Cafe", 40.7130, -74.0060))})
        config = SearchConfig(query_batches=(("a",), ("b",)))
        GooglePlacesSearchProvider(config, api_key="k", session=session).search(ORIGIN)

        radii = {call['params']["radius"] for call in session.calls}
        assert radii == {int(2.0 * METERS_PER_MILE)}

    def test_batch_deadline_skips_remaining_queries(self):
        now = [0.0]

        class SlowSession(FakeSession):
            def get(self, url, params=None, timeout=None):
                now[0] += 6.0
                return super().get(url, params, timeout)

        session = SlowSession()
        config = SearchConfig(query_batches=(("a", "b", "c"), ("d",)), batch_timeout_s=10.0)
        GooglePlacesSearchProvider(config, api_key="k", session=session, clock=lambda: now[0]).search(ORIGIN)

        keywords = [call['params']["keyword"] for call in session.calls]
        assert keywords == ["a", "b", "d"]
        # Second query only gets what is left of the batch budget
        assert session.calls[1]['timeout'] == pytest.approx(4.0)

    @pytest.mark.parametrize("failure", [
        requests.ConnectionError("down"),
        FakeResponse({}, status_code=500),
        FakeResponse(ValueError("not json")),
        FakeResponse({"status": "REQUEST_DENIED", "error_message": "bad key"}),
    ])
    def test_failed_queries_are_skipped(self, failure):
        session = FakeSession(by_keyword={
            "a": failure,
            "b": ok(place_result("Cafe", 40.7130, -74.0060)),
        })
        config = SearchConfig(query_batches=(("a", "b"),))

        results = GooglePlacesSearchProvider(config, api_key="k", session=session).search(ORIGIN)

        assert [c.name for c in results] == ["Cafe"]

    def test_results_without_location_are_skipped(self):
        session = FakeSession(by_keyword={"a": ok({"name": "Nowhere"}, place_result(None, 40.7130, -74.0060))})
        config = SearchConfig(query_batches=(("a",),))

        results = GooglePlacesSearchProvider(config, api_key="k", session=session).search(ORIGIN)

        assert [c.name for c in results] == ["Unknown"]

    def test_nothing_found_returns_dropped_pin(self):
        provider = GooglePlacesSearchProvider(SearchConfig(), api_key="k", session=FakeSession())
        [pin] = provider.search(ORIGIN)
        assert pin.name.startswith("Dropped Pin")


class TestSearchCoordinator:
    def test_delivers_results(self):
        class Provider:
            def search(self, coordinate):
                return [dropped_pin(coordinate)]

        coordinator = SearchCoordinator(Provider())
        delivered = []
        coordinator.start(ORIGIN, delivered.append).result(timeout=5)
        coordinator.shutdown()

        assert delivered[0][0].coordinate == ORIGIN

    def test_only_latest_search_delivers(self):
        release = threading.Event()

        class Provider:
            def search(self, coordinate):
                if coordinate.latitude == 1.0:
                    release.wait(timeout=5)
                return [dropped_pin(coordinate)]

        coordinator = SearchCoordinator(Provider(), max_workers=2)
        delivered = []
        first = coordinator.start(Coordinate(1.0, 1.0), delivered.append)
        second = coordinator.start(Coordinate(2.0, 2.0), delivered.append)
        second.result(timeout=5)
        release.set()
        first.result(timeout=5)
        coordinator.shutdown()

        assert len(delivered) == 1
        assert delivered[0][0].latitude == 2.0
