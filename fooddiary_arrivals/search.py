"""
Nearby place search.

GooglePlacesSearchProvider queries the Google Places Nearby Search API in
staged keyword batches, tightest first:

    1. restaurant, cafe, coffee, food
    2. store, grocery, bakery
    3. hotel, shopping, mall

Search radius starts at 2 miles and widens once to 5 miles when a batch
finishes with nothing found. Results are merged by name plus 5-decimal
coordinate, sorted by distance, and narrowed to the first non-empty distance
tier (1, 2, 3.5, 5 miles). With no results at all a "Dropped Pin" at the
search origin is returned, so the user can always save where they stand.

Each batch has its own deadline: queries not started before it are skipped.

SearchCoordinator runs searches on a thread pool; only the most recently
started search delivers its results (last write wins).
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from fooddiary_geofence import METERS_PER_MILE, Coordinate, haversine_m
from fooddiary_mqtt.schemas import CandidatePlace
from fooddiary_mqtt.schemas.place import UNKNOWN_PLACE_NAME

from .capabilities import PlaceSearchProvider
from .config import SearchConfig

logger = logging.getLogger(__name__)

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


def merge_key(name: Optional[str], latitude: float, longitude: float) -> str:
    return f"{name or '?'}_{latitude:.5f}_{longitude:.5f}"


def dropped_pin(coordinate: Coordinate) -> CandidatePlace:
    return CandidatePlace(
        name=f"Dropped Pin ({coordinate.latitude:.5f}, {coordinate.longitude:.5f})",
        latitude=coordinate.latitude,
        longitude=coordinate.longitude,
        distance_m=0.0,
    )


def rank_results(
    origin: Coordinate,
    merged: Sequence[CandidatePlace],
    tiers_miles: Sequence[float] = (1.0, 2.0, 3.5, 5.0),
    max_results: int = 50,
) -> List[CandidatePlace]:
    """Sort by distance and pick the first non-empty tier (or a dropped pin)."""
    results = sorted(merged, key=lambda c: c.distance_m if c.distance_m is not None else 0.0)

    for miles in tiers_miles:
        limit_m = miles * METERS_PER_MILE
        within = [c for c in results if (c.distance_m or 0.0) <= limit_m]
        if within:
            return within

    if results:
        return results[:max_results]

    return [dropped_pin(origin)]


class GooglePlacesSearchProvider:
    """
    Example:
        provider = GooglePlacesSearchProvider(SearchConfig())
        candidates = provider.search(Coordinate(40.7128, -74.0060))
    """

    def __init__(
        self,
        config: SearchConfig,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.api_key = api_key if api_key is not None else config.api_key()
        self.session = session or requests.Session()
        self._clock = clock

    def search(self, coordinate: Coordinate) -> List[CandidatePlace]:
        if not self.api_key:
            logger.warning(
                f"⚠️ No Places API key in ${self.config.api_key_env}; returning dropped pin"
            )
            return [dropped_pin(coordinate)]

        merged: Dict[str, CandidatePlace] = {}
        radius_miles = self.config.initial_radius_miles

        for batch in self.config.query_batches:
            deadline = self._clock() + self.config.batch_timeout_s
            for keyword in batch:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.warning(f"⏱️ Batch deadline reached; skipping '{keyword}'")
                    continue
                timeout = min(self.config.request_timeout_s, remaining)
                for candidate in self._query(coordinate, keyword, radius_miles, timeout):
                    merged[merge_key(candidate.name, candidate.latitude, candidate.longitude)] = candidate

            if not merged and radius_miles < self.config.expanded_radius_miles:
                radius_miles = self.config.expanded_radius_miles
                logger.debug(f"🔎 Nothing found yet; widening radius to {radius_miles} mi")

        ranked = rank_results(
            coordinate,
            list(merged.values()),
            self.config.distance_tiers_miles,
            self.config.max_results,
        )
        logger.info(f"🔎 Search found {len(merged)} place(s), returning {len(ranked)}")
        return ranked

    def _query(
        self,
        origin: Coordinate,
        keyword: str,
        radius_miles: float,
        timeout: float,
    ) -> List[CandidatePlace]:
        try:
            response = self.session.get(
                self.config.base_url,
                params={
                    "location": f"{origin.latitude},{origin.longitude}",
                    "radius": int(radius_miles * METERS_PER_MILE),
                    "keyword": keyword,
                    "key": self.api_key,
                },
                timeout=timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"⚠️ Places query '{keyword}' failed: {e}")
            return []

        if not response.ok:
            logger.warning(f"⚠️ Places query '{keyword}' returned HTTP {response.status_code}")
            return []

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"⚠️ Places query '{keyword}' returned invalid JSON: {e}")
            return []

        status = data.get("status")
        if status not in _OK_STATUSES:
            logger.warning(f"⚠️ Places query '{keyword}' status {status}: {data.get('error_message', '')}")
            return []

        results = [c for c in (self._to_candidate(origin, r) for r in data.get("results", [])) if c]
        logger.debug(f"Places query '{keyword}': {len(results)} result(s)")
        return results

    @staticmethod
    def _to_candidate(origin: Coordinate, result: Dict[str, Any]) -> Optional[CandidatePlace]:
        location = (result.get("geometry") or {}).get("location") or {}
        try:
            latitude = float(location["lat"])
            longitude = float(location["lng"])
            return CandidatePlace(
                name=result.get("name") or UNKNOWN_PLACE_NAME,
                latitude=latitude,
                longitude=longitude,
                distance_m=haversine_m(origin.latitude, origin.longitude, latitude, longitude),
            )
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping place without usable location: {result.get('name')}")
            return None


class SearchCoordinator:
    """
    Runs searches off the caller's thread. Only the most recently started
    search delivers to its callback; earlier ones finish silently.
    """

    def __init__(self, provider: PlaceSearchProvider, max_workers: int = 2):
        self.provider = provider
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="place-search")
        self._lock = threading.Lock()
        self._generation = 0

    def start(
        self,
        coordinate: Coordinate,
        callback: Callable[[List[CandidatePlace]], None],
    ) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
        return self._executor.submit(self._run, generation, coordinate, callback)

    def _run(
        self,
        generation: int,
        coordinate: Coordinate,
        callback: Callable[[List[CandidatePlace]], None],
    ) -> List[CandidatePlace]:
        results = self.provider.search(coordinate)
        with self._lock:
            is_latest = generation == self._generation
        if is_latest:
            callback(results)
        else:
            logger.debug(f"Discarding superseded search #{generation}")
        return results

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
