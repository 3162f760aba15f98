"""Tests for the DuckDB place store."""

import pytest

from fooddiary_arrivals.store import (
    DuckDBPlaceStore,
    DuplicatePlaceError,
    PlaceNotFoundError,
    init_db,
)

from conftest import make_place


def test_schema_creates_place_visits(duckdb_conn):
    init_db(duckdb_conn)
    tables = {row[0] for row in duckdb_conn.execute("show tables").fetchall()}
    assert "place_visits" in tables


def test_insert_and_get(store):
    place = make_place("Joe's Diner", notes="pie")
    store.insert(place)
    assert store.get(place.place_id) == place
    assert store.get("missing") is None


def test_fetch_all_ordered_by_name(store):
    for name in ["Zed's", "Alpha", "Mike's"]:
        store.insert(make_place(name))
    assert [p.name for p in store.fetch_all()] == ["Alpha", "Mike's", "Zed's"]


def test_duplicate_insert_raises(store):
    place = make_place("Cafe")
    store.insert(place)
    with pytest.raises(DuplicatePlaceError):
        store.insert(place)
    assert store.count() == 1


def test_update_notes(store):
    place = make_place("Cafe", notes="ok")
    store.insert(place)
    store.update(place.with_notes("great"))
    assert store.get(place.place_id).notes == "great"


def test_update_missing_raises(store):
    with pytest.raises(PlaceNotFoundError):
        store.update(make_place("Ghost"))


def test_delete(store):
    place = make_place("Cafe")
    store.insert(place)
    store.delete(place.place_id)
    assert store.get(place.place_id) is None


def test_delete_missing_raises(store):
    with pytest.raises(PlaceNotFoundError):
        store.delete("missing")


def test_listeners_fire_on_success_and_failure(store):
    events = []
    store.add_listener(lambda op, place_id: events.append((op, place_id)))
    place = make_place("Cafe")

    store.insert(place)
    with pytest.raises(DuplicatePlaceError):
        store.insert(place)
    with pytest.raises(PlaceNotFoundError):
        store.delete("missing")

    assert events == [
        ("insert", place.place_id),
        ("insert", place.place_id),
        ("delete", "missing"),
    ]


def test_open_file_backed_store(tmp_path):
    path = tmp_path / "nested" / "diary.duckdb"
    store = DuckDBPlaceStore.open(str(path))
    store.insert(make_place("Cafe"))
    store.close()

    reopened = DuckDBPlaceStore.open(str(path))
    assert [p.name for p in reopened.fetch_all()] == ["Cafe"]
    reopened.close()


def test_failing_listener_does_not_mask_write_error(store):
    def broken(op, place_id):
        raise RuntimeError("reconcile failed")

    seen = []
    store.add_listener(broken)
    store.add_listener(lambda op, place_id: seen.append(op))
    place = make_place("Cafe")

    store.insert(place)
    with pytest.raises(DuplicatePlaceError):
        store.insert(place)

    assert seen == ["insert", "insert"]
    assert store.get(place.place_id) == place


def test_failing_listener_does_not_fail_successful_write(store):
    store.add_listener(lambda op, place_id: 1 / 0)
    place = make_place("Cafe")

    store.insert(place)
    store.delete(place.place_id)

    assert store.count() == 0
