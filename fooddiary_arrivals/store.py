"""
DuckDB-backed place store.

Design:
- One table, place_visits, keyed by place_id (primary key ⇒ unique, indexed
  lookups)
- All connection access serialised with a lock
- Mutation listeners fire after every insert/update/delete attempt, even
  when the write failed, so region monitoring is always rebuilt from the
  store's actual state
"""

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

import duckdb

from fooddiary_mqtt.schemas import PlaceRecord

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

DDL = """
create table if not exists place_visits (
    place_id varchar primary key,
    name varchar not null,
    latitude double not null,
    longitude double not null,
    notes varchar,
    saved_at timestamp default current_timestamp
);
"""

_COLUMNS = "place_id, name, latitude, longitude, notes"

MutationListener = Callable[[str, str], None]


class PlaceStoreError(Exception):
    """Base class for place store failures."""


class DuplicatePlaceError(PlaceStoreError):
    """A record with the same place_id already exists."""


class PlaceNotFoundError(PlaceStoreError):
    """No record with the given place_id."""


def connect(db_path: str) -> duckdb.DuckDBPyConnection:
    if db_path != MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path)


def init_db(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(DDL)


def _row_to_record(row) -> PlaceRecord:
    place_id, name, latitude, longitude, notes = row
    return PlaceRecord(
        place_id=place_id,
        name=name,
        latitude=latitude,
        longitude=longitude,
        notes=notes,
    )


class DuckDBPlaceStore:
    """
    Place store on a DuckDB connection.

    Example:
        store = DuckDBPlaceStore.open("food_diary.duckdb")
        store.add_listener(lambda op, place_id: service.reconcile())
        store.insert(PlaceRecord.create("Joe's Diner", (40.7123, -74.0099)))
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection):
        self._conn = conn
        self._lock = threading.Lock()
        self._listeners: List[MutationListener] = []
        with self._lock:
            init_db(self._conn)

    @classmethod
    def open(cls, db_path: str) -> "DuckDBPlaceStore":
        logger.info(f"📂 Opening place store: {db_path}")
        return cls(connect(db_path))

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def add_listener(self, listener: MutationListener) -> None:
        """Register listener(operation, place_id) for mutation attempts."""
        self._listeners.append(listener)

    def _notify(self, operation: str, place_id: str) -> None:
        """Run listeners; a failing listener is logged and never masks the write outcome."""
        for listener in list(self._listeners):
            try:
                listener(operation, place_id)
            except Exception:
                logger.exception(f"❌ Store listener failed after {operation} of {place_id}")

    # ===== Queries =====

    def fetch_all(self) -> List[PlaceRecord]:
        """All records ordered by name (ties by place_id)."""
        with self._lock:
            rows = self._conn.execute(
                f"select {_COLUMNS} from place_visits order by name, place_id"
            ).fetchall()
        return [_row_to_record(row) for row in rows]

    def get(self, place_id: str) -> Optional[PlaceRecord]:
        with self._lock:
            row = self._conn.execute(
                f"select {_COLUMNS} from place_visits where place_id = ?",
                [place_id],
            ).fetchone()
        return _row_to_record(row) if row else None

    def count(self) -> int:
        with self._lock:
            (total,) = self._conn.execute("select count(*) from place_visits").fetchone()
        return total

    # ===== Mutations =====

    def insert(self, record: PlaceRecord) -> None:
        """
        Raises:
            DuplicatePlaceError: place_id already stored
            PlaceStoreError: any other database failure
        """
        try:
            with self._lock:
                self._conn.execute(
                    f"insert into place_visits ({_COLUMNS}) values (?, ?, ?, ?, ?)",
                    [record.place_id, record.name, record.latitude, record.longitude, record.notes],
                )
        except duckdb.ConstraintException as e:
            raise DuplicatePlaceError(f"Place already saved: {record.place_id}") from e
        except duckdb.Error as e:
            raise PlaceStoreError(f"Failed to insert {record.place_id}: {e}") from e
        finally:
            self._notify("insert", record.place_id)

    def update(self, record: PlaceRecord) -> None:
        """
        Replace name, coordinates and notes of an existing record.

        Raises:
            PlaceNotFoundError: place_id not stored
            PlaceStoreError: any other database failure
        """
        try:
            with self._lock:
                exists = self._conn.execute(
                    "select 1 from place_visits where place_id = ?", [record.place_id]
                ).fetchone()
                if not exists:
                    raise PlaceNotFoundError(f"Place not found: {record.place_id}")
                self._conn.execute(
                    "update place_visits set name = ?, latitude = ?, longitude = ?, notes = ? "
                    "where place_id = ?",
                    [record.name, record.latitude, record.longitude, record.notes, record.place_id],
                )
        except duckdb.Error as e:
            raise PlaceStoreError(f"Failed to update {record.place_id}: {e}") from e
        finally:
            self._notify("update", record.place_id)

    def delete(self, place_id: str) -> None:
        """
        Raises:
            PlaceNotFoundError: place_id not stored
            PlaceStoreError: any other database failure
        """
        try:
            with self._lock:
                exists = self._conn.execute(
                    "select 1 from place_visits where place_id = ?", [place_id]
                ).fetchone()
                if not exists:
                    raise PlaceNotFoundError(f"Place not found: {place_id}")
                self._conn.execute("delete from place_visits where place_id = ?", [place_id])
        except duckdb.Error as e:
            raise PlaceStoreError(f"Failed to delete {place_id}: {e}") from e
        finally:
            self._notify("delete", place_id)
