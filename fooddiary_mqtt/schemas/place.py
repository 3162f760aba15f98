"""
Place Schemas
=============

Bounded Context: Saved places and search candidates

Design:
- PlaceRecord: one saved visit, keyed by a deterministic place id
- CandidatePlace: a search result the user may save
- make_place_id(): proximity-addressed identifier (name + coordinate
  rounded to 4 decimals, about 11 m)

Example:
    >>> make_place_id("Joe's Diner", (40.71234567, -74.00987654))
    "Joe's Diner_40.7123_-74.0099"
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple, Union

from fooddiary_geofence import Coordinate

from .common import optional_str, require

PLACE_ID_DECIMALS = 4
UNKNOWN_PLACE_NAME = "Unknown"

CoordinateLike = Union[Coordinate, Tuple[float, float]]


def round_half_away(value: float, decimals: int = PLACE_ID_DECIMALS) -> float:
    """
    Round half away from zero (2.5 -> 3, -2.5 -> -3).

    Python's round() is half-to-even on the binary value, which would
    split ids for coordinates sitting exactly on a .5 boundary.
    """
    scale = 10 ** decimals
    rounded = math.floor(abs(value) * scale + 0.5) / scale
    return math.copysign(rounded, value)


def make_place_id(name: Optional[str], coordinate: CoordinateLike) -> str:
    """
    Derive the stable place identifier.

    Args:
        name: Place display name (empty/None becomes "Unknown")
        coordinate: Coordinate or (latitude, longitude) pair

    Returns:
        "<name>_<lat>_<lon>" with both degrees rounded to 4 decimals
    """
    if not isinstance(coordinate, Coordinate):
        coordinate = Coordinate.from_tuple(coordinate)

    base_name = name if name else UNKNOWN_PLACE_NAME
    lat = round_half_away(coordinate.latitude)
    lon = round_half_away(coordinate.longitude)
    return f"{base_name}_{lat!r}_{lon!r}"


@dataclass(frozen=True)
class PlaceRecord:
    """
    Immutable saved place visit.

    Attributes:
        place_id: Unique key (see make_place_id)
        name: Display name
        latitude: Degrees
        longitude: Degrees
        notes: Optional free text; empty strings are normalized to None

    Invariants:
        - place_id and name are non-empty
        - coordinate is valid WGS84
    """
    place_id: str
    name: str
    latitude: float
    longitude: float
    notes: Optional[str] = None

    def __post_init__(self):
        """Validate invariants and normalize notes."""
        if not self.place_id:
            raise ValueError("place_id cannot be empty")
        if not self.name:
            raise ValueError("name cannot be empty")
        # Raises ValueError on out-of-range degrees
        Coordinate(self.latitude, self.longitude)
        if self.notes == "":
            object.__setattr__(self, 'notes', None)

    @classmethod
    def create(
        cls,
        name: str,
        coordinate: CoordinateLike,
        notes: Optional[str] = None,
    ) -> 'PlaceRecord':
        """Build a new record, deriving its place id."""
        if not isinstance(coordinate, Coordinate):
            coordinate = Coordinate.from_tuple(coordinate)
        return cls(
            place_id=make_place_id(name, coordinate),
            name=name or UNKNOWN_PLACE_NAME,
            latitude=coordinate.latitude,
            longitude=coordinate.longitude,
            notes=notes,
        )

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @property
    def has_notes(self) -> bool:
        return bool(self.notes)

    def with_notes(self, notes: Optional[str]) -> 'PlaceRecord':
        """Copy with replaced notes (empty string clears them)."""
        return replace(self, notes=notes or None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'place_id': self.place_id,
            'name': self.name,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaceRecord':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                place_id=str(require(data, 'place_id')),
                name=str(require(data, 'name')),
                latitude=float(require(data, 'latitude')),
                longitude=float(require(data, 'longitude')),
                notes=optional_str(data.get('notes')),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid PlaceRecord data: {e}") from e


@dataclass(frozen=True)
class CandidatePlace:
    """
    Search result offered to the user.

    Attributes:
        name: Display name (may be "Unknown")
        latitude: Degrees
        longitude: Degrees
        distance_m: Distance from the search origin, if known
    """
    name: str
    latitude: float
    longitude: float
    distance_m: Optional[float] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    @property
    def place_id(self) -> str:
        return make_place_id(self.name, self.coordinate)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.name,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'place_id': self.place_id,
        }
        if self.distance_m is not None:
            result['distance_m'] = round(self.distance_m, 1)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CandidatePlace':
        try:
            distance = data.get('distance_m')
            return cls(
                name=str(data.get('name') or UNKNOWN_PLACE_NAME),
                latitude=float(require(data, 'latitude')),
                longitude=float(require(data, 'longitude')),
                distance_m=float(distance) if distance is not None else None,
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid CandidatePlace data: {e}") from e
