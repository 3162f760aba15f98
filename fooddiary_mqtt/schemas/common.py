"""
Common Schema Types
==================

Bounded Context: Shared Data Structures

Types used across place, notification and device event messages.

Design Principles:
- Immutability: frozen=True prevents accidental mutation
- Serialization: to_dict() for JSON export
- Validation: Constructor validates invariants
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable ISO 8601 timestamp wrapper (UTC).

    Attributes:
        value: ISO 8601 formatted timestamp string

    Example:
        >>> ts = Timestamp.now()
        >>> ts.value
        '2026-10-17T15:30:45.123456+00:00'
    """
    value: str

    def __post_init__(self):
        """Validate the string parses as ISO 8601."""
        try:
            datetime.fromisoformat(self.value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value!r}") from e

    @classmethod
    def now(cls) -> 'Timestamp':
        """Create timestamp from current UTC time."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> str:
        """Serialize to JSON (as string)."""
        return self.value


def require(data: Dict[str, Any], key: str) -> Any:
    """
    Fetch a required field from a message payload.

    Raises:
        ValueError: If the key is missing
    """
    if key not in data:
        raise ValueError(f"Missing required field: {key!r}")
    return data[key]


def optional_str(value: Any) -> Optional[str]:
    """Coerce a payload value to str, keeping None."""
    if value is None:
        return None
    return str(value)
