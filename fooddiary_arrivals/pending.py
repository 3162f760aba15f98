"""Single-slot channel carrying the place the UI should open next."""

import threading
from typing import Optional


class PendingPlaceChannel:
    """
    put() overwrites the slot; take() returns and clears it atomically, so a
    tapped notification opens its place exactly once.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._place_id: Optional[str] = None

    def put(self, place_id: str) -> None:
        if not place_id:
            raise ValueError("place_id cannot be empty")
        with self._lock:
            self._place_id = place_id

    def take(self) -> Optional[str]:
        with self._lock:
            place_id, self._place_id = self._place_id, None
        return place_id

    def peek(self) -> Optional[str]:
        with self._lock:
            return self._place_id
