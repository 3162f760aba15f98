"""
Arrival Notifier.

Turns "region entered" events into one local notification for the matching
saved place, and routes notification taps to the pending-place channel.

Notification Format:
    title: configured title (default "You've been here before")
    body:  "<name>" or "<name> — <notes preview>"
    payload: {"place_id": <place id>}

The notes preview keeps the first preview_length characters and appends
"…" only when the notes are longer than that.
"""

import logging
import uuid
from typing import Optional

from fooddiary_mqtt.schemas import ArrivalNotification, NotificationTapped, PlaceRecord

from .capabilities import NotificationSink, PlaceStore
from .pending import PendingPlaceChannel

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "You've been here before"
PREVIEW_LENGTH = 80
ELLIPSIS = "…"
NOTES_SEPARATOR = " — "


def notes_preview(notes: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(notes) > limit:
        return notes[:limit] + ELLIPSIS
    return notes


def build_body(record: PlaceRecord, limit: int = PREVIEW_LENGTH) -> str:
    body = record.name
    if record.notes:
        body += NOTES_SEPARATOR + notes_preview(record.notes, limit)
    return body


def new_notification_id(place_id: str) -> str:
    """Unique per emission, so repeat arrivals never replace each other."""
    return f"arrival-{place_id}-{uuid.uuid4().hex}"


class ArrivalNotifier:
    """
    Example:
        notifier = ArrivalNotifier(sink=publisher, pending=PendingPlaceChannel())
        notifier.on_region_entered("Joe's Diner_40.7123_-74.0099", store)
    """

    def __init__(
        self,
        sink: NotificationSink,
        pending: PendingPlaceChannel,
        title: str = DEFAULT_TITLE,
        preview_length: int = PREVIEW_LENGTH,
    ):
        self.sink = sink
        self.pending = pending
        self.title = title
        self.preview_length = preview_length

    def on_region_entered(self, region_id: str, store: PlaceStore) -> Optional[ArrivalNotification]:
        """
        Notify for the place behind region_id.

        Returns the notification handed to the sink, or None when the region
        no longer maps to a saved place.
        """
        record = store.get(region_id)
        if record is None:
            logger.debug(f"Ignoring arrival for unknown region: {region_id}")
            return None

        notification = ArrivalNotification(
            notification_id=new_notification_id(record.place_id),
            title=self.title,
            body=build_body(record, self.preview_length),
            payload={'place_id': record.place_id},
        )

        delivered = self.sink.send(
            notification.notification_id,
            notification.title,
            notification.body,
            notification.payload,
        )
        if delivered:
            logger.info(f"🔔 Arrival notification for {record.name}")
        else:
            logger.warning(f"⚠️ Arrival notification for {record.name} was not delivered")
        return notification

    def on_notification_tapped(self, event: NotificationTapped) -> Optional[str]:
        """Queue the tapped notification's place for the UI."""
        place_id = event.payload.get('place_id')
        if not isinstance(place_id, str) or not place_id:
            logger.debug(f"Notification {event.notification_id} carries no place id")
            return None

        self.pending.put(place_id)
        logger.info(f"👆 Notification tapped; pending place {place_id}")
        return place_id
