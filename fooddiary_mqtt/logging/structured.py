"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

One JSON object per log line, built on the standard logging module.

Example:
    >>> logger = StructuredLogger(component="notifications", context={'device_id': 'phone_01'})
    >>> logger.info(
    ...     event=LogEvent.NOTIFICATION_SENT,
    ...     message="Sent arrival notification",
    ...     metadata={'place_id': "Joe's Diner_40.7123_-74.0099"}
    ... )

Output:
    {"timestamp": "...", "level": "INFO", "component": "notifications",
     "event": "notification.sent", "message": "Sent arrival notification",
     "context": {"device_id": "phone_01"},
     "metadata": {"place_id": "Joe's Diner_40.7123_-74.0099"}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON structured logger.

    Attributes:
        component: Component name (e.g., "notifications", "device_events")
        context: Fields attached to every entry (e.g., device_id)
        logger: Underlying Python logger instance

    Thread Safety:
        Thread-safe via Python's logging module.
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            component: Component identifier
            level: Logging level (default: INFO)
            logger_name: Custom logger name (default: fooddiary_mqtt.<component>)
            context: Static fields added to every entry
        """
        self.component = component
        self.context = dict(context or {})
        self.logger_name = logger_name or f"fooddiary_mqtt.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)
            # JSON lines should not be re-emitted by root text handlers
            self.logger.propagate = False

    def bind(self, **context: Any) -> 'StructuredLogger':
        """Return a logger for the same component with extra context fields."""
        merged = {**self.context, **context}
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger_name,
            context=merged,
        )

    def build_entry(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> Dict[str, Any]:
        """Assemble the JSON-ready entry (exposed for tests)."""
        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'component': self.component,
            'event': event.value,
            'message': message,
        }
        if self.context:
            entry['context'] = self.context
        if metadata:
            entry['metadata'] = metadata
        if exc_info is not None:
            entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info),
            }
        return entry

    def _log(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        entry = self.build_entry(level, event, message, metadata, exc_info)
        self.logger.log(
            getattr(logging, level),
            json.dumps(entry, default=str),
            exc_info=exc_info if level == 'ERROR' else None,
        )

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log('DEBUG', event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log('INFO', event, message, metadata)

    def warning(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self._log('WARNING', event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        """
        Log ERROR level message.

        Example:
            >>> try:
            ...     publish()
            ... except OSError as e:
            ...     logger.error(LogEvent.MQTT_PUBLISH_ERROR, "Publish failed", exc_info=e)
        """
        self._log('ERROR', event, message, metadata, exc_info)


class JSONFormatter(logging.Formatter):
    """
    Pass-through formatter: StructuredLogger already rendered the JSON.

    A traceback, when present, is appended on the following lines.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def create_logger(
    component: str,
    level: int = logging.INFO,
    **context: Any,
) -> StructuredLogger:
    """
    Factory function to create a configured StructuredLogger.

    Example:
        >>> logger = create_logger("device_events", device_id="phone_01")
    """
    return StructuredLogger(component=component, level=level, context=context)
