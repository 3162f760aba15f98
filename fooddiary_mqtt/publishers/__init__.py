"""
MQTT Publishers
==============

Bounded Context: Message Production

Design:
- BasePublisher: Abstract base with connection management
- NotificationPublisher: Arrival notifications and permission requests

Public API
----------
    BasePublisher: Abstract publisher (for custom publishers)
    NotificationPublisher: Notification capability over MQTT
"""

from .base import BasePublisher
from .notification import NotificationPublisher

__all__ = [
    'BasePublisher',
    'NotificationPublisher',
]
