"""Notification service package."""

from .backend import InMemoryPushBackend, PushBackend, WebSocketPushBackend
from .realtime import ConnectionManager, get_connection_manager
from .service import NotificationEvent, NotificationService, serialize_notification

__all__ = [
    "ConnectionManager",
    "InMemoryPushBackend",
    "NotificationEvent",
    "NotificationService",
    "PushBackend",
    "WebSocketPushBackend",
    "get_connection_manager",
    "serialize_notification",
]
