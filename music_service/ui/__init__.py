# UI module
from .notification import (
    TransportCommand,
    NotificationSnapshot,
    NotificationBridge,
    LoggingNotificationBridge,
)

__all__ = [
    "TransportCommand",
    "NotificationSnapshot",
    "NotificationBridge",
    "LoggingNotificationBridge",
]
