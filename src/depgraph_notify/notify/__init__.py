"""
In-process notification queue.

- requests are ordered by priority (high > normal > low), FIFO within a class
- one drain loop at a time delivers them to the host's display adapter
- non-high deliveries are spaced by a cooldown to avoid pop-up storms
"""

from .adapter import DisplayAdapter, DisplayOptions, LogDisplayAdapter, StatusBarMessage
from .base import NotificationAction, NotificationPriority, NotificationRequest, NotificationType
from .dispatcher import DeliveryFailed
from .queue import PriorityQueue, QueueEmptyError
from .service import NotificationService

__all__ = [
    "DeliveryFailed",
    "DisplayAdapter",
    "DisplayOptions",
    "LogDisplayAdapter",
    "NotificationAction",
    "NotificationPriority",
    "NotificationRequest",
    "NotificationService",
    "NotificationType",
    "PriorityQueue",
    "QueueEmptyError",
    "StatusBarMessage",
]
