"""Notifications: per-account sync digests."""

from src.notifications.emitter import NotificationEmitter, build_notification
from src.notifications.repository import NotificationRepository
from src.notifications.schemas import Notification

__all__ = [
    "Notification",
    "NotificationEmitter",
    "NotificationRepository",
    "build_notification",
]
