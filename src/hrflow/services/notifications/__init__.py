"""Approval notification delivery."""

from hrflow.services.notifications.notifier import (
    CeleryNotifier,
    LogNotifier,
    NotificationIntent,
    Notifier,
    WebhookNotifier,
    build_notifier,
)

__all__ = [
    "NotificationIntent",
    "Notifier",
    "LogNotifier",
    "WebhookNotifier",
    "CeleryNotifier",
    "build_notifier",
]
