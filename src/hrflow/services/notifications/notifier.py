"""Approval notification delivery.

The engine records every notification intent in the instance's notification
log inside the deciding transaction, then hands the intent to a ``Notifier``
after commit. Delivery is fire-and-forget: the engine logs and drops any
exception a notifier raises.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import BaseModel, Field

from hrflow.core.config import Settings, get_settings
from hrflow.services.approval.schemas import Channel, NotificationKind

logger = logging.getLogger(__name__)


class NotificationIntent(BaseModel):
    """A request to tell someone about an approval instance."""

    instance_id: str
    recipient_id: str
    kind: NotificationKind
    channel: Channel = Channel.EMAIL
    request_type: str
    request_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier(ABC):
    """Delivers notification intents."""

    @abstractmethod
    async def notify(self, intent: NotificationIntent) -> None:
        """Deliver one intent. May raise; callers isolate failures."""


class LogNotifier(Notifier):
    """Writes intents to the log. Default for development."""

    async def notify(self, intent: NotificationIntent) -> None:
        logger.info(
            f"[NOTIFY] {intent.kind.value} -> {intent.recipient_id} "
            f"via {intent.channel.value} ({intent.instance_id})",
            extra={
                "instance_id": intent.instance_id,
                "recipient_id": intent.recipient_id,
                "kind": intent.kind.value,
            },
        )


class WebhookNotifier(Notifier):
    """POSTs intents as JSON to a webhook."""

    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def build_payload(self, intent: NotificationIntent) -> dict[str, Any]:
        return {
            "instance_id": intent.instance_id,
            "recipient_id": intent.recipient_id,
            "kind": intent.kind.value,
            "channel": intent.channel.value,
            "request_type": intent.request_type,
            "request_id": intent.request_id,
            "created_at": intent.created_at.isoformat(),
        }

    async def notify(self, intent: NotificationIntent) -> None:
        client = await self._get_http_client()
        response = await client.post(self.url, json=self.build_payload(intent))
        response.raise_for_status()
        logger.debug(f"Webhook accepted {intent.kind.value} for {intent.instance_id}")

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


class CeleryNotifier(Notifier):
    """Enqueues intents for the notification worker."""

    async def notify(self, intent: NotificationIntent) -> None:
        from hrflow.tasks.approval_tasks import send_approval_notification

        send_approval_notification.delay(intent.model_dump(mode="json"))


def build_notifier(settings: Settings | None = None) -> Notifier:
    """Notifier for the configured backend."""
    settings = settings or get_settings()

    if settings.notification_backend == "webhook":
        if not settings.notification_webhook_url:
            logger.warning("Webhook notifier selected without a URL; using log")
            return LogNotifier()
        return WebhookNotifier(settings.notification_webhook_url)

    if settings.notification_backend == "celery":
        return CeleryNotifier()

    return LogNotifier()
