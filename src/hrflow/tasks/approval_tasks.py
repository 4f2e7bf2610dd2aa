"""Approval background tasks.

- Escalation sweep over pending instances past their step SLA (beat scheduled),
  followed by a reconcile of onboardings still waiting on a finished approval
- Webhook delivery of notification intents queued by ``CeleryNotifier``
"""

from typing import Any

from hrflow.core.config import get_settings
from hrflow.services.approval.workflow import get_approval_workflow_engine
from hrflow.services.notifications.notifier import NotificationIntent, WebhookNotifier
from hrflow.services.onboarding.service import OnboardingService
from hrflow.tasks.base import async_task, get_task_logger

logger = get_task_logger("approval_tasks")


async def sweep_overdue_approvals() -> dict[str, Any]:
    """Run one escalation sweep and onboarding reconcile with the application engine."""
    engine = get_approval_workflow_engine()
    escalated = await engine.run_escalation_sweep()
    reconciled = await OnboardingService(engine).reconcile_pending_approvals()
    return {
        "status": "success",
        "escalated": escalated,
        "count": len(escalated),
        "reconciled": reconciled,
    }


async def deliver_notification(intent_data: dict[str, Any]) -> dict[str, Any]:
    """POST one notification intent to the configured webhook.

    Raises on delivery failure so the task is retried.
    """
    settings = get_settings()
    intent = NotificationIntent.model_validate(intent_data)

    if not settings.notification_webhook_url:
        logger.warning(
            "No notification webhook configured; dropping intent",
            extra={"instance_id": intent.instance_id, "kind": intent.kind.value},
        )
        return {"status": "skipped", "reason": "no webhook configured"}

    notifier = WebhookNotifier(settings.notification_webhook_url)
    try:
        await notifier.notify(intent)
    finally:
        await notifier.close()

    return {
        "status": "success",
        "instance_id": intent.instance_id,
        "recipient_id": intent.recipient_id,
    }


@async_task(queue="high")
async def run_escalation_sweep(self) -> dict[str, Any]:
    """Escalate approvals whose current step breached its SLA.

    @returns Sweep result with escalated instance IDs
    """
    logger.info("Running approval escalation sweep")
    result = await sweep_overdue_approvals()
    if result["count"]:
        logger.warning(
            "Escalated approvals",
            extra={"count": result["count"], "instance_ids": result["escalated"]},
        )
    return result


@async_task(queue="high")
async def send_approval_notification(self, intent_data: dict[str, Any]) -> dict[str, Any]:
    """Deliver a notification intent through the webhook channel.

    @param intent_data - Serialised ``NotificationIntent``
    @returns Send result
    """
    logger.info(
        "Sending approval notification",
        extra={
            "instance_id": intent_data.get("instance_id"),
            "kind": intent_data.get("kind"),
        },
    )
    return await deliver_notification(intent_data)
