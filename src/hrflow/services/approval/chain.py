"""Approval chain construction and SLA math."""

import logging
from datetime import datetime, timedelta

from hrflow.core.config import Settings
from hrflow.core.exceptions import EmptyWorkflow, UnresolvedApprover
from hrflow.services.approval.schemas import (
    BuiltChain,
    BuiltStep,
    StepStatus,
    WorkflowDefinitionConfig,
    WorkflowStep,
)
from hrflow.services.identity.resolver import IdentityResolver

logger = logging.getLogger(__name__)


def step_hours(step: WorkflowStep, settings: Settings) -> tuple[float, float]:
    """SLA and escalation hours for a declared step, with defaults applied."""
    sla_hours = step.sla_hours or settings.default_sla_hours
    escalation_hours = (
        step.escalation_hours or sla_hours + settings.default_escalation_grace_hours
    )
    return sla_hours, escalation_hours


def step_deadlines(
    start: datetime, sla_hours: float, escalation_hours: float
) -> tuple[datetime, datetime]:
    """``(due_at, escalate_at)`` for a step that becomes current at ``start``."""
    return (
        start + timedelta(hours=sla_hours),
        start + timedelta(hours=escalation_hours),
    )


class ChainBuilder:
    """Materialises a workflow definition into a concrete approver chain.

    Only the first step gets deadlines at build time. Every later step keeps
    its hours and is given deadlines when it becomes current.
    """

    def __init__(self, resolver: IdentityResolver, settings: Settings):
        self.resolver = resolver
        self.settings = settings

    async def build(
        self,
        workflow: WorkflowDefinitionConfig,
        requester_id: str,
        now: datetime,
        *,
        instance_ref: str | None = None,
    ) -> BuiltChain:
        """Build the chain for ``workflow`` starting at ``now``.

        @param workflow - Selected workflow definition
        @param requester_id - Requester identity
        @param now - Chain start time
        @param instance_ref - Request reference used in log context
        @returns The built chain with its SLA summary
        @raises EmptyWorkflow if the workflow declares no steps
        @raises UnresolvedApprover if a role cannot be resolved and the
            policy is ``fail``
        """
        if not workflow.steps:
            raise EmptyWorkflow(workflow.id, workflow.name)

        steps: list[BuiltStep] = []
        total_hours = 0.0

        for index, declared in enumerate(workflow.steps):
            level = index + 1
            sla_hours, escalation_hours = step_hours(declared, self.settings)
            total_hours += sla_hours

            approver_id = await self.resolver.resolve(declared.role, requester_id)
            if approver_id is None:
                if self.settings.unresolved_approver_policy == "fail":
                    raise UnresolvedApprover(level, declared.role)
                logger.warning(
                    "approval.unresolved_approver",
                    extra={
                        "event": "approval.unresolved_approver",
                        "workflow_id": workflow.id,
                        "request": instance_ref,
                        "level": level,
                        "role": declared.role,
                        "requester_id": requester_id,
                    },
                )
                status = StepStatus.UNASSIGNED
            else:
                status = StepStatus.PENDING

            due_at = escalate_at = None
            if level == 1:
                due_at, escalate_at = step_deadlines(now, sla_hours, escalation_hours)

            steps.append(
                BuiltStep(
                    level=level,
                    approver_type=declared.role,
                    approver_id=approver_id,
                    status=status,
                    sla_hours=sla_hours,
                    escalation_hours=escalation_hours,
                    due_at=due_at,
                    escalate_at=escalate_at,
                )
            )

        return BuiltChain(
            steps=steps,
            started_at=now,
            expected_completion_at=now + timedelta(hours=total_hours),
        )
