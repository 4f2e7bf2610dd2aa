"""Approval workflow engine with database persistence.

Features:
- Workflow selection by request type, requester role and conditions
- Role-based approver chains resolved against the tenant user store
- Per-step SLA deadlines, re-based when a step becomes current
- Escalation sweep for breached steps
- Append-only history and notification log per instance
- Optimistic locking on every mutation of a pending instance
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrflow.core.config import Settings, get_settings
from hrflow.core.exceptions import (
    DuplicateApprovalRequest,
    InstanceNotFound,
    InvalidAssignment,
    NoPendingApprover,
    NotAuthorized,
    StaleInstanceState,
)
from hrflow.models.approval import (
    ApprovalChainStep,
    ApprovalHistoryEntry,
    ApprovalInstance,
    ApprovalNotification,
)
from hrflow.repositories.approval import ApprovalInstanceRepository
from hrflow.repositories.user import UserRepository
from hrflow.services.approval.chain import ChainBuilder, step_deadlines
from hrflow.services.approval.schemas import (
    ApprovalInstanceDetail,
    ApprovalOutcome,
    ApprovalOutcomeEvent,
    ApprovalStats,
    ChainStepDetail,
    Decision,
    HistoryAction,
    HistoryEntry,
    InstanceStatus,
    NotificationKind,
    NotificationLogEntry,
    RequestType,
    SLAStatus,
    StepStatus,
)
from hrflow.services.approval.selector import WorkflowSelector, build_condition_context
from hrflow.services.identity.resolver import IdentityResolver
from hrflow.services.notifications.notifier import (
    NotificationIntent,
    Notifier,
    build_notifier,
)
from hrflow.services.outcomes.dispatcher import (
    ApprovalOutcomeDispatcher,
    get_outcome_dispatcher,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalWorkflowEngine:
    """Engine for managing approval instances with database persistence.

    Every write to a pending instance is a compare-and-set on its version
    counter. A lost race raises ``StaleInstanceState`` and nothing from the
    losing transaction persists. Notifications and outcome events are
    delivered only after the deciding transaction commits, and their
    failures never undo it.

    Uses Repository pattern for database operations.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
        notifier: Notifier | None = None,
        dispatcher: ApprovalOutcomeDispatcher | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize approval workflow engine.

        @param session_factory - Factory for database sessions (application
            factory if None)
        @param settings - Settings (cached application settings if None)
        @param notifier - Notification backend (built from settings if None)
        @param dispatcher - Outcome dispatcher (process singleton if None)
        @param clock - Returns the current UTC time
        """
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self.notifier = notifier or build_notifier(self.settings)
        self.dispatcher = dispatcher or get_outcome_dispatcher()
        self._clock = clock or _utcnow

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            from hrflow.infrastructure.database.session import get_session_factory

            self._session_factory = get_session_factory()
        return self._session_factory

    def _now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _load(
        self, repo: ApprovalInstanceRepository, instance_id: str
    ) -> ApprovalInstance:
        instance = await repo.get_with_chain(instance_id)
        if instance is None:
            raise InstanceNotFound(instance_id)
        return instance

    @staticmethod
    def _step_at(instance: ApprovalInstance, level: int) -> ApprovalChainStep | None:
        for step in instance.steps:
            if step.level == level:
                return step
        return None

    def _pending_step(self, instance: ApprovalInstance) -> ApprovalChainStep:
        """Current step, which must be awaiting a decision."""
        if instance.status != InstanceStatus.PENDING.value:
            raise NoPendingApprover(instance.id, instance.status)
        step = self._step_at(instance, instance.current_level)
        if step is None or step.status != StepStatus.PENDING.value:
            raise NoPendingApprover(instance.id, instance.status)
        return step

    async def _compare_and_set(
        self,
        repo: ApprovalInstanceRepository,
        instance: ApprovalInstance,
        values: dict[str, Any],
    ) -> None:
        updated = await repo.compare_and_set(instance.id, instance.version, values)
        if updated == 0:
            logger.warning(
                f"Lost update on {instance.id} at version {instance.version}",
                extra={"instance_id": instance.id, "expected_version": instance.version},
            )
            raise StaleInstanceState(instance.id, instance.version)

    async def _record_transition(
        self,
        repo: ApprovalInstanceRepository,
        instance: ApprovalInstance,
        action: HistoryAction,
        actor_id: str | None,
        details: dict[str, Any],
        *,
        level: int,
        status: str,
    ) -> None:
        """Append a history row and emit the matching structured log event."""
        await repo.add_history(
            ApprovalHistoryEntry(
                instance_id=instance.id,
                action=action.value,
                performed_by=actor_id,
                timestamp=self._now(),
                details=details,
            )
        )
        event = f"approval.{action.value.lower()}"
        logger.info(
            event,
            extra={
                "event": event,
                "instance_id": instance.id,
                "request_type": instance.request_type,
                "request_id": instance.request_id,
                "level": level,
                "actor_id": actor_id,
                "status": status,
            },
        )

    async def _queue_notification(
        self,
        repo: ApprovalInstanceRepository,
        instance: ApprovalInstance,
        recipient_id: str | None,
        kind: NotificationKind,
        outbox: list[NotificationIntent],
    ) -> None:
        """Log a notification intent; it is delivered after commit."""
        if not recipient_id:
            return
        intent = NotificationIntent(
            instance_id=instance.id,
            recipient_id=recipient_id,
            kind=kind,
            channel=self.settings.notification_channel,
            request_type=instance.request_type,
            request_id=instance.request_id,
            created_at=self._now(),
        )
        await repo.add_notification(
            ApprovalNotification(
                instance_id=instance.id,
                sent_to=recipient_id,
                kind=kind.value,
                channel=intent.channel.value,
                sent_at=intent.created_at,
            )
        )
        outbox.append(intent)

    async def _deliver(self, outbox: list[NotificationIntent]) -> None:
        for intent in outbox:
            try:
                await self.notifier.notify(intent)
            except Exception:
                logger.exception(
                    f"Notification {intent.kind.value} to {intent.recipient_id} "
                    f"for {intent.instance_id} failed",
                    extra={"instance_id": intent.instance_id},
                )

    async def _emit_outcome(
        self,
        instance: ApprovalInstance,
        outcome: ApprovalOutcome,
        actor_id: str | None,
        comment: str | None,
        occurred_at: datetime,
    ) -> None:
        event = ApprovalOutcomeEvent(
            instance_id=instance.id,
            request_type=RequestType(instance.request_type),
            request_id=instance.request_id,
            outcome=outcome,
            actor_id=actor_id,
            comment=comment,
            occurred_at=occurred_at,
        )
        await self.dispatcher.dispatch(event)

    @staticmethod
    def _to_detail(instance: ApprovalInstance) -> ApprovalInstanceDetail:
        return ApprovalInstanceDetail(
            id=instance.id,
            request_type=RequestType(instance.request_type),
            request_id=instance.request_id,
            requested_by=instance.requested_by,
            workflow_id=instance.workflow_id,
            current_level=instance.current_level,
            total_levels=instance.total_levels,
            status=InstanceStatus(instance.status),
            metadata=instance.meta or {},
            chain=[ChainStepDetail.model_validate(s) for s in instance.steps],
            sla=SLAStatus(
                started_at=instance.sla_started_at,
                expected_completion_at=instance.sla_expected_completion_at,
                completed_at=instance.sla_completed_at,
                is_breached=instance.sla_is_breached,
                breach_reason=instance.sla_breach_reason,
            ),
            history=[HistoryEntry.model_validate(h) for h in instance.history],
            notifications=[
                NotificationLogEntry.model_validate(n) for n in instance.notifications
            ],
            version=instance.version,
            created_at=instance.created_at,
            updated_at=instance.updated_at,
        )

    async def _reload(self, instance_id: str) -> ApprovalInstanceDetail:
        detail = await self.get_instance(instance_id)
        if detail is None:
            raise InstanceNotFound(instance_id)
        return detail

    # =========================================================================
    # Commands
    # =========================================================================

    async def create_instance(
        self,
        request_type: RequestType | str,
        request_id: str,
        requester_id: str,
        attributes: Mapping[str, Any] | None = None,
        requester_role: str | None = None,
    ) -> ApprovalInstanceDetail:
        """Create an approval instance for a request.

        @param request_type - Kind of request
        @param request_id - Reference to the gated business object
        @param requester_id - Identity of the requester
        @param attributes - Request attributes (amount, duration, custom
            fields) used for condition evaluation and display
        @param requester_role - Requester role; looked up when omitted
        @returns Created instance
        @raises DuplicateApprovalRequest if one is already pending
        @raises NoApplicableWorkflow, EmptyWorkflow, UnresolvedApprover
        """
        request_type = RequestType(request_type)
        attributes = dict(attributes or {})
        now = self._now()
        outbox: list[NotificationIntent] = []

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)

            existing = await repo.get_open_by_request(request_type.value, request_id)
            if existing is not None:
                raise DuplicateApprovalRequest(
                    request_type.value, request_id, existing.id
                )

            resolver = IdentityResolver(session)
            if requester_role is None:
                requester = await resolver.get_user(requester_id)
                requester_role = requester.role if requester is not None else None

            context = build_condition_context(
                request_type.value, requester_id, requester_role, attributes
            )
            definition, config = await WorkflowSelector(session).select(
                request_type.value, requester_role, context
            )

            chain = await ChainBuilder(resolver, self.settings).build(
                config,
                requester_id,
                now,
                instance_ref=f"{request_type.value}:{request_id}",
            )

            instance_id = f"APR-{uuid.uuid4().hex[:8].upper()}"
            instance = ApprovalInstance(
                id=instance_id,
                request_type=request_type.value,
                request_id=request_id,
                requested_by=requester_id,
                workflow_id=definition.id,
                current_level=1,
                total_levels=len(chain.steps),
                status=InstanceStatus.PENDING.value,
                meta=attributes,
                sla_started_at=chain.started_at,
                sla_expected_completion_at=chain.expected_completion_at,
                sla_is_breached=False,
                version=1,
                steps=[
                    ApprovalChainStep(
                        level=step.level,
                        approver_type=step.approver_type,
                        approver_id=step.approver_id,
                        status=step.status.value,
                        sla_hours=step.sla_hours,
                        escalation_hours=step.escalation_hours,
                        due_at=step.due_at,
                        escalate_at=step.escalate_at,
                        is_escalated=False,
                    )
                    for step in chain.steps
                ],
            )
            session.add(instance)
            try:
                await session.flush()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateApprovalRequest(request_type.value, request_id) from e

            details: dict[str, Any] = {
                "workflow": config.name,
                "workflow_id": config.id,
            }
            if chain.unresolved_levels:
                details["unresolved_levels"] = chain.unresolved_levels

            await self._record_transition(
                repo,
                instance,
                HistoryAction.CREATED,
                requester_id,
                details,
                level=1,
                status=InstanceStatus.PENDING.value,
            )

            first = chain.steps[0]
            if first.status == StepStatus.PENDING:
                await self._queue_notification(
                    repo, instance, first.approver_id, NotificationKind.PENDING, outbox
                )

            await session.commit()

        logger.info(
            f"Created approval {instance_id} for {request_type.value}:{request_id} "
            f"workflow={config.id} levels={len(chain.steps)}"
        )
        await self._deliver(outbox)
        return await self._reload(instance_id)

    async def process_approval(
        self,
        instance_id: str,
        actor_id: str,
        decision: Decision | str,
        comment: str | None = None,
    ) -> ApprovalInstanceDetail:
        """Apply an approver's decision to the current step.

        Approving advances to the next level (re-basing its SLA) or completes
        the instance. Rejecting is terminal; later levels stay untouched.

        @param instance_id - Instance ID
        @param actor_id - Identity of the acting approver
        @param decision - approve or reject
        @param comment - Free-text comment stored on the step
        @returns Updated instance
        @raises InstanceNotFound, NoPendingApprover, NotAuthorized,
            StaleInstanceState
        """
        decision = Decision(decision)
        outbox: list[NotificationIntent] = []
        outcome: ApprovalOutcome | None = None

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await self._load(repo, instance_id)
            step = self._pending_step(instance)
            if step.approver_id != actor_id:
                raise NotAuthorized(instance_id, actor_id)

            now = self._now()
            level = instance.current_level
            next_step = None

            if decision == Decision.REJECT:
                outcome = ApprovalOutcome.REJECTED
                new_status = InstanceStatus.REJECTED.value
                values: dict[str, Any] = {"status": new_status, "sla_completed_at": now}
            elif level < instance.total_levels:
                new_status = InstanceStatus.PENDING.value
                values = {"current_level": level + 1}
                next_step = self._step_at(instance, level + 1)
            else:
                outcome = ApprovalOutcome.APPROVED
                new_status = InstanceStatus.APPROVED.value
                values = {"status": new_status, "sla_completed_at": now}

            await self._compare_and_set(repo, instance, values)

            step.status = (
                StepStatus.APPROVED.value
                if decision == Decision.APPROVE
                else StepStatus.REJECTED.value
            )
            step.action_date = now
            step.comments = comment

            await self._record_transition(
                repo,
                instance,
                HistoryAction.APPROVED
                if decision == Decision.APPROVE
                else HistoryAction.REJECTED,
                actor_id,
                {"comments": comment, "level": level},
                level=level,
                status=new_status,
            )

            if next_step is not None:
                next_step.due_at, next_step.escalate_at = step_deadlines(
                    now, next_step.sla_hours, next_step.escalation_hours
                )
                if next_step.status == StepStatus.PENDING.value:
                    await self._queue_notification(
                        repo,
                        instance,
                        next_step.approver_id,
                        NotificationKind.PENDING,
                        outbox,
                    )
                else:
                    logger.warning(
                        f"Approval {instance_id} advanced to unassigned level "
                        f"{next_step.level}"
                    )
            else:
                await self._queue_notification(
                    repo,
                    instance,
                    instance.requested_by,
                    NotificationKind(new_status),
                    outbox,
                )

            await session.commit()

        await self._deliver(outbox)
        if outcome is not None:
            await self._emit_outcome(instance, outcome, actor_id, comment, now)
        return await self._reload(instance_id)

    async def run_escalation_sweep(self, now: datetime | None = None) -> list[str]:
        """Escalate pending instances whose current step is past due.

        Each instance is escalated in its own transaction. An instance that
        another writer changed first is skipped; a step that is already
        escalated is never escalated again.

        @param now - Reference time (current time if None)
        @returns IDs of instances escalated by this sweep
        """
        now = now or self._now()

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            candidates = list(await repo.get_overdue_pending(now))

        escalated: list[str] = []
        for instance_id in candidates:
            try:
                if await self._escalate(instance_id, now):
                    escalated.append(instance_id)
            except StaleInstanceState:
                logger.info(f"Skipping escalation of {instance_id}: changed concurrently")

        if escalated:
            logger.warning(f"Escalated {len(escalated)} approval(s): {escalated}")
        return escalated

    async def _escalate(self, instance_id: str, now: datetime) -> bool:
        outbox: list[NotificationIntent] = []

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await repo.get_with_chain(instance_id)
            if instance is None or instance.status != InstanceStatus.PENDING.value:
                return False

            step = self._step_at(instance, instance.current_level)
            if (
                step is None
                or step.is_escalated
                or step.due_at is None
                or step.due_at > now
            ):
                return False

            escalated_to = await IdentityResolver(session).resolve(
                self.settings.escalation_role, instance.requested_by
            )
            level = instance.current_level
            reason = f"SLA breached at level {level}"

            await self._compare_and_set(
                repo,
                instance,
                {"sla_is_breached": True, "sla_breach_reason": reason},
            )

            step.is_escalated = True
            step.escalated_to = escalated_to

            await self._record_transition(
                repo,
                instance,
                HistoryAction.ESCALATED,
                None,
                {"level": level, "reason": "SLA breach", "escalated_to": escalated_to},
                level=level,
                status=instance.status,
            )

            await self._queue_notification(
                repo, instance, step.approver_id, NotificationKind.ESCALATION, outbox
            )
            if escalated_to != step.approver_id:
                await self._queue_notification(
                    repo, instance, escalated_to, NotificationKind.ESCALATION, outbox
                )

            await session.commit()

        await self._deliver(outbox)
        return True

    async def cancel_instance(
        self,
        instance_id: str,
        actor_id: str,
        reason: str | None = None,
    ) -> ApprovalInstanceDetail:
        """Administratively cancel a pending instance.

        @param instance_id - Instance ID
        @param actor_id - Identity cancelling
        @param reason - Cancellation reason
        @returns Cancelled instance
        @raises InstanceNotFound, NoPendingApprover if already terminal,
            StaleInstanceState
        """
        outbox: list[NotificationIntent] = []

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await self._load(repo, instance_id)
            if instance.status != InstanceStatus.PENDING.value:
                raise NoPendingApprover(instance_id, instance.status)

            now = self._now()
            await self._compare_and_set(
                repo,
                instance,
                {"status": InstanceStatus.CANCELLED.value, "sla_completed_at": now},
            )
            await self._record_transition(
                repo,
                instance,
                HistoryAction.CANCELLED,
                actor_id,
                {"reason": reason, "level": instance.current_level},
                level=instance.current_level,
                status=InstanceStatus.CANCELLED.value,
            )
            await self._queue_notification(
                repo,
                instance,
                instance.requested_by,
                NotificationKind.CANCELLED,
                outbox,
            )

            await session.commit()

        logger.info(f"Approval {instance_id} cancelled by {actor_id}: {reason}")
        await self._deliver(outbox)
        await self._emit_outcome(
            instance, ApprovalOutcome.CANCELLED, actor_id, reason, now
        )
        return await self._reload(instance_id)

    async def assign_approver(
        self,
        instance_id: str,
        level: int,
        approver_id: str,
        actor_id: str,
    ) -> ApprovalInstanceDetail:
        """Assign an approver to a step whose role could not be resolved.

        @param instance_id - Instance ID
        @param level - Level of the unassigned step
        @param approver_id - Identity to assign
        @param actor_id - Administrator making the assignment
        @returns Updated instance
        @raises InvalidAssignment if the step is not unassigned or the
            identity is unknown
        """
        outbox: list[NotificationIntent] = []

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await self._load(repo, instance_id)
            if instance.status != InstanceStatus.PENDING.value:
                raise NoPendingApprover(instance_id, instance.status)

            step = self._step_at(instance, level)
            if step is None or step.status != StepStatus.UNASSIGNED.value:
                raise InvalidAssignment(
                    f"Level {level} of {instance_id} is not awaiting assignment",
                    instance_id=instance_id,
                    level=level,
                )

            approver = await UserRepository(session).get_by_id(approver_id)
            if approver is None or not approver.is_active:
                raise InvalidAssignment(
                    f"User {approver_id} cannot be assigned as approver",
                    instance_id=instance_id,
                    approver_id=approver_id,
                )

            await self._compare_and_set(repo, instance, {})

            step.approver_id = approver_id
            step.status = StepStatus.PENDING.value
            if level == instance.current_level and step.due_at is None:
                step.due_at, step.escalate_at = step_deadlines(
                    self._now(), step.sla_hours, step.escalation_hours
                )

            await self._record_transition(
                repo,
                instance,
                HistoryAction.ASSIGNED,
                actor_id,
                {"level": level, "approver_id": approver_id},
                level=level,
                status=instance.status,
            )
            if level == instance.current_level:
                await self._queue_notification(
                    repo, instance, approver_id, NotificationKind.PENDING, outbox
                )

            await session.commit()

        await self._deliver(outbox)
        return await self._reload(instance_id)

    async def delegate(
        self,
        instance_id: str,
        actor_id: str,
        delegate_to: str,
        comment: str | None = None,
    ) -> ApprovalInstanceDetail:
        """Hand the current step to another identity.

        @param instance_id - Instance ID
        @param actor_id - Current approver
        @param delegate_to - Identity taking over the step
        @param comment - Optional note
        @returns Updated instance
        @raises NoPendingApprover, NotAuthorized, InvalidAssignment
        """
        outbox: list[NotificationIntent] = []

        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await self._load(repo, instance_id)
            step = self._pending_step(instance)
            if step.approver_id != actor_id:
                raise NotAuthorized(instance_id, actor_id)
            if delegate_to == actor_id:
                raise InvalidAssignment(
                    "Cannot delegate to yourself", instance_id=instance_id
                )

            delegate = await UserRepository(session).get_by_id(delegate_to)
            if delegate is None or not delegate.is_active:
                raise InvalidAssignment(
                    f"User {delegate_to} cannot receive a delegation",
                    instance_id=instance_id,
                    delegate_to=delegate_to,
                )

            await self._compare_and_set(repo, instance, {})

            step.delegated_to = delegate_to
            step.approver_id = delegate_to

            await self._record_transition(
                repo,
                instance,
                HistoryAction.DELEGATED,
                actor_id,
                {
                    "level": step.level,
                    "from": actor_id,
                    "to": delegate_to,
                    "comments": comment,
                },
                level=step.level,
                status=instance.status,
            )
            await self._queue_notification(
                repo, instance, delegate_to, NotificationKind.PENDING, outbox
            )

            await session.commit()

        await self._deliver(outbox)
        return await self._reload(instance_id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_instance(self, instance_id: str) -> ApprovalInstanceDetail | None:
        """Get detailed instance information.

        @param instance_id - Instance ID
        @returns Instance detail or None if not found
        """
        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await repo.get_with_chain(instance_id)
            if instance is None:
                return None
            return self._to_detail(instance)

    async def get_instance_by_request(
        self, request_type: RequestType | str, request_id: str
    ) -> ApprovalInstanceDetail | None:
        """Latest instance for a business object, whatever its status."""
        request_type = RequestType(request_type)
        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instance = await repo.get_latest_by_request(request_type.value, request_id)
            if instance is None:
                return None
            instance_id = instance.id
        return await self.get_instance(instance_id)

    async def get_current_approver(self, instance_id: str) -> ChainStepDetail | None:
        """The step awaiting a decision, or None when nobody can act."""
        detail = await self.get_instance(instance_id)
        if detail is None:
            raise InstanceNotFound(instance_id)
        if detail.status != InstanceStatus.PENDING:
            return None
        step = detail.current_step
        if step is None or step.status != StepStatus.PENDING:
            return None
        return step

    async def list_pending_for_approver(
        self, approver_id: str
    ) -> list[ApprovalInstanceDetail]:
        """Pending instances waiting on ``approver_id``, most urgent first."""
        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            instances = await repo.get_pending_for_approver(approver_id)
            return [self._to_detail(i) for i in instances]

    async def get_stats(self, approver_id: str | None = None) -> ApprovalStats:
        """Get approval statistics.

        @param approver_id - Restrict to chains this identity appears in
        @returns Approval statistics
        """
        async with self.session_factory() as session:
            repo = ApprovalInstanceRepository(session)
            by_status = await repo.get_status_counts(approver_id)
            breached = await repo.count_breached(approver_id)

        return ApprovalStats(
            total=sum(by_status.values()),
            by_status=by_status,
            pending=by_status.get(InstanceStatus.PENDING.value, 0),
            breached=breached,
        )


# Singleton instance
_workflow_engine: ApprovalWorkflowEngine | None = None


def get_approval_workflow_engine() -> ApprovalWorkflowEngine:
    """Get or create approval workflow engine singleton.

    Registers the built-in outcome handlers on first use.

    @returns ApprovalWorkflowEngine instance
    """
    global _workflow_engine
    if _workflow_engine is None:
        from hrflow.services.onboarding.handler import register_default_handlers

        _workflow_engine = ApprovalWorkflowEngine()
        register_default_handlers(_workflow_engine)
    return _workflow_engine


def reset_approval_workflow_engine() -> None:
    """Reset approval workflow engine singleton (for testing)."""
    global _workflow_engine
    _workflow_engine = None
