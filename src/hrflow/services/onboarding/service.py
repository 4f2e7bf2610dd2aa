"""Onboarding status gate.

The onboarding record moves through a fixed transition table. Approval
statuses (``pending_approval``, ``approval_rejected``) are entered only
through the approval workflow: ``request_approval`` opens an approval
instance, and the instance's terminal outcome moves the record on.
Every write is a compare-and-set on the status the caller validated against.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hrflow.core.exceptions import (
    ApprovalRequired,
    InvalidTransition,
    NoPendingApprover,
    OnboardingNotFound,
    StaleInstanceState,
)
from hrflow.models.onboarding import Onboarding, OnboardingAuditEntry
from hrflow.repositories.onboarding import OnboardingRepository
from hrflow.services.approval.schemas import (
    ApprovalOutcome,
    ApprovalInstanceDetail,
    ApprovalOutcomeEvent,
    HistoryAction,
    RequestType,
)
from hrflow.services.approval.workflow import ApprovalWorkflowEngine
from hrflow.services.onboarding.schemas import (
    ONBOARDING_TRANSITIONS,
    OnboardingApproval,
    OnboardingApprovalStatus,
    OnboardingAuditRecord,
    OnboardingCreate,
    OnboardingDetail,
    OnboardingStatus,
)
from hrflow.services.onboarding.state_machine import StatusMachine

logger = logging.getLogger(__name__)

# Statuses only the approval workflow may enter.
APPROVAL_DRIVEN_STATUSES = frozenset(
    {OnboardingStatus.PENDING_APPROVAL.value, OnboardingStatus.APPROVAL_REJECTED.value}
)


class OnboardingService:
    """Onboarding lifecycle gated on approval outcomes."""

    request_type = RequestType.ONBOARDING_APPROVAL

    def __init__(
        self,
        engine: ApprovalWorkflowEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.engine = engine
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.machine = StatusMachine(ONBOARDING_TRANSITIONS)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or self.engine.session_factory

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _load(self, repo: OnboardingRepository, onboarding_id: str) -> Onboarding:
        onboarding = await repo.get_with_audit(onboarding_id)
        if onboarding is None:
            raise OnboardingNotFound(onboarding_id)
        return onboarding

    async def _current_status(self, onboarding_id: str) -> str:
        async with self.session_factory() as session:
            onboarding = await OnboardingRepository(session).get_by_id(onboarding_id)
            if onboarding is None:
                raise OnboardingNotFound(onboarding_id)
            return onboarding.status

    async def _lost_race(self, onboarding_id: str, requested: str) -> InvalidTransition:
        current = await self._current_status(onboarding_id)
        return InvalidTransition(current, requested, self.machine.allowed(current))

    async def _write(
        self,
        repo: OnboardingRepository,
        onboarding: Onboarding,
        values: dict[str, Any],
        *,
        action: str,
        actor_id: str | None,
        description: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> bool:
        """Compare-and-set on the loaded status plus one audit row.

        @returns False if the status changed since it was read
        """
        previous = onboarding.status
        updated = await repo.compare_and_set_status(onboarding.id, previous, values)
        if updated == 0:
            return False

        await repo.add_audit_entry(
            OnboardingAuditEntry(
                onboarding_id=onboarding.id,
                action=action,
                description=description,
                performed_by=actor_id,
                previous_status=previous,
                new_status=values.get("status", previous),
                extra=dict(metadata or {}),
                timestamp=self._clock(),
            )
        )
        return True

    @staticmethod
    def _to_detail(onboarding: Onboarding) -> OnboardingDetail:
        return OnboardingDetail(
            id=onboarding.id,
            candidate_name=onboarding.candidate_name,
            candidate_email=onboarding.candidate_email,
            position=onboarding.position,
            department=onboarding.department,
            status=OnboardingStatus(onboarding.status),
            approval=OnboardingApproval(
                status=OnboardingApprovalStatus(onboarding.approval_status),
                instance_id=onboarding.approval_instance_id,
                requested_by=onboarding.approval_requested_by,
                requested_at=onboarding.approval_requested_at,
                approved_by=onboarding.approved_by,
                approved_at=onboarding.approved_at,
                rejected_by=onboarding.rejected_by,
                rejected_at=onboarding.rejected_at,
                rejection_reason=onboarding.rejection_reason,
                comments=onboarding.approval_comments,
                can_re_request=onboarding.can_re_request,
            ),
            audit_trail=[
                OnboardingAuditRecord.model_validate(e) for e in onboarding.audit_entries
            ],
            created_at=onboarding.created_at,
            updated_at=onboarding.updated_at,
        )

    async def _reload(self, onboarding_id: str) -> OnboardingDetail:
        detail = await self.get_onboarding(onboarding_id)
        if detail is None:
            raise OnboardingNotFound(onboarding_id)
        return detail

    # =========================================================================
    # Commands
    # =========================================================================

    async def create_onboarding(self, data: OnboardingCreate) -> OnboardingDetail:
        """Create an onboarding record in ``preboarding``."""
        onboarding_id = f"ONB-{uuid.uuid4().hex[:8].upper()}"
        now = self._clock()

        async with self.session_factory() as session:
            repo = OnboardingRepository(session)
            await repo.create(
                Onboarding(
                    id=onboarding_id,
                    candidate_name=data.candidate_name,
                    candidate_email=data.candidate_email,
                    position=data.position,
                    department=data.department,
                    created_by=data.created_by,
                    status=OnboardingStatus.PREBOARDING.value,
                    approval_status=OnboardingApprovalStatus.NOT_REQUESTED.value,
                    can_re_request=True,
                )
            )
            await repo.add_audit_entry(
                OnboardingAuditEntry(
                    onboarding_id=onboarding_id,
                    action="CREATED",
                    description=f"Onboarding created for {data.candidate_name}",
                    performed_by=data.created_by,
                    previous_status=None,
                    new_status=OnboardingStatus.PREBOARDING.value,
                    extra={},
                    timestamp=now,
                )
            )
            await session.commit()

        logger.info(f"Created onboarding {onboarding_id}")
        return await self._reload(onboarding_id)

    async def transition_status(
        self,
        onboarding_id: str,
        to_status: OnboardingStatus | str,
        actor_id: str,
        description: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> OnboardingDetail:
        """Apply an externally triggered status change.

        @param onboarding_id - Onboarding ID
        @param to_status - Requested status
        @param actor_id - Identity requesting the change
        @param description - Audit description
        @param metadata - Audit metadata
        @returns Updated onboarding
        @raises InvalidTransition if the table does not allow the change
        @raises ApprovalRequired for approval-driven statuses, or for
            ``offer_sent`` without an approved approval
        """
        to_status = OnboardingStatus(to_status)

        async with self.session_factory() as session:
            repo = OnboardingRepository(session)
            onboarding = await self._load(repo, onboarding_id)
            current = onboarding.status

            self.machine.validate(current, to_status)

            if (
                current == OnboardingStatus.PENDING_APPROVAL.value
                or to_status.value in APPROVAL_DRIVEN_STATUSES
            ):
                raise ApprovalRequired(
                    f"Transition {current} -> {to_status.value} is driven by the "
                    f"approval workflow; use request_approval",
                    current_status=current,
                    requested_status=to_status.value,
                )

            if (
                to_status == OnboardingStatus.OFFER_SENT
                and onboarding.approval_status != OnboardingApprovalStatus.APPROVED.value
            ):
                raise ApprovalRequired(
                    f"Onboarding {onboarding_id} needs an approved approval before "
                    f"an offer can be sent",
                    onboarding_id=onboarding_id,
                    approval_status=onboarding.approval_status,
                )

            written = await self._write(
                repo,
                onboarding,
                {"status": to_status.value},
                action="STATUS_CHANGED",
                actor_id=actor_id,
                description=description,
                metadata=metadata,
            )
            if written:
                await session.commit()

        if not written:
            raise await self._lost_race(onboarding_id, to_status.value)

        logger.info(f"Onboarding {onboarding_id}: {current} -> {to_status.value}")
        return await self._reload(onboarding_id)

    async def request_approval(
        self,
        onboarding_id: str,
        requested_by: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> OnboardingDetail:
        """Open the pre-offer approval and move to ``pending_approval``.

        Exactly one approval instance is created. If the status changed
        between validation and the write, that instance is cancelled again.

        @param onboarding_id - Onboarding ID
        @param requested_by - Identity requesting approval
        @param attributes - Extra request attributes for workflow conditions
        @returns Updated onboarding
        @raises InvalidTransition if the current status does not allow it
        @raises ApprovalRequired if a rejected approval may not be re-requested
        @raises DuplicateApprovalRequest if an approval is already pending
        """
        target = OnboardingStatus.PENDING_APPROVAL

        async with self.session_factory() as session:
            onboarding = await self._load(OnboardingRepository(session), onboarding_id)
            current = onboarding.status
            self.machine.validate(current, target)
            if (
                current == OnboardingStatus.APPROVAL_REJECTED.value
                and not onboarding.can_re_request
            ):
                raise ApprovalRequired(
                    f"Approval for onboarding {onboarding_id} cannot be re-requested",
                    onboarding_id=onboarding_id,
                )
            request_attributes = {
                "candidate_name": onboarding.candidate_name,
                "position": onboarding.position,
                "department": onboarding.department,
                **dict(attributes or {}),
            }

        instance = await self.engine.create_instance(
            self.request_type,
            onboarding_id,
            requested_by,
            request_attributes,
        )

        now = self._clock()
        async with self.session_factory() as session:
            repo = OnboardingRepository(session)
            onboarding = await self._load(repo, onboarding_id)
            written = onboarding.status == current and await self._write(
                repo,
                onboarding,
                {
                    "status": target.value,
                    "approval_status": OnboardingApprovalStatus.PENDING.value,
                    "approval_instance_id": instance.id,
                    "approval_requested_by": requested_by,
                    "approval_requested_at": now,
                    "can_re_request": False,
                },
                action="APPROVAL_REQUESTED",
                actor_id=requested_by,
                description="Approval requested before sending offer",
                metadata={"approval_instance_id": instance.id},
            )
            if written:
                await session.commit()

        if not written:
            logger.warning(
                f"Onboarding {onboarding_id} changed while requesting approval; "
                f"cancelling {instance.id}"
            )
            try:
                await self.engine.cancel_instance(
                    instance.id,
                    requested_by,
                    reason="Onboarding status changed concurrently",
                )
            except (StaleInstanceState, NoPendingApprover):
                logger.exception(f"Could not cancel orphaned approval {instance.id}")
            raise await self._lost_race(onboarding_id, target.value)

        logger.info(f"Onboarding {onboarding_id} awaiting approval {instance.id}")
        # The instance may have been decided before the record tracked it.
        await self.sync_with_approval(onboarding_id)
        return await self._reload(onboarding_id)

    async def apply_approval_outcome(self, event: ApprovalOutcomeEvent) -> bool:
        """Move the onboarding on according to a terminal approval outcome.

        Safe to call more than once: outcomes for another instance, or for an
        onboarding that already left ``pending_approval``, are ignored.

        @param event - Outcome event
        @returns True if the onboarding changed
        """
        async with self.session_factory() as session:
            repo = OnboardingRepository(session)
            onboarding = await repo.get_with_audit(event.request_id)
            if onboarding is None:
                logger.warning(
                    f"Approval {event.instance_id} refers to unknown onboarding "
                    f"{event.request_id}"
                )
                return False

            if onboarding.approval_instance_id != event.instance_id:
                logger.info(
                    f"Ignoring outcome of {event.instance_id}; onboarding "
                    f"{onboarding.id} tracks {onboarding.approval_instance_id}"
                )
                return False

            if onboarding.status != OnboardingStatus.PENDING_APPROVAL.value:
                logger.debug(
                    f"Outcome of {event.instance_id} already applied to {onboarding.id}"
                )
                return False

            if event.outcome == ApprovalOutcome.APPROVED:
                target = OnboardingStatus.PREBOARDING
                values = {
                    "approval_status": OnboardingApprovalStatus.APPROVED.value,
                    "approved_by": event.actor_id,
                    "approved_at": event.occurred_at,
                    "approval_comments": event.comment,
                }
                description = "Approval granted; offer can be sent"
            elif event.outcome == ApprovalOutcome.REJECTED:
                target = OnboardingStatus.APPROVAL_REJECTED
                values = {
                    "approval_status": OnboardingApprovalStatus.REJECTED.value,
                    "rejected_by": event.actor_id,
                    "rejected_at": event.occurred_at,
                    "rejection_reason": event.comment,
                    "approval_comments": event.comment,
                    "can_re_request": True,
                }
                description = "Approval rejected; candidate on hold"
            else:
                target = OnboardingStatus.PREBOARDING
                values = {
                    "approval_status": OnboardingApprovalStatus.NOT_REQUESTED.value,
                    "can_re_request": True,
                }
                description = "Approval cancelled"

            self.machine.validate(onboarding.status, target)
            values["status"] = target.value

            written = await self._write(
                repo,
                onboarding,
                values,
                action=f"APPROVAL_{event.outcome.value.upper()}",
                actor_id=event.actor_id,
                description=description,
                metadata={
                    "approval_instance_id": event.instance_id,
                    "comment": event.comment,
                },
            )
            if written:
                await session.commit()

        if written:
            logger.info(
                f"Onboarding {event.request_id} -> {target.value} "
                f"after approval {event.outcome.value}"
            )
        return written

    @staticmethod
    def _terminal_event(instance: ApprovalInstanceDetail) -> ApprovalOutcomeEvent | None:
        """Rebuild the outcome event of a terminal instance from its history."""
        try:
            outcome = ApprovalOutcome(instance.status.value)
        except ValueError:
            return None

        action = HistoryAction(outcome.value.upper())
        entry = next((h for h in reversed(instance.history) if h.action == action), None)
        details = entry.details if entry else {}
        return ApprovalOutcomeEvent(
            instance_id=instance.id,
            request_type=instance.request_type,
            request_id=instance.request_id,
            outcome=outcome,
            actor_id=entry.performed_by if entry else None,
            comment=details.get("comments") or details.get("reason"),
            occurred_at=instance.sla.completed_at
            or (entry.timestamp if entry else instance.updated_at),
        )

    async def sync_with_approval(self, onboarding_id: str) -> bool:
        """Apply the outcome of the tracked approval if it already ended.

        Covers outcomes that arrived before the record tracked the instance,
        and outcomes whose handler failed.

        @param onboarding_id - Onboarding ID
        @returns True if the onboarding changed
        """
        async with self.session_factory() as session:
            onboarding = await OnboardingRepository(session).get_by_id(onboarding_id)
            if onboarding is None:
                raise OnboardingNotFound(onboarding_id)
            status = onboarding.status
            instance_id = onboarding.approval_instance_id

        if status != OnboardingStatus.PENDING_APPROVAL.value or instance_id is None:
            return False

        instance = await self.engine.get_instance(instance_id)
        if instance is None:
            logger.warning(
                f"Onboarding {onboarding_id} tracks unknown approval {instance_id}"
            )
            return False

        event = self._terminal_event(instance)
        if event is None:
            return False

        logger.info(
            f"Applying {event.outcome.value} outcome of {instance_id} "
            f"to onboarding {onboarding_id}"
        )
        return await self.apply_approval_outcome(event)

    async def reconcile_pending_approvals(self, limit: int = 500) -> list[str]:
        """Sync every ``pending_approval`` onboarding with its approval.

        @param limit - Maximum records checked per run
        @returns IDs of onboardings that changed
        """
        async with self.session_factory() as session:
            pending = await OnboardingRepository(session).get_by_filter(
                status=OnboardingStatus.PENDING_APPROVAL.value,
                limit=limit,
                order_by=Onboarding.id,
            )
            onboarding_ids = [onboarding.id for onboarding in pending]

        changed = []
        for onboarding_id in onboarding_ids:
            if await self.sync_with_approval(onboarding_id):
                changed.append(onboarding_id)

        if changed:
            logger.warning(f"Reconciled {len(changed)} onboarding approvals: {changed}")
        return changed

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_onboarding(self, onboarding_id: str) -> OnboardingDetail | None:
        """Get onboarding with its approval sub-record and audit trail."""
        async with self.session_factory() as session:
            onboarding = await OnboardingRepository(session).get_with_audit(onboarding_id)
            if onboarding is None:
                return None
            return self._to_detail(onboarding)
