"""Tests for the onboarding status gate."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import update

from conftest import make_workflow, seed
from hrflow.core.exceptions import (
    ApprovalRequired,
    InvalidTransition,
    OnboardingNotFound,
)
from hrflow.models import Onboarding
from hrflow.repositories.onboarding import OnboardingRepository
from hrflow.services.approval.schemas import (
    ApprovalOutcome,
    ApprovalOutcomeEvent,
    InstanceStatus,
    RequestType,
)
from hrflow.services.onboarding import (
    ONBOARDING_TRANSITIONS,
    OnboardingApprovalHandler,
    OnboardingCreate,
    OnboardingService,
    StatusMachine,
    register_default_handlers,
)
from hrflow.services.onboarding.schemas import (
    OnboardingApprovalStatus,
    OnboardingStatus,
)


class TestStatusMachine:
    """Tests for the table-driven status machine."""

    def setup_method(self):
        """Set up test fixtures."""
        self.machine = StatusMachine({"A": ["B", "C"], "B": [], "C": ["A"]})

    def test_allowed_transition(self):
        self.machine.validate("A", "B")
        self.machine.validate("C", "A")
        assert self.machine.can_transition("A", "C")

    def test_rejected_transition_reports_allowed(self):
        """Test that a refused change names the statuses that were allowed."""
        with pytest.raises(InvalidTransition) as exc_info:
            self.machine.validate("A", "D")

        assert exc_info.value.allowed == ["B", "C"]
        assert exc_info.value.current_status == "A"
        assert exc_info.value.requested_status == "D"

    def test_terminal_status_allows_nothing(self):
        with pytest.raises(InvalidTransition) as exc_info:
            self.machine.validate("B", "A")

        assert exc_info.value.allowed == []
        assert self.machine.is_terminal("B")
        assert not self.machine.is_terminal("A")

    def test_statuses(self):
        assert self.machine.statuses == {"A", "B", "C"}

    def test_enum_members_accepted(self):
        machine = StatusMachine(ONBOARDING_TRANSITIONS)

        assert machine.can_transition(
            OnboardingStatus.PREBOARDING, OnboardingStatus.PENDING_APPROVAL
        )
        assert machine.can_transition("pending_approval", "approval_rejected")
        assert machine.is_terminal(OnboardingStatus.COMPLETED)
        assert machine.is_terminal(OnboardingStatus.REJECTED)


@pytest_asyncio.fixture
async def onboarding_workflow(session_factory, users):
    await seed(
        session_factory,
        make_workflow(
            "onboarding",
            "onboarding_approval",
            [
                {"role": "manager", "sla_hours": 24},
                {"role": "company_admin", "sla_hours": 48},
            ],
        ),
    )


@pytest.fixture
def service(engine, dispatcher):
    """Onboarding service wired to the engine's outcome dispatcher."""
    register_default_handlers(engine, dispatcher)
    handler = dispatcher.get_handler(RequestType.ONBOARDING_APPROVAL)
    assert isinstance(handler, OnboardingApprovalHandler)
    return handler.service


async def new_onboarding(service: OnboardingService) -> str:
    detail = await service.create_onboarding(
        OnboardingCreate(
            candidate_name="Ada Lovelace",
            candidate_email="ada@example.com",
            position="Engineer",
            department="eng",
            created_by="u-emp",
        )
    )
    return detail.id


def audit_actions(detail) -> list[str]:
    return [a.action for a in detail.audit_trail]


class TestOnboardingService:
    """Tests for OnboardingService."""

    @pytest.mark.asyncio
    async def test_create_onboarding(self, service, onboarding_workflow):
        """Test creating an onboarding record."""
        onboarding_id = await new_onboarding(service)
        detail = await service.get_onboarding(onboarding_id)

        assert onboarding_id.startswith("ONB-")
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.status == OnboardingApprovalStatus.NOT_REQUESTED
        assert detail.approval.can_re_request is True
        assert audit_actions(detail) == ["CREATED"]

    @pytest.mark.asyncio
    async def test_offer_requires_approval(self, service, onboarding_workflow):
        """Test that no offer can be sent before approval."""
        onboarding_id = await new_onboarding(service)

        with pytest.raises(ApprovalRequired):
            await service.transition_status(onboarding_id, "offer_sent", "u-hr")

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.PREBOARDING

    @pytest.mark.asyncio
    async def test_approval_statuses_not_directly_settable(
        self, service, onboarding_workflow
    ):
        """Test that approval statuses are only entered through the workflow."""
        onboarding_id = await new_onboarding(service)

        with pytest.raises(ApprovalRequired):
            await service.transition_status(onboarding_id, "pending_approval", "u-hr")

    @pytest.mark.asyncio
    async def test_invalid_transition(self, service, onboarding_workflow):
        onboarding_id = await new_onboarding(service)

        with pytest.raises(InvalidTransition) as exc_info:
            await service.transition_status(onboarding_id, "completed", "u-hr")

        assert exc_info.value.allowed == ["pending_approval", "offer_sent", "rejected"]

    @pytest.mark.asyncio
    async def test_unknown_onboarding(self, service, onboarding_workflow):
        with pytest.raises(OnboardingNotFound):
            await service.transition_status("ONB-NOPE", "rejected", "u-hr")
        with pytest.raises(OnboardingNotFound):
            await service.request_approval("ONB-NOPE", "u-emp")
        assert await service.get_onboarding("ONB-NOPE") is None

    @pytest.mark.asyncio
    async def test_approved_flow(self, service, engine, onboarding_workflow):
        """Test approval unlocking the offer."""
        onboarding_id = await new_onboarding(service)

        detail = await service.request_approval(onboarding_id, "u-emp")
        instance_id = detail.approval.instance_id

        assert detail.status == OnboardingStatus.PENDING_APPROVAL
        assert detail.approval.status == OnboardingApprovalStatus.PENDING
        assert detail.approval.requested_by == "u-emp"
        assert detail.approval.can_re_request is False

        instance = await engine.get_instance(instance_id)
        assert instance.request_type == RequestType.ONBOARDING_APPROVAL
        assert instance.request_id == onboarding_id
        assert instance.metadata["candidate_name"] == "Ada Lovelace"

        with pytest.raises(ApprovalRequired):
            await service.transition_status(onboarding_id, "preboarding", "u-hr")

        await engine.process_approval(instance_id, "u-mgr", "approve")
        assert (await service.get_onboarding(onboarding_id)).status == (
            OnboardingStatus.PENDING_APPROVAL
        )
        await engine.process_approval(instance_id, "u-cadmin", "approve", "welcome")

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.status == OnboardingApprovalStatus.APPROVED
        assert detail.approval.approved_by == "u-cadmin"
        assert detail.approval.comments == "welcome"

        detail = await service.transition_status(onboarding_id, "offer_sent", "u-hr")

        assert detail.status == OnboardingStatus.OFFER_SENT
        assert audit_actions(detail) == [
            "CREATED",
            "APPROVAL_REQUESTED",
            "APPROVAL_APPROVED",
            "STATUS_CHANGED",
        ]
        assert detail.audit_trail[-1].previous_status == "preboarding"
        assert detail.audit_trail[-1].new_status == "offer_sent"

    @pytest.mark.asyncio
    async def test_rejected_flow_and_re_request(
        self, service, engine, onboarding_workflow
    ):
        """Test rejection followed by a second approval round."""
        onboarding_id = await new_onboarding(service)
        first = (await service.request_approval(onboarding_id, "u-emp")).approval.instance_id

        await engine.process_approval(first, "u-mgr", "reject", "not budgeted")

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.APPROVAL_REJECTED
        assert detail.approval.status == OnboardingApprovalStatus.REJECTED
        assert detail.approval.rejected_by == "u-mgr"
        assert detail.approval.rejection_reason == "not budgeted"
        assert detail.approval.can_re_request is True

        with pytest.raises(ApprovalRequired):
            await service.transition_status(onboarding_id, "offer_sent", "u-hr")

        detail = await service.request_approval(onboarding_id, "u-emp")
        second = detail.approval.instance_id
        assert second != first
        assert detail.status == OnboardingStatus.PENDING_APPROVAL

        await engine.process_approval(second, "u-mgr", "approve")
        await engine.process_approval(second, "u-cadmin", "approve")

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.status == OnboardingApprovalStatus.APPROVED

    @pytest.mark.asyncio
    async def test_rejection_at_second_level(self, service, engine, onboarding_workflow):
        """Test manager approval followed by a company admin rejection."""
        onboarding_id = await new_onboarding(service)
        detail = await service.request_approval(onboarding_id, "u-emp")
        instance_id = detail.approval.instance_id

        instance = await engine.get_instance(instance_id)
        assert instance.total_levels == 2
        assert instance.current_level == 1

        instance = await engine.process_approval(instance_id, "u-mgr", "approve")
        assert instance.current_level == 2

        instance = await engine.process_approval(instance_id, "u-cadmin", "reject", "budget")
        assert instance.status == InstanceStatus.REJECTED
        assert instance.chain[1].comments == "budget"

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.APPROVAL_REJECTED
        assert detail.approval.rejection_reason == "budget"
        assert detail.approval.rejected_by == "u-cadmin"
        assert detail.approval.can_re_request is True

    @pytest.mark.asyncio
    async def test_rejected_candidate_can_be_closed(
        self, service, engine, onboarding_workflow
    ):
        onboarding_id = await new_onboarding(service)
        detail = await service.request_approval(onboarding_id, "u-emp")
        await engine.process_approval(detail.approval.instance_id, "u-mgr", "reject")

        detail = await service.transition_status(onboarding_id, "rejected", "u-hr")

        assert detail.status == OnboardingStatus.REJECTED

    @pytest.mark.asyncio
    async def test_re_request_blocked(self, service, session_factory, onboarding_workflow):
        """Test that a rejection marked final cannot be re-requested."""
        onboarding_id = await new_onboarding(service)
        async with session_factory() as session:
            await session.execute(
                update(Onboarding)
                .where(Onboarding.id == onboarding_id)
                .values(status="approval_rejected", can_re_request=False)
            )
            await session.commit()

        with pytest.raises(ApprovalRequired):
            await service.request_approval(onboarding_id, "u-emp")

    @pytest.mark.asyncio
    async def test_request_twice(self, service, onboarding_workflow):
        onboarding_id = await new_onboarding(service)
        await service.request_approval(onboarding_id, "u-emp")

        with pytest.raises(InvalidTransition):
            await service.request_approval(onboarding_id, "u-emp")

    @pytest.mark.asyncio
    async def test_cancelled_approval_returns_to_preboarding(
        self, service, engine, onboarding_workflow
    ):
        onboarding_id = await new_onboarding(service)
        detail = await service.request_approval(onboarding_id, "u-emp")

        await engine.cancel_instance(detail.approval.instance_id, "u-cadmin", "role closed")

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.status == OnboardingApprovalStatus.NOT_REQUESTED
        assert detail.approval.can_re_request is True
        assert audit_actions(detail)[-1] == "APPROVAL_CANCELLED"

    @pytest.mark.asyncio
    async def test_lost_race_cancels_instance(self, service, engine, onboarding_workflow):
        """Test that an approval opened for a record that moved on is cancelled."""
        onboarding_id = await new_onboarding(service)

        with patch.object(
            OnboardingRepository, "compare_and_set_status", AsyncMock(return_value=0)
        ):
            with pytest.raises(InvalidTransition):
                await service.request_approval(onboarding_id, "u-emp")

        instance = await engine.get_instance_by_request(
            RequestType.ONBOARDING_APPROVAL, onboarding_id
        )
        assert instance.status == InstanceStatus.CANCELLED

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.instance_id is None


class TestApplyApprovalOutcome:
    """Tests for outcome application."""

    def event(self, onboarding_id, instance_id, outcome=ApprovalOutcome.APPROVED):
        return ApprovalOutcomeEvent(
            instance_id=instance_id,
            request_type=RequestType.ONBOARDING_APPROVAL,
            request_id=onboarding_id,
            outcome=outcome,
            actor_id="u-cadmin",
            occurred_at=datetime(2026, 1, 6, tzinfo=timezone.utc),
        )

    @pytest.mark.asyncio
    async def test_outcome_applied_once(self, service, onboarding_workflow):
        """Test that replaying an outcome changes nothing."""
        onboarding_id = await new_onboarding(service)
        detail = await service.request_approval(onboarding_id, "u-emp")
        event = self.event(onboarding_id, detail.approval.instance_id)

        assert await service.apply_approval_outcome(event) is True
        assert await service.apply_approval_outcome(event) is False

        detail = await service.get_onboarding(onboarding_id)
        assert audit_actions(detail).count("APPROVAL_APPROVED") == 1

    @pytest.mark.asyncio
    async def test_outcome_for_other_instance_ignored(self, service, onboarding_workflow):
        onboarding_id = await new_onboarding(service)
        await service.request_approval(onboarding_id, "u-emp")

        assert await service.apply_approval_outcome(
            self.event(onboarding_id, "APR-OTHER")
        ) is False
        assert (await service.get_onboarding(onboarding_id)).status == (
            OnboardingStatus.PENDING_APPROVAL
        )

    @pytest.mark.asyncio
    async def test_outcome_for_unknown_onboarding(self, service, onboarding_workflow):
        assert await service.apply_approval_outcome(
            self.event("ONB-NOPE", "APR-1")
        ) is False


class TestApprovalReconcile:
    """Tests for syncing onboardings with approvals that already ended."""

    @pytest.mark.asyncio
    async def test_decision_before_record_tracks_instance(
        self, service, engine, onboarding_workflow
    ):
        """Test that a rejection landing before the status write is still applied."""
        onboarding_id = await new_onboarding(service)
        original = engine.create_instance

        async def create_then_reject(*args, **kwargs):
            instance = await original(*args, **kwargs)
            await engine.process_approval(instance.id, "u-mgr", "reject", "headcount frozen")
            return instance

        with patch.object(engine, "create_instance", side_effect=create_then_reject):
            detail = await service.request_approval(onboarding_id, "u-emp")

        instance = await engine.get_instance(detail.approval.instance_id)
        assert instance.status == InstanceStatus.REJECTED
        assert detail.status == OnboardingStatus.APPROVAL_REJECTED
        assert detail.approval.status == OnboardingApprovalStatus.REJECTED
        assert detail.approval.rejected_by == "u-mgr"
        assert detail.approval.rejection_reason == "headcount frozen"
        assert detail.approval.can_re_request is True
        assert audit_actions(detail) == ["CREATED", "APPROVAL_REQUESTED", "APPROVAL_REJECTED"]

    @pytest.mark.asyncio
    async def test_reconcile_applies_missed_outcome(
        self, service, engine, dispatcher, onboarding_workflow
    ):
        """Test that an outcome nobody handled is applied by the reconcile pass."""
        decided = await new_onboarding(service)
        waiting = await new_onboarding(service)
        instance_id = (await service.request_approval(decided, "u-emp")).approval.instance_id
        await service.request_approval(waiting, "u-emp")

        dispatcher.clear_handlers()
        await engine.process_approval(instance_id, "u-mgr", "approve")
        await engine.process_approval(instance_id, "u-cadmin", "approve", "welcome")

        assert (await service.get_onboarding(decided)).status == (
            OnboardingStatus.PENDING_APPROVAL
        )

        assert await service.reconcile_pending_approvals() == [decided]
        assert await service.reconcile_pending_approvals() == []

        detail = await service.get_onboarding(decided)
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.status == OnboardingApprovalStatus.APPROVED
        assert detail.approval.approved_by == "u-cadmin"
        assert (await service.get_onboarding(waiting)).status == (
            OnboardingStatus.PENDING_APPROVAL
        )

    @pytest.mark.asyncio
    async def test_reconcile_applies_cancellation(
        self, service, engine, dispatcher, onboarding_workflow
    ):
        onboarding_id = await new_onboarding(service)
        detail = await service.request_approval(onboarding_id, "u-emp")

        dispatcher.clear_handlers()
        await engine.cancel_instance(detail.approval.instance_id, "u-cadmin", "role closed")

        assert await service.sync_with_approval(onboarding_id) is True

        detail = await service.get_onboarding(onboarding_id)
        assert detail.status == OnboardingStatus.PREBOARDING
        assert detail.approval.status == OnboardingApprovalStatus.NOT_REQUESTED
        assert detail.audit_trail[-1].performed_by == "u-cadmin"

    @pytest.mark.asyncio
    async def test_sync_leaves_pending_instance(self, service, onboarding_workflow):
        onboarding_id = await new_onboarding(service)
        await service.request_approval(onboarding_id, "u-emp")

        assert await service.sync_with_approval(onboarding_id) is False
        assert (await service.get_onboarding(onboarding_id)).status == (
            OnboardingStatus.PENDING_APPROVAL
        )

    @pytest.mark.asyncio
    async def test_sync_unknown_onboarding(self, service, onboarding_workflow):
        with pytest.raises(OnboardingNotFound):
            await service.sync_with_approval("ONB-NOPE")
