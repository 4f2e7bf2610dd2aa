"""Tests for outcome dispatcher and handlers."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from hrflow.services.approval.schemas import (
    ApprovalOutcome,
    ApprovalOutcomeEvent,
    RequestType,
)
from hrflow.services.outcomes import (
    ApprovalOutcomeDispatcher,
    RequestTypeHandler,
    get_outcome_dispatcher,
    reset_outcome_dispatcher,
)


def create_test_event(
    outcome: ApprovalOutcome = ApprovalOutcome.APPROVED,
    request_type: RequestType = RequestType.LEAVE,
) -> ApprovalOutcomeEvent:
    """Create a test event."""
    return ApprovalOutcomeEvent(
        instance_id="APR-TEST",
        request_type=request_type,
        request_id="LV-1",
        outcome=outcome,
        actor_id="u-mgr",
        comment="fine",
        occurred_at=datetime.now(timezone.utc),
    )


class LeaveHandler(RequestTypeHandler):
    request_type = RequestType.LEAVE

    def __init__(self):
        super().__init__()
        self.approved = AsyncMock()
        self.rejected = AsyncMock()

    async def on_approved(self, event):
        await self.approved(event)

    async def on_rejected(self, event):
        await self.rejected(event)


class TestRequestTypeHandler:
    """Tests for handler routing and stats."""

    @pytest.mark.asyncio
    async def test_routes_by_outcome(self):
        """Test that each outcome reaches its hook."""
        handler = LeaveHandler()

        await handler(create_test_event(ApprovalOutcome.APPROVED))
        await handler(create_test_event(ApprovalOutcome.REJECTED))

        handler.approved.assert_awaited_once()
        handler.rejected.assert_awaited_once()
        assert handler.stats.events_processed == 2
        assert handler.stats.last_processed is not None

    @pytest.mark.asyncio
    async def test_cancel_defaults_to_noop(self):
        """Test that cancellations are ignored unless overridden."""
        handler = LeaveHandler()

        await handler(create_test_event(ApprovalOutcome.CANCELLED))

        handler.approved.assert_not_awaited()
        handler.rejected.assert_not_awaited()
        assert handler.stats.events_processed == 1

    @pytest.mark.asyncio
    async def test_failure_recorded_and_raised(self):
        """Test that handler errors are counted and propagate."""
        handler = LeaveHandler()
        handler.approved.side_effect = RuntimeError("ledger offline")

        with pytest.raises(RuntimeError):
            await handler(create_test_event())

        assert handler.stats.events_failed == 1
        assert handler.stats.last_error == "ledger offline"


class TestApprovalOutcomeDispatcher:
    """Tests for ApprovalOutcomeDispatcher."""

    def setup_method(self):
        """Set up test fixtures."""
        self.dispatcher = ApprovalOutcomeDispatcher()

    @pytest.mark.asyncio
    async def test_dispatch_to_handler(self):
        """Test dispatching an event to its handler."""
        handler = LeaveHandler()
        self.dispatcher.register(handler)

        handled = await self.dispatcher.dispatch(create_test_event())

        assert handled is True
        handler.approved.assert_awaited_once()
        assert self.dispatcher.stats.events_dispatched == 1
        assert self.dispatcher.stats.handlers_by_type == {"leave": "LeaveHandler"}

    @pytest.mark.asyncio
    async def test_dispatch_without_handler(self):
        """Test that unhandled request types are counted, not raised."""
        handled = await self.dispatcher.dispatch(
            create_test_event(request_type=RequestType.EXPENSE)
        )

        assert handled is False
        assert self.dispatcher.stats.events_unhandled == 1

    @pytest.mark.asyncio
    async def test_handler_error_isolated(self):
        """Test that a failing handler does not propagate."""
        handler = LeaveHandler()
        handler.rejected.side_effect = ValueError("bad state")
        self.dispatcher.register(handler)

        handled = await self.dispatcher.dispatch(create_test_event(ApprovalOutcome.REJECTED))

        assert handled is False
        assert self.dispatcher.stats.errors == 1

    def test_register_replaces(self):
        """Test that one handler is kept per request type."""
        first, second = LeaveHandler(), LeaveHandler()

        self.dispatcher.register(first)
        self.dispatcher.register(second)

        assert self.dispatcher.get_handler(RequestType.LEAVE) is second

    def test_clear_handlers(self):
        self.dispatcher.register(LeaveHandler())
        self.dispatcher.clear_handlers()

        assert self.dispatcher.get_handler(RequestType.LEAVE) is None
        assert self.dispatcher.stats.handlers_by_type == {}


class TestDispatcherSingleton:
    """Tests for the process-wide dispatcher."""

    def teardown_method(self):
        reset_outcome_dispatcher()

    def test_singleton(self):
        assert get_outcome_dispatcher() is get_outcome_dispatcher()

    def test_reset(self):
        first = get_outcome_dispatcher()
        reset_outcome_dispatcher()

        assert get_outcome_dispatcher() is not first
