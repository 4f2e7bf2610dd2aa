"""Outcome handler connecting onboarding approvals to the onboarding gate."""

import logging

from hrflow.services.approval.schemas import ApprovalOutcomeEvent, RequestType
from hrflow.services.approval.workflow import ApprovalWorkflowEngine
from hrflow.services.onboarding.service import OnboardingService
from hrflow.services.outcomes.dispatcher import (
    ApprovalOutcomeDispatcher,
    RequestTypeHandler,
)

logger = logging.getLogger(__name__)


class OnboardingApprovalHandler(RequestTypeHandler):
    """Applies ``onboarding_approval`` outcomes to the onboarding record."""

    request_type = RequestType.ONBOARDING_APPROVAL

    def __init__(self, service: OnboardingService):
        super().__init__()
        self.service = service

    async def on_approved(self, event: ApprovalOutcomeEvent) -> None:
        await self.service.apply_approval_outcome(event)

    async def on_rejected(self, event: ApprovalOutcomeEvent) -> None:
        await self.service.apply_approval_outcome(event)

    async def on_cancelled(self, event: ApprovalOutcomeEvent) -> None:
        await self.service.apply_approval_outcome(event)


def register_default_handlers(
    engine: ApprovalWorkflowEngine,
    dispatcher: ApprovalOutcomeDispatcher | None = None,
) -> ApprovalOutcomeDispatcher:
    """Register the built-in request-type handlers.

    @param engine - Engine whose outcomes the handlers consume
    @param dispatcher - Target dispatcher (the engine's if None)
    @returns The dispatcher handlers were registered on
    """
    dispatcher = dispatcher or engine.dispatcher
    dispatcher.register(OnboardingApprovalHandler(OnboardingService(engine)))
    return dispatcher
