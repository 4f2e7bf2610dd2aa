"""Onboarding status gate."""

from hrflow.services.onboarding.handler import (
    OnboardingApprovalHandler,
    register_default_handlers,
)
from hrflow.services.onboarding.schemas import (
    ONBOARDING_TRANSITIONS,
    OnboardingApprovalStatus,
    OnboardingCreate,
    OnboardingDetail,
    OnboardingStatus,
)
from hrflow.services.onboarding.service import OnboardingService
from hrflow.services.onboarding.state_machine import StatusMachine

__all__ = [
    "ONBOARDING_TRANSITIONS",
    "OnboardingApprovalStatus",
    "OnboardingCreate",
    "OnboardingDetail",
    "OnboardingStatus",
    "OnboardingService",
    "OnboardingApprovalHandler",
    "StatusMachine",
    "register_default_handlers",
]
