"""Database models for hrflow."""

from hrflow.models.approval import (
    ApprovalChainStep,
    ApprovalHistoryEntry,
    ApprovalInstance,
    ApprovalNotification,
)
from hrflow.models.base import Base, TimestampMixin, UTCDateTime
from hrflow.models.onboarding import Onboarding, OnboardingAuditEntry
from hrflow.models.user import TenantUser
from hrflow.models.workflow import WorkflowDefinition

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    # Configuration and identity
    "WorkflowDefinition",
    "TenantUser",
    # Approval engine
    "ApprovalInstance",
    "ApprovalChainStep",
    "ApprovalHistoryEntry",
    "ApprovalNotification",
    # Onboarding gate
    "Onboarding",
    "OnboardingAuditEntry",
]
