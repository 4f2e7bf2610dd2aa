"""Onboarding gate schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OnboardingStatus(str, Enum):
    """Onboarding pipeline status."""

    PREBOARDING = "preboarding"
    PENDING_APPROVAL = "pending_approval"
    APPROVAL_REJECTED = "approval_rejected"
    OFFER_SENT = "offer_sent"
    OFFER_ACCEPTED = "offer_accepted"
    DOCS_PENDING = "docs_pending"
    DOCS_VERIFIED = "docs_verified"
    READY_FOR_JOINING = "ready_for_joining"
    COMPLETED = "completed"
    REJECTED = "rejected"


class OnboardingApprovalStatus(str, Enum):
    """State of the pre-offer approval."""

    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


S = OnboardingStatus

ONBOARDING_TRANSITIONS: dict[OnboardingStatus, list[OnboardingStatus]] = {
    S.PREBOARDING: [S.PENDING_APPROVAL, S.OFFER_SENT, S.REJECTED],
    S.PENDING_APPROVAL: [S.PREBOARDING, S.APPROVAL_REJECTED],
    S.APPROVAL_REJECTED: [S.PENDING_APPROVAL, S.REJECTED],
    S.OFFER_SENT: [S.OFFER_ACCEPTED, S.REJECTED],
    S.OFFER_ACCEPTED: [S.DOCS_PENDING, S.REJECTED],
    S.DOCS_PENDING: [S.DOCS_VERIFIED, S.REJECTED],
    S.DOCS_VERIFIED: [S.READY_FOR_JOINING, S.REJECTED],
    S.READY_FOR_JOINING: [S.COMPLETED, S.REJECTED],
    S.COMPLETED: [],
    S.REJECTED: [],
}


class OnboardingCreate(BaseModel):
    """Create onboarding request."""

    candidate_name: str = Field(..., min_length=1, max_length=200)
    candidate_email: str | None = Field(None, max_length=255)
    position: str | None = Field(None, max_length=200)
    department: str | None = Field(None, max_length=100)
    created_by: str | None = Field(None, description="Identity creating the record")


class OnboardingAuditRecord(BaseModel):
    """One audit trail row."""

    model_config = ConfigDict(from_attributes=True)

    action: str
    description: str | None = None
    performed_by: str | None = None
    previous_status: str | None = None
    new_status: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="extra")
    timestamp: datetime


class OnboardingApproval(BaseModel):
    """Approval sub-record of an onboarding."""

    status: OnboardingApprovalStatus
    instance_id: str | None = None
    requested_by: str | None = None
    requested_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    comments: str | None = None
    can_re_request: bool = True


class OnboardingDetail(BaseModel):
    """Detailed onboarding information."""

    id: str
    candidate_name: str
    candidate_email: str | None = None
    position: str | None = None
    department: str | None = None
    status: OnboardingStatus
    approval: OnboardingApproval
    audit_trail: list[OnboardingAuditRecord] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
