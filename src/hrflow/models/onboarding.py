"""Onboarding record and audit trail models."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrflow.models.base import Base, JSONType, TimestampMixin, UTCDateTime, utcnow


class Onboarding(Base, TimestampMixin):
    """Onboarding record table."""

    __tablename__ = "onboardings"

    # Primary key
    id: Mapped[str] = mapped_column(String(50), primary_key=True)

    # Candidate
    candidate_name: Mapped[str] = mapped_column(String(200), nullable=False)
    candidate_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(30), default="preboarding", nullable=False, index=True
    )

    # Approval sub-record
    approval_status: Mapped[str] = mapped_column(
        String(20), default="not_requested", nullable=False
    )
    approval_instance_id: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True
    )
    approval_requested_by: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True
    )
    approval_requested_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    approved_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    rejected_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approval_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    can_re_request: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Relationships
    audit_entries: Mapped[list["OnboardingAuditEntry"]] = relationship(
        "OnboardingAuditEntry",
        lazy="selectin",
        order_by="OnboardingAuditEntry.id",
    )

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('not_requested', 'pending', 'approved', 'rejected')",
            name="onboarding_approval_status",
        ),
    )


class OnboardingAuditEntry(Base):
    """Append-only onboarding audit trail."""

    __tablename__ = "onboarding_audit_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    onboarding_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("onboardings.id"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    previous_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    new_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    extra: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
