"""Approval instance, chain step, history and notification models."""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrflow.models.base import Base, JSONType, TimestampMixin, UTCDateTime, utcnow


class ApprovalInstance(Base, TimestampMixin):
    """Approval instance table (aggregate root)."""

    __tablename__ = "approval_instances"

    # Primary key
    id: Mapped[str] = mapped_column(String(50), primary_key=True)

    # Request reference
    request_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    request_id: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_by: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    workflow_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("workflow_definitions.id"), nullable=False
    )

    # Progress
    current_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    total_levels: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False, index=True
    )
    meta: Mapped[dict] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    # SLA summary
    sla_started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    sla_expected_completion_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False
    )
    sla_completed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    sla_is_breached: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    sla_breach_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Relationships
    steps: Mapped[list["ApprovalChainStep"]] = relationship(
        "ApprovalChainStep",
        back_populates="instance",
        lazy="selectin",
        order_by="ApprovalChainStep.level",
    )
    history: Mapped[list["ApprovalHistoryEntry"]] = relationship(
        "ApprovalHistoryEntry",
        lazy="selectin",
        order_by="ApprovalHistoryEntry.id",
    )
    notifications: Mapped[list["ApprovalNotification"]] = relationship(
        "ApprovalNotification",
        lazy="selectin",
        order_by="ApprovalNotification.id",
    )

    __table_args__ = (
        Index("idx_instance_request", "request_type", "request_id"),
        Index(
            "uq_instance_open_request",
            "request_type",
            "request_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled', 'escalated')",
            name="instance_status",
        ),
    )


class ApprovalChainStep(Base):
    """Approval chain step table, one row per workflow level."""

    __tablename__ = "approval_chain_steps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("approval_instances.id"), nullable=False, index=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    # Approver
    approver_type: Mapped[str] = mapped_column(String(30), nullable=False)
    approver_id: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True, index=True
    )
    delegated_to: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Decision
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    action_date: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # SLA
    sla_hours: Mapped[float] = mapped_column(Float, nullable=False)
    escalation_hours: Mapped[float] = mapped_column(Float, nullable=False)
    due_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    escalate_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), nullable=True
    )
    is_escalated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    escalated_to: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    instance: Mapped["ApprovalInstance"] = relationship(
        "ApprovalInstance", back_populates="steps"
    )

    __table_args__ = (
        Index("idx_step_instance_level", "instance_id", "level", unique=True),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'skipped', 'delegated', 'unassigned')",
            name="step_status",
        ),
    )


class ApprovalHistoryEntry(Base):
    """Append-only approval history."""

    __tablename__ = "approval_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("approval_instances.id"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    performed_by: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    details: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)


class ApprovalNotification(Base):
    """Append-only log of notification intents."""

    __tablename__ = "approval_notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("approval_instances.id"), nullable=False, index=True
    )
    sent_to: Mapped[str] = mapped_column(String(50), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
