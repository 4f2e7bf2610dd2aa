"""Workflow definition model."""

from typing import Optional

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hrflow.models.base import Base, JSONType, TimestampMixin


class WorkflowDefinition(Base, TimestampMixin):
    """Approval workflow definition table.

    Edited by administrators outside the engine; the engine only reads it.
    ``steps`` holds ``[{role, sla_hours, escalation_hours}, ...]`` in order and
    ``conditions`` holds ``[{field, operator, value}, ...]``.
    """

    __tablename__ = "workflow_definitions"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    request_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    requester_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    steps: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    conditions: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_workflow_type_active", "request_type", "is_active"),
    )
