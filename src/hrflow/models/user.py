"""Tenant user model (identity/role store)."""

from typing import Optional

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hrflow.models.base import Base, TimestampMixin


class TenantUser(Base, TimestampMixin):
    """Tenant user table.

    Owned by the identity service; the approval engine reads it to resolve
    abstract approver roles.
    """

    __tablename__ = "tenant_users"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    role: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reporting_manager_id: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_manage_payroll: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    __table_args__ = (
        Index("idx_user_role_active", "role", "is_active"),
        Index("idx_user_department_role", "department", "role"),
    )
