"""Repository for tenant users."""

from typing import Sequence

from sqlalchemy import select

from hrflow.models.user import TenantUser
from hrflow.repositories.base import BaseRepository


class UserRepository(BaseRepository[TenantUser]):
    """Lookups used by approver resolution.

    "First" always means earliest created, then lowest id, so resolution
    is deterministic across calls.
    """

    model = TenantUser

    async def first_active_with_role(self, role: str) -> TenantUser | None:
        """First active user holding ``role``."""
        stmt = (
            select(self.model)
            .where(self.model.role == role, self.model.is_active.is_(True))
            .order_by(self.model.created_at, self.model.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def first_payroll_manager(
        self, roles: Sequence[str]
    ) -> TenantUser | None:
        """First active user in ``roles`` allowed to manage payroll."""
        stmt = (
            select(self.model)
            .where(
                self.model.role.in_(list(roles)),
                self.model.is_active.is_(True),
                self.model.can_manage_payroll.is_(True),
            )
            .order_by(self.model.created_at, self.model.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def first_manager_in_department(
        self, department: str
    ) -> TenantUser | None:
        """Earliest-created active manager of a department."""
        stmt = (
            select(self.model)
            .where(
                self.model.role == "manager",
                self.model.department == department,
                self.model.is_active.is_(True),
            )
            .order_by(self.model.created_at, self.model.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
