"""Approver resolution.

Maps an abstract approver role to a concrete tenant user for a given
requester. Resolution is read-only; it never fails on a missing identity and
returns ``None`` instead, leaving the policy decision to the chain builder.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from hrflow.models.user import TenantUser
from hrflow.repositories.user import UserRepository
from hrflow.services.approval.schemas import ApproverRole

logger = logging.getLogger(__name__)

# Roles allowed to act as finance approvers when they can manage payroll.
FINANCE_ROLES = ("hr", "company_admin")


class IdentityResolver:
    """Resolves approver roles against the tenant user store."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)

    async def get_user(self, user_id: str) -> TenantUser | None:
        return await self.users.get_by_id(user_id)

    async def resolve(self, role: str, requester_id: str) -> str | None:
        """Resolve ``role`` to a user id for ``requester_id``.

        @param role - Abstract approver role
        @param requester_id - Identity of the requester
        @returns User id or None if nobody fits
        """
        requester = await self.users.get_by_id(requester_id)
        if requester is None:
            logger.warning(f"Requester {requester_id} not found; cannot resolve {role}")
            return None

        try:
            approver_role = ApproverRole(role)
        except ValueError:
            logger.warning(f"Unknown approver role {role!r}")
            return None

        user = await self._resolve_user(approver_role, requester)
        return user.id if user is not None else None

    async def _resolve_user(
        self, role: ApproverRole, requester: TenantUser
    ) -> TenantUser | None:
        if role == ApproverRole.EMPLOYEE:
            return requester

        if role == ApproverRole.MANAGER:
            if not requester.reporting_manager_id:
                return None
            return await self.users.get_by_id(requester.reporting_manager_id)

        if role == ApproverRole.HR:
            return await self.users.first_active_with_role("hr")

        if role == ApproverRole.ADMIN:
            admin = await self.users.first_active_with_role("admin")
            if admin is not None:
                return admin
            return await self.users.first_active_with_role("company_admin")

        if role in (ApproverRole.COMPANY_ADMIN, ApproverRole.CEO):
            return await self.users.first_active_with_role("company_admin")

        if role == ApproverRole.FINANCE:
            return await self.users.first_payroll_manager(FINANCE_ROLES)

        if role == ApproverRole.DEPARTMENT_HEAD:
            if not requester.department:
                return None
            return await self.users.first_manager_in_department(requester.department)

        return None
