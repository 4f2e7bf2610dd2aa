"""Tests for approver role resolution."""

import pytest

from conftest import make_user, seed
from hrflow.services.identity import IdentityResolver


class TestIdentityResolver:
    """Tests for IdentityResolver against the tenant user store."""

    async def resolve(self, session_factory, role, requester_id):
        async with session_factory() as session:
            return await IdentityResolver(session).resolve(role, requester_id)

    @pytest.mark.asyncio
    async def test_employee_resolves_to_requester(self, session_factory, users):
        """Test that the employee role is the requester themself."""
        assert await self.resolve(session_factory, "employee", "u-emp") == "u-emp"

    @pytest.mark.asyncio
    async def test_manager_is_reporting_manager(self, session_factory, users):
        """Test that manager resolves to the requester's reporting manager."""
        assert await self.resolve(session_factory, "manager", "u-emp") == "u-mgr"

    @pytest.mark.asyncio
    async def test_manager_missing(self, session_factory, users):
        """Test that a requester without a manager yields None."""
        assert await self.resolve(session_factory, "manager", "u-orphan") is None
        assert await self.resolve(session_factory, "manager", "u-gone-mgr") is None

    @pytest.mark.asyncio
    async def test_hr_is_first_active(self, session_factory, users):
        """Test that hr picks the earliest active hr user."""
        assert await self.resolve(session_factory, "hr", "u-emp") == "u-hr"

    @pytest.mark.asyncio
    async def test_company_admin_and_ceo(self, session_factory, users):
        """Test that company_admin and ceo both map to the first company admin."""
        assert await self.resolve(session_factory, "company_admin", "u-emp") == "u-cadmin"
        assert await self.resolve(session_factory, "ceo", "u-emp") == "u-cadmin"

    @pytest.mark.asyncio
    async def test_admin_falls_back_to_company_admin(self, session_factory, users):
        """Test that admin uses company_admin when no admin exists."""
        assert await self.resolve(session_factory, "admin", "u-emp") == "u-cadmin"

        await seed(session_factory, make_user("u-admin", "admin", order=20))
        assert await self.resolve(session_factory, "admin", "u-emp") == "u-admin"

    @pytest.mark.asyncio
    async def test_finance_requires_payroll_permission(self, session_factory, users):
        """Test that finance resolves to a payroll manager only."""
        assert await self.resolve(session_factory, "finance", "u-emp") == "u-hr-pay"

    @pytest.mark.asyncio
    async def test_department_head(self, session_factory, users):
        """Test that department_head picks the earliest manager of the department."""
        assert await self.resolve(session_factory, "department_head", "u-emp") == "u-mgr"
        assert await self.resolve(session_factory, "department_head", "u-orphan") is None

    @pytest.mark.asyncio
    async def test_unknown_requester(self, session_factory, users):
        """Test that an unknown requester resolves nothing."""
        assert await self.resolve(session_factory, "hr", "u-ghost") is None

    @pytest.mark.asyncio
    async def test_unknown_role(self, session_factory, users):
        """Test that an unknown role resolves nothing."""
        assert await self.resolve(session_factory, "janitor", "u-emp") is None

    @pytest.mark.asyncio
    async def test_no_candidate(self, session_factory):
        """Test that an empty store resolves nothing without raising."""
        await seed(session_factory, make_user("solo", "employee"))
        assert await self.resolve(session_factory, "hr", "solo") is None
        assert await self.resolve(session_factory, "finance", "solo") is None
