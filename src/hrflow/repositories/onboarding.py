"""Repository for onboarding records."""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from hrflow.models.onboarding import Onboarding, OnboardingAuditEntry
from hrflow.repositories.base import BaseRepository


class OnboardingRepository(BaseRepository[Onboarding]):
    """Repository for Onboarding database operations."""

    model = Onboarding

    async def get_with_audit(self, onboarding_id: str) -> Onboarding | None:
        """Get onboarding with its audit trail loaded.

        @param onboarding_id - Onboarding ID
        @returns Onboarding or None
        """
        stmt = (
            select(self.model)
            .options(selectinload(self.model.audit_entries))
            .where(self.model.id == onboarding_id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def compare_and_set_status(
        self, onboarding_id: str, expected_status: str, values: dict[str, Any]
    ) -> int:
        """Write the record only if its status is still ``expected_status``.

        @param onboarding_id - Onboarding ID
        @param expected_status - Status the caller validated against
        @param values - Column values to write
        @returns Number of updated rows (0 or 1)
        """
        stmt = (
            update(self.model)
            .where(
                self.model.id == onboarding_id,
                self.model.status == expected_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def add_audit_entry(self, entry: OnboardingAuditEntry) -> OnboardingAuditEntry:
        """Append an audit trail row."""
        self.session.add(entry)
        await self.session.flush()
        return entry
