"""Repository for approval instance operations."""

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, desc, func, select, update
from sqlalchemy.orm import selectinload

from hrflow.models.approval import (
    ApprovalChainStep,
    ApprovalHistoryEntry,
    ApprovalInstance,
    ApprovalNotification,
)
from hrflow.repositories.base import BaseRepository


class ApprovalInstanceRepository(BaseRepository[ApprovalInstance]):
    """Repository for ApprovalInstance database operations.

    Handles approval workflow queries including:
    - Loading an instance with its chain, history and notification log
    - Finding the open instance for a business object
    - Optimistic-lock writes on the instance row
    - SLA deadline tracking
    - Statistics
    """

    model = ApprovalInstance

    async def get_with_chain(self, instance_id: str) -> ApprovalInstance | None:
        """Get instance with chain, history and notifications loaded.

        @param instance_id - Instance ID
        @returns ApprovalInstance or None
        """
        stmt = (
            select(self.model)
            .options(
                selectinload(self.model.steps),
                selectinload(self.model.history),
                selectinload(self.model.notifications),
            )
            .where(self.model.id == instance_id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_open_by_request(
        self, request_type: str, request_id: str
    ) -> ApprovalInstance | None:
        """Get the pending instance for a business object, if any."""
        stmt = select(self.model).where(
            and_(
                self.model.request_type == request_type,
                self.model.request_id == request_id,
                self.model.status == "pending",
            )
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_latest_by_request(
        self, request_type: str, request_id: str
    ) -> ApprovalInstance | None:
        """Get the most recently created instance for a business object."""
        stmt = (
            select(self.model)
            .where(
                and_(
                    self.model.request_type == request_type,
                    self.model.request_id == request_id,
                )
            )
            .order_by(desc(self.model.created_at), desc(self.model.id))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def compare_and_set(
        self, instance_id: str, expected_version: int, values: dict[str, Any]
    ) -> int:
        """Write instance columns only if nobody else has since.

        Matches on id, the version the caller read and ``status = 'pending'``,
        and bumps the version. The loaded ORM object is not synchronised.

        @param instance_id - Instance ID
        @param expected_version - Version the caller read
        @param values - Column values to write
        @returns Number of updated rows (0 or 1)
        """
        stmt = (
            update(self.model)
            .where(
                self.model.id == instance_id,
                self.model.version == expected_version,
                self.model.status == "pending",
            )
            .values(version=self.model.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_overdue_pending(self, now: datetime) -> Sequence[str]:
        """IDs of pending instances whose current step is past due.

        Already-escalated steps are excluded, most overdue first.

        @param now - Reference time
        @returns Instance IDs
        """
        stmt = (
            select(self.model.id)
            .join(
                ApprovalChainStep,
                and_(
                    ApprovalChainStep.instance_id == self.model.id,
                    ApprovalChainStep.level == self.model.current_level,
                ),
            )
            .where(
                self.model.status == "pending",
                ApprovalChainStep.due_at.is_not(None),
                ApprovalChainStep.due_at <= now,
                ApprovalChainStep.is_escalated.is_(False),
            )
            .order_by(ApprovalChainStep.due_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_pending_for_approver(
        self, approver_id: str
    ) -> Sequence[ApprovalInstance]:
        """Pending instances whose current step waits on ``approver_id``.

        @param approver_id - Approver identity
        @returns Instances ordered by the current step's due date
        """
        stmt = (
            select(self.model)
            .join(
                ApprovalChainStep,
                and_(
                    ApprovalChainStep.instance_id == self.model.id,
                    ApprovalChainStep.level == self.model.current_level,
                ),
            )
            .where(
                self.model.status == "pending",
                ApprovalChainStep.status == "pending",
                ApprovalChainStep.approver_id == approver_id,
            )
            .order_by(ApprovalChainStep.due_at, self.model.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_status_counts(
        self, approver_id: str | None = None
    ) -> dict[str, int]:
        """Count instances by status.

        @param approver_id - Restrict to chains this identity appears in
        @returns Mapping of status to count
        """
        stmt = select(self.model.status, func.count(self.model.id)).group_by(
            self.model.status
        )
        if approver_id:
            stmt = stmt.where(self.model.id.in_(self._involving(approver_id)))
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def count_breached(self, approver_id: str | None = None) -> int:
        """Count instances whose SLA is breached."""
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.sla_is_breached.is_(True))
        )
        if approver_id:
            stmt = stmt.where(self.model.id.in_(self._involving(approver_id)))
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def add_history(self, entry: ApprovalHistoryEntry) -> ApprovalHistoryEntry:
        """Append a history row."""
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def add_notification(
        self, notification: ApprovalNotification
    ) -> ApprovalNotification:
        """Append a notification log row."""
        self.session.add(notification)
        await self.session.flush()
        return notification

    @staticmethod
    def _involving(approver_id: str):
        return select(ApprovalChainStep.instance_id).where(
            ApprovalChainStep.approver_id == approver_id
        )
