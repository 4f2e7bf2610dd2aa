"""Repository for workflow definitions."""

from typing import Sequence

from sqlalchemy import desc, select

from hrflow.models.workflow import WorkflowDefinition
from hrflow.repositories.base import BaseRepository


class WorkflowRepository(BaseRepository[WorkflowDefinition]):
    """Read access to workflow definitions."""

    model = WorkflowDefinition

    async def get_active_for_request_type(
        self, request_type: str
    ) -> Sequence[WorkflowDefinition]:
        """Active definitions for a request type, highest priority first.

        Ties on priority go to the most recently updated definition.

        @param request_type - Request type value
        @returns Ordered candidate definitions
        """
        stmt = (
            select(self.model)
            .where(
                self.model.request_type == request_type,
                self.model.is_active.is_(True),
            )
            .order_by(
                desc(self.model.priority),
                desc(self.model.updated_at),
                self.model.id,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
