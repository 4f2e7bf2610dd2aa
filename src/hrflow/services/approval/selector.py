"""Workflow selection."""

import logging
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from hrflow.core.exceptions import NoApplicableWorkflow
from hrflow.models.workflow import WorkflowDefinition
from hrflow.repositories.workflow import WorkflowRepository
from hrflow.services.approval.conditions import evaluate_conditions
from hrflow.services.approval.schemas import WorkflowDefinitionConfig

logger = logging.getLogger(__name__)


def build_condition_context(
    request_type: str,
    requester_id: str,
    requester_role: str | None,
    attributes: Mapping[str, Any],
) -> dict[str, Any]:
    """Attributes visible to workflow conditions.

    Attributes are exposed both at the top level and under ``metadata``, next
    to the request type and requester fields.
    """
    context: dict[str, Any] = {
        "request_type": request_type,
        "requested_by": requester_id,
        "requester_role": requester_role,
        "metadata": dict(attributes),
    }
    context.update(attributes)
    return context


def role_matches(definition_role: str | None, requester_role: str | None) -> bool:
    """A role filter only excludes when both roles are known and differ."""
    if not definition_role or not requester_role:
        return True
    return definition_role == requester_role


class WorkflowSelector:
    """Picks the workflow definition that governs a request."""

    def __init__(self, session: AsyncSession):
        self.workflows = WorkflowRepository(session)

    async def select(
        self,
        request_type: str,
        requester_role: str | None,
        context: Mapping[str, Any],
    ) -> tuple[WorkflowDefinition, WorkflowDefinitionConfig]:
        """Return the first matching active definition.

        Candidates are tried in priority order (most recently updated first
        on ties); the first one whose role filter and conditions pass wins.

        @param request_type - Request type value
        @param requester_role - Role of the requester, if known
        @param context - Condition evaluation context
        @returns The definition row and its validated config
        @raises NoApplicableWorkflow if no candidate matches
        """
        candidates = await self.workflows.get_active_for_request_type(request_type)

        for definition in candidates:
            config = WorkflowDefinitionConfig.model_validate(definition)
            if not role_matches(config.requester_role, requester_role):
                logger.debug(
                    f"Workflow {config.id} skipped: requester role "
                    f"{requester_role} != {config.requester_role}"
                )
                continue
            if evaluate_conditions(config.conditions, context):
                logger.debug(f"Workflow {config.id} selected for {request_type}")
                return definition, config

        raise NoApplicableWorkflow(request_type)
