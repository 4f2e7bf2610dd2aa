"""Typed exceptions for the approval engine and the business-object gates.

Every error carries a machine-readable ``code`` so outer layers can map it to
a response without parsing messages. The base class derives from
``ValueError``: all of these are rejections of a request, not crashes.

    HRFlowError
    +-- ApprovalError
    |   +-- NoApplicableWorkflow
    |   +-- EmptyWorkflow
    |   +-- UnresolvedApprover
    |   +-- NoPendingApprover
    |   +-- NotAuthorized
    |   +-- StaleInstanceState
    |   +-- InstanceNotFound
    |   +-- DuplicateApprovalRequest
    |   +-- InvalidAssignment
    +-- GateError
        +-- InvalidTransition
        +-- ApprovalRequired
        +-- OnboardingNotFound
"""

from typing import Any


class HRFlowError(ValueError):
    """Base class for all hrflow errors."""

    code: str = "HRFLOW_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.details}


class ApprovalError(HRFlowError):
    """Errors raised by the approval workflow engine."""

    code = "APPROVAL_ERROR"


class NoApplicableWorkflow(ApprovalError):
    """No active workflow definition matched the request."""

    code = "NO_APPLICABLE_WORKFLOW"

    def __init__(self, request_type: str):
        super().__init__(
            f"No approval workflow found for {request_type}",
            request_type=request_type,
        )
        self.request_type = request_type


class EmptyWorkflow(ApprovalError):
    """The selected workflow produced a chain with zero steps."""

    code = "EMPTY_WORKFLOW"

    def __init__(self, workflow_id: str, workflow_name: str | None = None):
        super().__init__(
            f"Approval workflow '{workflow_name or workflow_id}' has no approval steps configured",
            workflow_id=workflow_id,
        )
        self.workflow_id = workflow_id


class UnresolvedApprover(ApprovalError):
    """A chain step role could not be resolved to an identity."""

    code = "UNRESOLVED_APPROVER"

    def __init__(self, level: int, role: str):
        super().__init__(
            f"No approver found for role '{role}' at level {level}",
            level=level,
            role=role,
        )
        self.level = level
        self.role = role


class NoPendingApprover(ApprovalError):
    """The instance has no pending step at its current level."""

    code = "NO_PENDING_APPROVER"

    def __init__(self, instance_id: str, status: str | None = None):
        message = f"No pending approver found for instance {instance_id}"
        if status:
            message += f" (status: {status})"
        super().__init__(message, instance_id=instance_id, status=status)
        self.instance_id = instance_id


class NotAuthorized(ApprovalError):
    """The actor is not the approver of the current step."""

    code = "NOT_AUTHORIZED"

    def __init__(self, instance_id: str, actor_id: str):
        super().__init__(
            f"{actor_id} is not authorized to act on instance {instance_id}",
            instance_id=instance_id,
            actor_id=actor_id,
        )
        self.instance_id = instance_id
        self.actor_id = actor_id


class StaleInstanceState(ApprovalError):
    """A concurrent writer changed the instance first; retry on fresh state."""

    code = "STALE_INSTANCE_STATE"

    def __init__(self, instance_id: str, expected_version: int):
        super().__init__(
            f"Instance {instance_id} was modified concurrently "
            f"(expected version {expected_version})",
            instance_id=instance_id,
            expected_version=expected_version,
        )
        self.instance_id = instance_id
        self.expected_version = expected_version


class InstanceNotFound(ApprovalError):
    code = "INSTANCE_NOT_FOUND"

    def __init__(self, instance_id: str):
        super().__init__(
            f"Approval instance {instance_id} not found", instance_id=instance_id
        )
        self.instance_id = instance_id


class DuplicateApprovalRequest(ApprovalError):
    """A pending instance already exists for the same request."""

    code = "DUPLICATE_APPROVAL_REQUEST"

    def __init__(self, request_type: str, request_id: str, existing_id: str | None = None):
        super().__init__(
            f"A pending approval already exists for {request_type}:{request_id}",
            request_type=request_type,
            request_id=request_id,
            existing_instance_id=existing_id,
        )
        self.existing_instance_id = existing_id


class InvalidAssignment(ApprovalError):
    code = "INVALID_ASSIGNMENT"


class GateError(HRFlowError):
    """Errors raised by business-object status gates."""

    code = "GATE_ERROR"


class InvalidTransition(GateError):
    """Requested status change is not in the transition table."""

    code = "INVALID_TRANSITION"

    def __init__(self, current_status: str, requested_status: str, allowed: list[str]):
        super().__init__(
            f"Cannot transition from '{current_status}' to '{requested_status}' "
            f"(allowed: {allowed})",
            current_status=current_status,
            requested_status=requested_status,
            allowed=allowed,
        )
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed = allowed


class ApprovalRequired(GateError):
    code = "APPROVAL_REQUIRED"


class OnboardingNotFound(GateError):
    code = "ONBOARDING_NOT_FOUND"

    def __init__(self, onboarding_id: str):
        super().__init__(
            f"Onboarding record {onboarding_id} not found", onboarding_id=onboarding_id
        )
        self.onboarding_id = onboarding_id
