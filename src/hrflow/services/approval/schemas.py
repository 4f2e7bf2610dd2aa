"""Approval workflow schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RequestType(str, Enum):
    """Kinds of request that can seek approval."""

    LEAVE = "leave"
    ATTENDANCE = "attendance"
    EXPENSE = "expense"
    PAYROLL = "payroll"
    ASSET = "asset"
    DOCUMENT = "document"
    OFFBOARDING = "offboarding"
    ONBOARDING_APPROVAL = "onboarding_approval"
    OTHER = "other"


class ApproverRole(str, Enum):
    """Abstract approver roles a workflow step can name."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"
    COMPANY_ADMIN = "company_admin"
    CEO = "ceo"
    FINANCE = "finance"
    DEPARTMENT_HEAD = "department_head"


class InstanceStatus(str, Enum):
    """Approval instance status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    # Never set by the engine; escalation is tracked on the SLA record.
    ESCALATED = "escalated"


TERMINAL_STATUSES = frozenset(
    {InstanceStatus.APPROVED, InstanceStatus.REJECTED, InstanceStatus.CANCELLED}
)


class StepStatus(str, Enum):
    """Chain step status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"
    DELEGATED = "delegated"
    UNASSIGNED = "unassigned"


class Decision(str, Enum):
    """Approver decision."""

    APPROVE = "approve"
    REJECT = "reject"


class HistoryAction(str, Enum):
    """Actions recorded in the approval history."""

    CREATED = "CREATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ESCALATED = "ESCALATED"
    CANCELLED = "CANCELLED"
    ASSIGNED = "ASSIGNED"
    DELEGATED = "DELEGATED"


class NotificationKind(str, Enum):
    """Kinds of notification intent."""

    PENDING = "pending"
    REMINDER = "reminder"
    ESCALATION = "escalation"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class Channel(str, Enum):
    """Notification delivery channels."""

    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"
    IN_APP = "in-app"


class ConditionOperator(str, Enum):
    """Operators available to workflow conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"


# =============================================================================
# Workflow definitions
# =============================================================================


class WorkflowStep(BaseModel):
    """One declared step of a workflow definition."""

    role: str = Field(..., description="Abstract approver role")
    sla_hours: float | None = Field(None, gt=0, description="Hours to decide")
    escalation_hours: float | None = Field(
        None, gt=0, description="Hours until escalation is due"
    )


class WorkflowCondition(BaseModel):
    """A predicate over the request attributes."""

    field: str = Field(..., description="Dotted path into the attributes")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Any = Field(None, description="Expected value")


class WorkflowDefinitionConfig(BaseModel):
    """Validated view of a workflow definition row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    request_type: str
    requester_role: str | None = None
    steps: list[WorkflowStep] = Field(default_factory=list)
    conditions: list[WorkflowCondition] = Field(default_factory=list)
    priority: int = 0
    is_active: bool = True
    updated_at: datetime | None = None


# =============================================================================
# Chain materialisation
# =============================================================================


class BuiltStep(BaseModel):
    """A chain step produced by the chain builder, before persistence."""

    level: int = Field(..., ge=1)
    approver_type: str
    approver_id: str | None = None
    status: StepStatus
    sla_hours: float
    escalation_hours: float
    due_at: datetime | None = None
    escalate_at: datetime | None = None


class BuiltChain(BaseModel):
    """Chain builder output."""

    steps: list[BuiltStep]
    started_at: datetime
    expected_completion_at: datetime

    @property
    def unresolved_levels(self) -> list[int]:
        return [s.level for s in self.steps if s.approver_id is None]


# =============================================================================
# Read models
# =============================================================================


class ChainStepDetail(BaseModel):
    """Chain step as exposed to callers."""

    model_config = ConfigDict(from_attributes=True)

    level: int
    approver_type: str
    approver_id: str | None
    status: StepStatus
    action_date: datetime | None = None
    comments: str | None = None
    delegated_to: str | None = None
    sla_hours: float
    escalation_hours: float
    due_at: datetime | None = None
    escalate_at: datetime | None = None
    is_escalated: bool = False
    escalated_to: str | None = None


class SLAStatus(BaseModel):
    """Instance-level SLA summary."""

    started_at: datetime
    expected_completion_at: datetime
    completed_at: datetime | None = None
    is_breached: bool = False
    breach_reason: str | None = None


class HistoryEntry(BaseModel):
    """One history row."""

    model_config = ConfigDict(from_attributes=True)

    action: HistoryAction
    performed_by: str | None = None
    timestamp: datetime
    details: dict[str, Any] = Field(default_factory=dict)


class NotificationLogEntry(BaseModel):
    """One notification log row."""

    model_config = ConfigDict(from_attributes=True)

    sent_to: str
    kind: NotificationKind
    channel: Channel
    sent_at: datetime


class ApprovalInstanceDetail(BaseModel):
    """Detailed approval instance information."""

    id: str = Field(..., description="Instance ID")
    request_type: RequestType = Field(..., description="Request type")
    request_id: str = Field(..., description="Business object reference")
    requested_by: str = Field(..., description="Requester identity")
    workflow_id: str = Field(..., description="Selected workflow")
    current_level: int = Field(..., ge=1, description="1-based pointer into chain")
    total_levels: int = Field(..., ge=1, description="Chain length")
    status: InstanceStatus = Field(..., description="Overall status")
    metadata: dict[str, Any] = Field(default_factory=dict)
    chain: list[ChainStepDetail] = Field(default_factory=list)
    sla: SLAStatus
    history: list[HistoryEntry] = Field(default_factory=list)
    notifications: list[NotificationLogEntry] = Field(default_factory=list)
    version: int
    created_at: datetime
    updated_at: datetime

    @property
    def current_step(self) -> ChainStepDetail | None:
        for step in self.chain:
            if step.level == self.current_level:
                return step
        return None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ApprovalStats(BaseModel):
    """Approval statistics."""

    total: int = Field(default=0, description="All instances")
    by_status: dict[str, int] = Field(default_factory=dict)
    pending: int = Field(default=0, description="Open instances")
    breached: int = Field(default=0, description="Instances past their SLA")


# =============================================================================
# Outcome event
# =============================================================================


class ApprovalOutcome(str, Enum):
    """Terminal outcome of an approval instance."""

    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApprovalOutcomeEvent(BaseModel):
    """Emitted once an instance reaches a terminal status."""

    instance_id: str
    request_type: RequestType
    request_id: str
    outcome: ApprovalOutcome
    actor_id: str | None = None
    comment: str | None = None
    occurred_at: datetime
