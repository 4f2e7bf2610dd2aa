"""Approval workflow service module.

Only the schemas and condition evaluator are re-exported here, since
notification and outcome modules depend on them. Import the engine from
``hrflow.services.approval.workflow``.
"""

from hrflow.services.approval.conditions import evaluate_condition, evaluate_conditions
from hrflow.services.approval.schemas import (
    ApprovalInstanceDetail,
    ApprovalOutcome,
    ApprovalOutcomeEvent,
    ApprovalStats,
    ApproverRole,
    Channel,
    ChainStepDetail,
    ConditionOperator,
    Decision,
    HistoryAction,
    InstanceStatus,
    NotificationKind,
    RequestType,
    StepStatus,
    WorkflowCondition,
    WorkflowDefinitionConfig,
    WorkflowStep,
)

__all__ = [
    # Enums
    "RequestType",
    "ApproverRole",
    "InstanceStatus",
    "StepStatus",
    "Decision",
    "HistoryAction",
    "NotificationKind",
    "Channel",
    "ConditionOperator",
    "ApprovalOutcome",
    # Config schemas
    "WorkflowStep",
    "WorkflowCondition",
    "WorkflowDefinitionConfig",
    # Read models
    "ApprovalInstanceDetail",
    "ChainStepDetail",
    "ApprovalStats",
    "ApprovalOutcomeEvent",
    # Conditions
    "evaluate_condition",
    "evaluate_conditions",
]
