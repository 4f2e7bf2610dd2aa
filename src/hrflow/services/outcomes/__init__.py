"""Approval outcome dispatch."""

from hrflow.services.outcomes.dispatcher import (
    ApprovalOutcomeDispatcher,
    DispatcherStats,
    HandlerStats,
    RequestTypeHandler,
    get_outcome_dispatcher,
    reset_outcome_dispatcher,
)

__all__ = [
    "ApprovalOutcomeDispatcher",
    "DispatcherStats",
    "HandlerStats",
    "RequestTypeHandler",
    "get_outcome_dispatcher",
    "reset_outcome_dispatcher",
]
