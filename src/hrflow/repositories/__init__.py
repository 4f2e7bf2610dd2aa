"""Repository layer for database operations.

Async repository implementations using SQLAlchemy 2.x. Repositories flush
but never commit; services own the transaction.
"""

from hrflow.repositories.approval import ApprovalInstanceRepository
from hrflow.repositories.base import BaseRepository
from hrflow.repositories.onboarding import OnboardingRepository
from hrflow.repositories.user import UserRepository
from hrflow.repositories.workflow import WorkflowRepository

__all__ = [
    "BaseRepository",
    "ApprovalInstanceRepository",
    "OnboardingRepository",
    "UserRepository",
    "WorkflowRepository",
]
