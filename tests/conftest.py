"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrflow.core.config import Settings
from hrflow.models import Base, TenantUser, WorkflowDefinition
from hrflow.services.approval.workflow import ApprovalWorkflowEngine
from hrflow.services.notifications.notifier import NotificationIntent, Notifier
from hrflow.services.outcomes.dispatcher import ApprovalOutcomeDispatcher

BASE_TIME = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class RecordingNotifier(Notifier):
    """Collects intents instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.sent: list[NotificationIntent] = []
        self.fail = fail

    async def notify(self, intent: NotificationIntent) -> None:
        if self.fail:
            raise RuntimeError("mail relay unavailable")
        self.sent.append(intent)

    def to(self, recipient_id: str) -> list[NotificationIntent]:
        return [i for i in self.sent if i.recipient_id == recipient_id]


class FixedClock:
    """Controllable clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_user(
    user_id: str,
    role: str,
    *,
    department: str | None = None,
    manager: str | None = None,
    active: bool = True,
    payroll: bool = False,
    order: int = 0,
) -> TenantUser:
    """Tenant user whose creation order is fixed by ``order``."""
    created = BASE_TIME - timedelta(days=365) + timedelta(minutes=order)
    return TenantUser(
        id=user_id,
        email=f"{user_id}@example.com",
        full_name=user_id,
        role=role,
        department=department,
        reporting_manager_id=manager,
        is_active=active,
        can_manage_payroll=payroll,
        created_at=created,
        updated_at=created,
    )


def make_workflow(
    workflow_id: str,
    request_type: str,
    roles: list[str] | list[dict],
    *,
    conditions: list[dict] | None = None,
    priority: int = 0,
    requester_role: str | None = None,
    active: bool = True,
    updated_at: datetime | None = None,
) -> WorkflowDefinition:
    """Workflow definition; ``roles`` may be role names or full step dicts."""
    steps = [r if isinstance(r, dict) else {"role": r} for r in roles]
    stamp = updated_at or BASE_TIME - timedelta(days=30)
    return WorkflowDefinition(
        id=workflow_id,
        name=f"{workflow_id} workflow",
        request_type=request_type,
        requester_role=requester_role,
        steps=steps,
        conditions=conditions or [],
        priority=priority,
        is_active=active,
        created_at=stamp,
        updated_at=stamp,
    )


def default_users() -> list[TenantUser]:
    return [
        make_user("u-hr-old", "hr", active=False, order=0),
        make_user("u-mgr", "manager", department="eng", order=1),
        make_user("u-mgr2", "manager", department="eng", order=2),
        make_user("u-hr", "hr", order=3),
        make_user("u-hr-pay", "hr", payroll=True, order=4),
        make_user("u-cadmin", "company_admin", order=5),
        make_user("u-cadmin2", "company_admin", order=6),
        make_user("u-emp", "employee", department="eng", manager="u-mgr", order=7),
        make_user("u-orphan", "employee", order=8),
        make_user("u-gone-mgr", "employee", manager="u-nobody", order=9),
    ]


async def seed(factory: async_sessionmaker[AsyncSession], *objects) -> None:
    """Persist rows in one transaction."""
    async with factory() as session:
        session.add_all(list(objects))
        await session.commit()


@pytest.fixture
def settings():
    """Create settings instance for testing."""
    return Settings(
        _env_file=None,
        environment="testing",
        notification_backend="log",
        unresolved_approver_policy="unassigned",
    )


async def create_schema(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite database with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield await create_schema(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """File-backed SQLite database; each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hrflow.db'}")
    yield await create_schema(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def users(session_factory):
    """Seed the default tenant users."""
    rows = default_users()
    await seed(session_factory, *rows)
    return {u.id: u for u in rows}


@pytest.fixture
def clock():
    return FixedClock(BASE_TIME)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher():
    return ApprovalOutcomeDispatcher()


@pytest.fixture
def engine(session_factory, settings, notifier, dispatcher, clock):
    """Approval engine wired to the test database and collaborators."""
    return ApprovalWorkflowEngine(
        session_factory=session_factory,
        settings=settings,
        notifier=notifier,
        dispatcher=dispatcher,
        clock=clock,
    )
