"""Shared pytest fixtures for the playbook engine test suite.

Provides:
- In-memory async SQLite database per test (no PostgreSQL needed)
- Session factory and orchestrator wired to a recording cascade publisher
- Fake actions with predictable results
- Pre-seeded case with two alerts, and a playbook factory
- FastAPI test client (httpx.AsyncClient) and JWT auth headers
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("CASCADE_BACKEND", "memory")

from actions.base_action import ActionContext, ActionResult, BaseAction  # noqa: E402
from actions.registry import ActionRegistry  # noqa: E402
from core.constants import RiskLevel  # noqa: E402
from core.security import create_access_token  # noqa: E402
from db.base import Base  # noqa: E402
from db.database import create_session_factory  # noqa: E402
from playbook.orchestrator import PlaybookOrchestrator  # noqa: E402
from services.playbook_service import PlaybookService  # noqa: E402

TENANT_ID = "tenant-a"
OTHER_TENANT_ID = "tenant-b"
USER_ID = "analyst-1"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class RecordingPublisher:
    """Cascade publisher that only collects jobs; tests drain them explicitly."""

    def __init__(self):
        self.jobs = []

    async def publish(self, job):
        self.jobs.append(job)


class EchoAction(BaseAction):
    """Succeeds and echoes its inputs. Records every context it was run with."""

    action_id = "echo"
    display_name = "Echo"
    risk_level = RiskLevel.LOW

    def __init__(self):
        self.calls: list[ActionContext] = []

    async def execute(self, ctx: ActionContext) -> ActionResult:
        self.calls.append(ctx)
        return ActionResult(success=True, data={"echo": ctx.inputs})

    async def simulate(self, ctx: ActionContext) -> ActionResult:
        self.calls.append(ctx)
        return ActionResult(success=True, data={"simulated": True, "echo": ctx.inputs})


class CriticalAction(EchoAction):
    action_id = "critical_echo"
    display_name = "Critical Echo"
    risk_level = RiskLevel.CRITICAL


class FailingAction(BaseAction):
    action_id = "always_fails"
    display_name = "Always Fails"
    risk_level = RiskLevel.MEDIUM

    async def execute(self, ctx: ActionContext) -> ActionResult:
        return ActionResult(success=False, error="firewall unreachable")


class ExplodingAction(BaseAction):
    action_id = "explodes"
    display_name = "Explodes"

    async def execute(self, ctx: ActionContext) -> ActionResult:
        raise RuntimeError("vendor SDK crashed")


async def drain(orchestrator: PlaybookOrchestrator, publisher: RecordingPublisher) -> int:
    """Run queued cascade jobs (and the jobs they queue) until none remain."""
    processed = 0
    while publisher.jobs:
        job = publisher.jobs.pop(0)
        await orchestrator.trigger_next_step(job.tenant_id, job.execution_id, job.completed_step_id)
        processed += 1
    return processed


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory database for every test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    # Import all models so Base.metadata knows about them
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting data; committed on teardown."""
    async with session_factory() as session:
        yield session
        await session.commit()


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def echo_action():
    return EchoAction()


@pytest.fixture
def critical_action():
    return CriticalAction()


@pytest.fixture
def action_registry(echo_action, critical_action) -> ActionRegistry:
    registry = ActionRegistry(register_builtins=False)
    registry.register(echo_action)
    registry.register(critical_action)
    registry.register(FailingAction())
    registry.register(ExplodingAction())
    return registry


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def orchestrator(session_factory, action_registry, publisher) -> PlaybookOrchestrator:
    return PlaybookOrchestrator(session_factory, action_registry, publisher)


# ---------------------------------------------------------------------------
# Test data fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def test_case(session_factory):
    """A critical phishing case with two alerts (the older one is primary)."""
    from db.models.case import Alert, Case

    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        case = Case(
            id=str(uuid4()),
            tenant_id=TENANT_ID,
            title="Phishing campaign against finance",
            severity="critical",
            data={"risk_score": 87, "tags": ["phishing", "finance"]},
        )
        session.add(case)
        session.add_all([
            Alert(
                tenant_id=TENANT_ID,
                case_id=case.id,
                title="Suspicious login",
                source="edr",
                source_ip="203.0.113.7",
                hostname="fin-ws-042",
                username="jdoe",
                created_at=now - timedelta(minutes=5),
            ),
            Alert(
                tenant_id=TENANT_ID,
                case_id=case.id,
                title="Mail link clicked",
                source="mail-gateway",
                source_ip="198.51.100.23",
                created_at=now,
            ),
        ])
        await session.commit()
    return case


@pytest.fixture
def make_playbook(session_factory):
    """Factory creating a committed playbook from a list of step dicts."""

    async def _make(steps, tenant_id=TENANT_ID, title="Test Playbook", **fields):
        async with session_factory() as session:
            playbook = await PlaybookService(session).create_playbook(
                tenant_id, title=title, steps=steps, **fields
            )
            await session.commit()
        return playbook

    return _make


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(session_factory, action_registry, publisher):
    """FastAPI app wired to the test database and fake actions."""
    from app.main import configure_state, create_app

    test_app = create_app()
    configure_state(test_app, session_factory, publisher, action_registry)
    yield test_app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict:
    """Authorization headers with a valid JWT for TENANT_ID."""
    token = create_access_token(user_id=USER_ID, tenant_id=TENANT_ID)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_tenant_headers() -> dict:
    token = create_access_token(user_id="analyst-2", tenant_id=OTHER_TENANT_ID)
    return {"Authorization": f"Bearer {token}"}
