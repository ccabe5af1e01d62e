"""
Expert In The City Backend — Test Configuration (conftest.py)
==============================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets a fresh in-memory SQLite database (aiosqlite) with the
       full schema, a session bound to it, and small factories for users,
       experts and reviews. API tests talk to the FastAPI app through HTTPX
       with get_db_session overridden to hand out the test session.

Fixture Hierarchy (all function-scoped):
    db_engine          in-memory SQLite engine, schema created
    └── db_session     AsyncSession on that engine
        ├── make_user / make_expert / add_review   row factories
        └── test_client                            HTTPX AsyncClient
    mock_db_session    AsyncMock session for pure unit tests
"""

import os
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

# Override settings for testing BEFORE any expertcity imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["IN_DEMAND_WINDOW_DAYS"] = "30"
os.environ["IN_DEMAND_MIN_REVIEWS"] = "10"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import expertcity.models  # noqa: F401
from expertcity.database import Base, get_db_session
from expertcity.models import ExpertDetails, SessionReview, User, UserRole
from expertcity.models.enums import Satisfaction


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine with the schema created.

    StaticPool keeps the single connection alive so every session sees the
    same database. The connect/begin listeners hand transaction control to
    SQLAlchemy so SAVEPOINT (begin_nested) works on pysqlite/aiosqlite.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Row Factories
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_user(db_session):
    """
    Factory for users.

    Usage:
        reviewer = await make_user(name="Asha")
    """

    async def _make_user(name: Optional[str] = None, role: UserRole = UserRole.USER) -> User:
        suffix = uuid4().hex[:8]
        user = User(
            name=name or f"user-{suffix}",
            email=f"{suffix}@example.com",
            role=role,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
def make_expert(db_session, make_user):
    """
    Factory for an expert user plus their ExpertDetails row.

    Usage:
        expert = await make_expert(expertise=["food", "art"], badges=["SPECIALIST"])
        expert.user_id  # the id reviews are submitted against
    """

    async def _make_expert(expertise=None, badges=None, name: Optional[str] = None) -> ExpertDetails:
        user = await make_user(name=name, role=UserRole.EXPERT)
        expert = ExpertDetails(
            user_id=user.id,
            headline="Local guide",
            expertise=list(expertise or []),
            badges=sorted(badges or []),
        )
        db_session.add(expert)
        await db_session.flush()
        return expert

    return _make_expert


@pytest.fixture
def add_review(db_session, make_user):
    """
    Inserts a review row directly, bypassing the service (and the recompute).

    Usage:
        await add_review(expert, rating=5)
        await add_review(expert, rating=3, created_at=forty_days_ago)
    """

    async def _add_review(
        expert: ExpertDetails,
        rating: float = 5.0,
        reviewer: Optional[User] = None,
        created_at: Optional[datetime] = None,
    ) -> SessionReview:
        reviewer = reviewer or await make_user()
        review = SessionReview(
            expert_id=expert.id,
            reviewer_id=reviewer.id,
            rating=rating,
            satisfaction=Satisfaction.SATISFIED,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db_session.add(review)
        await db_session.flush()
        return review

    return _add_review


# ══════════════════════════════════════════════════════════════════════════
# Unit-test Doubles
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = None
        with pytest.raises(NotFoundError):
            await service.recompute_expert_reputation(mock_db_session, uuid4())
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# API Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_session):
    """
    HTTPX AsyncClient wired to the FastAPI app and the test database.

    Usage:
        response = await test_client.get(
            "/api/reviews/user", headers={"X-User-ID": str(user.id)}
        )
    """
    from expertcity.main import app

    async def _override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = _override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
