"""pytest configuration and fixtures.

This module provides the fixtures shared by the test suite: an async
SQLite in-memory engine with the workflow tables, session factories,
workflow stores and managers, an HTTP client bound to the FastAPI app,
and sample workflows for the common graph shapes.
"""

from collections.abc import AsyncGenerator
from typing import cast

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from starlette.types import ASGIApp

from crawlflow.main import app
from crawlflow.models import Base
from crawlflow.schemas.workflow import ROOT_TRIGGER, Workflow, WorkflowTask
from crawlflow.services.storage import InMemoryWorkflowStore, SQLWorkflowStore
from crawlflow.services.workflow_service import WorkflowLocks, WorkflowManager

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "asyncio: marks tests as async (pytest-asyncio)",
    )


# =============================================================================
# HELPERS
# =============================================================================


def _task(name: str, trigger: str, config: str | None = None) -> WorkflowTask:
    """Build a task whose task_id is derived from its name."""
    return WorkflowTask(task_id=f"task_{name}", name=name, trigger=trigger, config=config)


def _workflow(*tasks: WorkflowTask, name: str = "Test Workflow") -> Workflow:
    """Build an unsaved workflow holding the given tasks."""
    return Workflow(name=name, description="Workflow used in tests", tasks=list(tasks))


# =============================================================================
# ASYNC ENGINE FIXTURES (SQLite In-Memory for Tests)
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an async SQLite in-memory engine with the workflow tables.

    StaticPool keeps the single in-memory connection alive, so every
    session opened by the store sees the same database.

    Yields:
        AsyncEngine: SQLAlchemy async engine backed by SQLite in-memory.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def async_session_maker(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    async_session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a plain database session on the test engine."""
    async with async_session_maker() as session:
        yield session


# =============================================================================
# STORE AND MANAGER FIXTURES
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryWorkflowStore:
    """Empty dictionary backed store."""
    return InMemoryWorkflowStore()


@pytest_asyncio.fixture(scope="function")
async def sql_store(
    async_session_maker: async_sessionmaker[AsyncSession],
) -> SQLWorkflowStore:
    """SQL store on the in-memory test database."""
    return SQLWorkflowStore(async_session_maker)


@pytest.fixture
def manager(memory_store: InMemoryWorkflowStore) -> WorkflowManager:
    """Manager over the in-memory store with its own lock registry."""
    return WorkflowManager(memory_store, locks=WorkflowLocks())


@pytest_asyncio.fixture(scope="function")
async def sql_manager(sql_store: SQLWorkflowStore) -> WorkflowManager:
    """Manager over the SQL store with its own lock registry."""
    return WorkflowManager(sql_store, locks=WorkflowLocks())


# =============================================================================
# HTTP CLIENT FIXTURES
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_client(
    sql_manager: WorkflowManager,
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for testing API endpoints.

    Uses ASGI transport to test the FastAPI app without running a server.
    The manager and database session dependencies are overridden to use
    the in-memory test database.

    Yields:
        AsyncClient: HTTP client configured for testing.

    Example:
        async def test_list(async_client):
            response = await async_client.get("/api/v1/workflows/")
            assert response.status_code == 200
    """
    from crawlflow.api.deps import get_manager
    from crawlflow.db.session import get_db

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_manager] = lambda: sql_manager
    app.dependency_overrides[get_db] = override_get_db

    try:
        transport = ASGITransport(app=cast("ASGIApp", app))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


# =============================================================================
# SAMPLE WORKFLOW FIXTURES
# =============================================================================


@pytest.fixture
def chain_workflow() -> Workflow:
    """crawl -> filter -> shot."""
    return _workflow(
        _task("crawl", ROOT_TRIGGER, '{"url": "https://example.com"}'),
        _task("filter", "crawl"),
        _task("shot", "filter"),
        name="Chain",
    )


@pytest.fixture
def branching_workflow() -> Workflow:
    """crawl -> {shot, scrape, pdf}."""
    return _workflow(
        _task("crawl", ROOT_TRIGGER),
        _task("shot", "crawl"),
        _task("scrape", "crawl"),
        _task("pdf", "crawl"),
        name="Branching",
    )


@pytest.fixture
def two_chain_workflow() -> Workflow:
    """a -> {b, c}, b -> d, c -> e: two chains under one root."""
    return _workflow(
        _task("a", ROOT_TRIGGER),
        _task("b", "a"),
        _task("c", "a"),
        _task("d", "b"),
        _task("e", "c"),
        name="Two chains",
    )
