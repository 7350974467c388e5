"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from storyprompts.persistence.database import Base, get_db
from storyprompts.persistence.models import *  # noqa: F401, F403
from tests.factories import FakeLLMClient


@pytest.fixture
async def db_session():
    """Create a test database session."""
    # Use in-memory SQLite for testing
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
async def client(db_session, fake_llm):
    """Create a test API client sharing the test's event loop and session."""
    from httpx import ASGITransport, AsyncClient

    from storyprompts.api.deps import get_kv_store, get_llm
    from storyprompts.infrastructure.cache import InMemoryKeyValueStore
    from storyprompts.main import app

    kv_store = InMemoryKeyValueStore()
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_kv_store] = lambda: kv_store
    app.dependency_overrides[get_llm] = lambda: fake_llm

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
