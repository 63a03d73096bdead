"""
Shared test fixtures and configuration for StreamHub backend tests.
"""
import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from utils.auth_helpers import DEFAULT_PASSWORD

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_SALT_ROUNDS"] = "4"

TEST_BCRYPT_ROUNDS = 4


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine shared by every session in one test."""
    from app.db.base import Base

    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_service():
    """Same signing configuration the application builds at import."""
    from app.core.config import settings
    from app.core.security import TokenConfig, TokenService

    return TokenService(TokenConfig.from_settings(settings))


@pytest_asyncio.fixture
async def account_factory(session_factory):
    """Create accounts through the repository so passwords are really hashed."""
    from app.repositories.account_repository import AccountRepository

    async def _create(
        user_name: str = "alice",
        email: str = "alice@example.com",
        full_name: str = "Alice Liddell",
        password: str = DEFAULT_PASSWORD,
    ):
        async with session_factory() as session:
            repo = AccountRepository(session, bcrypt_rounds=TEST_BCRYPT_ROUNDS)
            return await repo.create(
                user_name=user_name,
                email=email,
                full_name=full_name,
                password=password,
            )

    return _create


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the real application with the database swapped for
    the in-memory engine. Uses https so Secure cookies round-trip.
    """
    from app.api.deps import get_db
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()
