"""
Test configuration and fixtures.
Uses a throwaway SQLite database (aiosqlite) per test and fake providers.
"""
import os
import uuid as uuid_module

# Set test environment before any imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./reelforge_test.db"
os.environ["ENVIRONMENT"] = "test"

import pytest
from typing import AsyncGenerator

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from reelforge.models.base import Base
from reelforge.models.user import User
from reelforge.models.payment import Payment, PaymentStatus
from reelforge.providers.base import GenerationProvider, PaymentProvider

from tests.fakes import FakeGenerationProvider, FakePaymentProvider, WEBHOOK_SECRET


@pytest.fixture(scope="function")
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory over a fresh SQLite file; each session gets its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"timeout": 30},  # Concurrent writers wait for the lock
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(session_maker: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_maker() as session:
        yield session


async def _create_user(db_session: AsyncSession, credits: int, email: str) -> User:
    user = User(
        id=str(uuid_module.uuid4()),
        firebase_uid=f"firebase-test-uid-{uuid_module.uuid4().hex[:8]}",
        email=email,
        credits=credits,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user with 5 credits."""
    return await _create_user(db_session, 5, "test@example.com")


@pytest.fixture(scope="function")
async def test_user_no_credits(db_session: AsyncSession) -> User:
    """Create a test user with no credits."""
    return await _create_user(db_session, 0, "nocredits@example.com")


@pytest.fixture(scope="function")
async def other_user(db_session: AsyncSession) -> User:
    """A second user, for ownership checks."""
    return await _create_user(db_session, 5, "other@example.com")


@pytest.fixture(scope="function")
async def pending_payment(db_session: AsyncSession, test_user: User) -> Payment:
    """A pending purchase of 10 credits by test_user."""
    payment = Payment(
        id=str(uuid_module.uuid4()),
        user_id=test_user.id,
        amount=25000,
        currency="TZS",
        credits_bought=10,
        package_id="pkg_150",
        idempotency_key=str(uuid_module.uuid4()),
        provider="snippe",
        status=PaymentStatus.PENDING,
    )
    db_session.add(payment)
    await db_session.commit()
    await db_session.refresh(payment)
    return payment


@pytest.fixture
def generation_provider() -> FakeGenerationProvider:
    return FakeGenerationProvider()


@pytest.fixture
def payment_provider() -> FakePaymentProvider:
    return FakePaymentProvider()


def get_test_app(
    db_session: AsyncSession,
    test_user: User,
    generation_provider: GenerationProvider,
    payment_provider: PaymentProvider,
) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from reelforge.main import app
    from reelforge.database import get_db
    from reelforge.auth.dependencies import get_current_user
    from reelforge.providers.factory import get_generation_provider, get_payment_provider

    async def override_get_db():
        yield db_session

    async def override_get_current_user():
        # A rollback in an earlier request expires the instance
        await db_session.refresh(test_user)
        return test_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_generation_provider] = lambda: generation_provider
    app.dependency_overrides[get_payment_provider] = lambda: payment_provider

    return app


@pytest.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    test_user: User,
    generation_provider: FakeGenerationProvider,
    payment_provider: FakePaymentProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = get_test_app(db_session, test_user, generation_provider, payment_provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client_no_credits(
    db_session: AsyncSession,
    test_user_no_credits: User,
    generation_provider: FakeGenerationProvider,
    payment_provider: FakePaymentProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for user with no credits."""
    app = get_test_app(db_session, test_user_no_credits, generation_provider, payment_provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
