"""Shared test fixtures.

Settings are read from the environment on first use, so the defaults below
must be in place before any ``royalty_engine`` module is imported.
"""

import os

os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "testuser")
os.environ.setdefault("POSTGRES_PASSWORD", "testpass")
os.environ.setdefault("POSTGRES_DB", "testdb")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from royalty_engine.db.base import Base
from royalty_engine.models.asset import Asset, AssetStatus
from royalty_engine.models.wallet import Wallet
from royalty_engine.services.coordinator import ReconciliationCoordinator


def make_memory_engine() -> AsyncEngine:
    """In-memory SQLite shared by every session of one test."""
    return create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


async def create_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = make_memory_engine()
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


@pytest.fixture
def coordinator(session: AsyncSession) -> ReconciliationCoordinator:
    return ReconciliationCoordinator(session, max_retries=3, retry_backoff=0)


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def admin_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def make_wallet(session: AsyncSession) -> Callable[..., Awaitable[Wallet]]:
    """Insert a wallet with the given balances and commit it."""

    async def factory(
        user_id: uuid.UUID,
        available: Decimal | str = "0",
        invested: Decimal | str = "0",
    ) -> Wallet:
        wallet = Wallet(
            user_id=user_id,
            available_balance=Decimal(available),
            invested_balance=Decimal(invested),
            currency="USD",
            version=1,
        )
        session.add(wallet)
        await session.commit()
        return wallet

    return factory


@pytest.fixture
def make_asset(session: AsyncSession) -> Callable[..., Awaitable[Asset]]:
    """Insert an active asset and commit it."""

    async def factory(
        price: Decimal | str = "5",
        total_shares: int = 50,
        available_shares: int | None = None,
        status: AssetStatus = AssetStatus.ACTIVE,
        title: str = "Midnight Drive",
    ) -> Asset:
        asset = Asset(
            title=title,
            artist="The Resonants",
            price=Decimal(price),
            total_shares=total_shares,
            available_shares=total_shares if available_shares is None else available_shares,
            status=status,
            version=1,
        )
        session.add(asset)
        await session.commit()
        return asset

    return factory
