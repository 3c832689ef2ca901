"""Concurrency tests: parallel requests can never overdraw or double-apply.

N requests race on one wallet, holding, order or transaction from separate
sessions and connections. Withdrawals and buys never overdraw, sell orders
never reserve more than is held, and a resolution is applied exactly once.

SQLite has no row locks, so the test engine opens every transaction with
``BEGIN IMMEDIATE``, which serializes writers the way ``SELECT ... FOR
UPDATE`` does on PostgreSQL.
"""

import asyncio
import uuid
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from royalty_engine.core.exceptions import InsufficientFundsError, InsufficientHoldingsError
from royalty_engine.db.base import Base
from royalty_engine.models.asset import Asset
from royalty_engine.models.order import Order, OrderStatus, OrderType
from royalty_engine.models.portfolio import PortfolioItem
from royalty_engine.models.transaction import Transaction
from royalty_engine.models.wallet import Wallet
from royalty_engine.services.coordinator import ReconciliationCoordinator

PAYOUT = {"iban": "FR1420041010050500013M02606"}


def make_file_engine(path: Path) -> AsyncEngine:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{path}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


async def attempt(maker, operation) -> str:
    async with maker() as session:
        coordinator = ReconciliationCoordinator(session, max_retries=5, retry_backoff=0.01)
        try:
            await operation(coordinator)
        except InsufficientFundsError:
            return "rejected"
        return "ok"


@pytest.mark.asyncio
@pytest.mark.parametrize("balance, requests", [(Decimal("100"), 5), (Decimal("7"), 8), (Decimal("2.5"), 4)])
async def test_parallel_withdrawals_allow_at_most_one(tmp_path: Path, balance: Decimal, requests: int) -> None:
    engine = make_file_engine(tmp_path / "ledger.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)

    user_id = uuid.uuid4()
    async with maker() as session:
        session.add(Wallet(user_id=user_id, available_balance=balance,
                           invested_balance=Decimal("0"), currency="USD", version=1))
        await session.commit()

    amount = balance / 2 + 1
    results = await asyncio.gather(
        *(
            attempt(maker, lambda c: c.create_withdraw(user_id, amount, "bank", PAYOUT))
            for _ in range(requests)
        )
    )

    async with maker() as session:
        wallet = (await session.execute(select(Wallet))).scalar_one()
        withdrawals = (await session.execute(select(Transaction))).scalars().all()
    await engine.dispose()

    succeeded = results.count("ok")
    assert succeeded <= 1
    assert len(withdrawals) == succeeded
    assert wallet.available_balance == balance - succeeded * amount
    assert wallet.available_balance >= 0


@pytest.mark.asyncio
async def test_parallel_buys_never_overdraw(tmp_path: Path) -> None:
    engine = make_file_engine(tmp_path / "ledger.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)

    user_id = uuid.uuid4()
    async with maker() as session:
        session.add(Wallet(user_id=user_id, available_balance=Decimal("100"),
                           invested_balance=Decimal("0"), currency="USD", version=1))
        asset = Asset(title="Night Shift", price=Decimal("10"), total_shares=1000,
                      available_shares=1000, version=1)
        session.add(asset)
        await session.commit()
        asset_id = asset.id

    # Each buy costs 60 of the 100 available
    results = await asyncio.gather(
        *(attempt(maker, lambda c: c.buy(user_id, asset_id, 6)) for _ in range(6))
    )

    async with maker() as session:
        wallet = (await session.execute(select(Wallet))).scalar_one()
        asset = (await session.execute(select(Asset))).scalar_one()
    await engine.dispose()

    assert results.count("ok") == 1
    assert wallet.available_balance == Decimal("40")
    assert wallet.invested_balance == Decimal("60")
    assert asset.available_shares == 994


@pytest_asyncio.fixture
async def file_maker(tmp_path: Path):
    engine = make_file_engine(tmp_path / "ledger.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


async def in_own_session(maker, operation):
    async with maker() as session:
        coordinator = ReconciliationCoordinator(session, max_retries=5, retry_backoff=0.01)
        return await operation(coordinator)


async def holding_of(maker, user_id: uuid.UUID, quantity: int) -> tuple[uuid.UUID, uuid.UUID]:
    """Fund a wallet with 100, buy ``quantity`` shares at 5 and return (asset_id, item_id)."""
    async with maker() as session:
        session.add(Wallet(user_id=user_id, available_balance=Decimal("100"),
                           invested_balance=Decimal("0"), currency="USD", version=1))
        asset = Asset(title="Slow Burn", price=Decimal("5"), total_shares=1000,
                      available_shares=1000, version=1)
        session.add(asset)
        await session.commit()
        asset_id = asset.id

        coordinator = ReconciliationCoordinator(session, retry_backoff=0)
        _, portfolio = await coordinator.buy(user_id, asset_id, quantity)
        return asset_id, portfolio.holdings[0].item.id


@pytest.mark.asyncio
async def test_parallel_sells_never_reserve_more_than_held(file_maker) -> None:
    user_id = uuid.uuid4()
    _, item_id = await holding_of(file_maker, user_id, 10)

    results = await asyncio.gather(
        *(in_own_session(file_maker, lambda c: c.sell(user_id, item_id, 4)) for _ in range(5)),
        return_exceptions=True,
    )

    accepted = [r for r in results if isinstance(r, Order)]
    rejected = [r for r in results if isinstance(r, InsufficientHoldingsError)]
    assert len(accepted) == 2
    assert len(rejected) == 3

    async with file_maker() as session:
        pending = (
            await session.execute(
                select(func.coalesce(func.sum(Order.quantity), 0)).where(
                    Order.portfolio_item_id == item_id,
                    Order.order_type == OrderType.SELL,
                    Order.status == OrderStatus.PENDING,
                )
            )
        ).scalar_one()
        item = (await session.execute(select(PortfolioItem))).scalar_one()
    assert pending == 8
    assert pending <= item.quantity


@pytest.mark.asyncio
async def test_parallel_approvals_credit_once(file_maker) -> None:
    user_id = uuid.uuid4()
    _, item_id = await holding_of(file_maker, user_id, 10)
    order = await in_own_session(file_maker, lambda c: c.sell(user_id, item_id, 10))

    results = await asyncio.gather(
        *(in_own_session(file_maker, lambda c: c.resolve_sell(order.id, "approve")) for _ in range(5))
    )

    assert [changed for _, changed in results].count(True) == 1
    assert all(o.status == OrderStatus.COMPLETED for o, _ in results)

    async with file_maker() as session:
        wallet = (await session.execute(select(Wallet))).scalar_one()
        asset = (await session.execute(select(Asset))).scalar_one()
    assert wallet.available_balance == Decimal("100")
    assert wallet.invested_balance == Decimal("0")
    assert asset.available_shares == 1000


@pytest.mark.asyncio
async def test_parallel_failures_refund_once(file_maker) -> None:
    user_id = uuid.uuid4()
    async with file_maker() as session:
        session.add(Wallet(user_id=user_id, available_balance=Decimal("100"),
                           invested_balance=Decimal("0"), currency="USD", version=1))
        await session.commit()
    withdrawal = await in_own_session(
        file_maker, lambda c: c.create_withdraw(user_id, Decimal("60"), "bank", PAYOUT)
    )

    results = await asyncio.gather(
        *(
            in_own_session(file_maker, lambda c: c.update_transaction_status(withdrawal.id, "failed"))
            for _ in range(5)
        )
    )

    assert [changed for _, changed in results].count(True) == 1

    async with file_maker() as session:
        wallet = (await session.execute(select(Wallet))).scalar_one()
    assert wallet.available_balance == Decimal("100")
