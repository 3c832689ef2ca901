"""Property-based tests for withdrawal refunds.

Failing a pending withdrawal returns exactly the held amount to available
balance, whatever deposits, buys and other withdrawals happened while it
was pending.
"""

import asyncio
import uuid
from decimal import Decimal

from hypothesis import HealthCheck, given, settings, strategies as st
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from royalty_engine.core.exceptions import InsufficientFundsError, InsufficientSharesError
from royalty_engine.db.base import Base
from royalty_engine.models.asset import Asset
from royalty_engine.models.wallet import Wallet
from royalty_engine.services.coordinator import ReconciliationCoordinator

PAYOUT = {"iban": "DE89370400440532013000"}

interleaved = st.lists(
    st.one_of(
        st.tuples(st.just("deposit"), st.integers(min_value=1, max_value=100)),
        st.tuples(st.just("withdraw"), st.integers(min_value=1, max_value=100)),
        st.tuples(st.just("buy"), st.integers(min_value=1, max_value=10)),
    ),
    max_size=8,
)


async def read_available(session, user_id: uuid.UUID) -> Decimal:
    return (
        await session.execute(
            select(Wallet.available_balance).where(Wallet.user_id == user_id)
        )
    ).scalar_one()


async def refund_after(start: int, amount: int, steps: list[tuple]) -> None:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = async_sessionmaker(engine, expire_on_commit=False)
    user_id = uuid.uuid4()

    async with maker() as session:
        session.add(Wallet(user_id=user_id, available_balance=Decimal(start),
                           invested_balance=Decimal("0"), currency="USD", version=1))
        asset = Asset(title="Live at the Hall", price=Decimal("3"), total_shares=500,
                      available_shares=500, version=1)
        session.add(asset)
        await session.commit()
        asset_id = asset.id

        coordinator = ReconciliationCoordinator(session, retry_backoff=0)
        held = await coordinator.create_withdraw(user_id, Decimal(amount), "bank", PAYOUT)
        held_id = held.id

        for action, value in steps:
            try:
                if action == "deposit":
                    tx = await coordinator.create_deposit(user_id, Decimal(value))
                    await coordinator.update_transaction_status(tx.id, "completed")
                elif action == "withdraw":
                    await coordinator.create_withdraw(user_id, Decimal(value), "bank", PAYOUT)
                else:
                    await coordinator.buy(user_id, asset_id, value)
            except (InsufficientFundsError, InsufficientSharesError):
                pass

        before = await read_available(session, user_id)
        await session.commit()

        await coordinator.update_transaction_status(held_id, "failed")

        after = await read_available(session, user_id)
        assert after - before == Decimal(amount)

    await engine.dispose()


@settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(
    start=st.integers(min_value=1, max_value=500),
    fraction=st.integers(min_value=1, max_value=100),
    steps=interleaved,
)
def test_failed_withdrawal_refunds_exact_amount(start: int, fraction: int, steps: list[tuple]) -> None:
    amount = max(1, start * fraction // 100)
    asyncio.run(refund_after(start, amount, steps))
