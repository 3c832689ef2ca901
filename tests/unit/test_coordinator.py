"""Unit tests for ReconciliationCoordinator transaction ownership and retry."""

import logging
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from royalty_engine.core.exceptions import ConcurrencyError, ValidationError
from royalty_engine.models.wallet import Wallet
from royalty_engine.services.coordinator import ReconciliationCoordinator


class FlakyOperation:
    """Raises ConcurrencyError for the first ``failures`` calls."""

    def __init__(self, failures: int, result: str = "done") -> None:
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self, session) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConcurrencyError("Wallet", "w-1")
        return self.result


async def count_wallets(session) -> int:
    return (await session.execute(select(func.count(Wallet.id)))).scalar_one()


class TestRetry:
    """Tests for conflict retry with backoff."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self, session, caplog) -> None:
        coordinator = ReconciliationCoordinator(session, max_retries=3, retry_backoff=0)
        operation = FlakyOperation(failures=2)

        with caplog.at_level(logging.WARNING, logger="royalty_engine"):
            result = await coordinator.run(operation)

        assert result == "done"
        assert operation.calls == 3
        assert sum("Conflict on attempt" in r.message for r in caplog.records) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, session) -> None:
        coordinator = ReconciliationCoordinator(session, max_retries=3, retry_backoff=0)
        operation = FlakyOperation(failures=10)

        with pytest.raises(ConcurrencyError):
            await coordinator.run(operation)

        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, session) -> None:
        coordinator = ReconciliationCoordinator(session, max_retries=5, retry_backoff=0)
        calls = []

        async def operation(session):
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await coordinator.run(operation)

        assert len(calls) == 1

    def test_max_retries_must_be_positive(self, session) -> None:
        with pytest.raises(ValueError):
            ReconciliationCoordinator(session, max_retries=0)


class TestAtomicity:
    """Tests for commit on success and rollback on failure."""

    @pytest.mark.asyncio
    async def test_failed_operation_rolls_back_all_writes(self, session) -> None:
        coordinator = ReconciliationCoordinator(session, retry_backoff=0)

        async def operation(session):
            session.add(Wallet(user_id=uuid.uuid4(), available_balance=Decimal("10"),
                               invested_balance=Decimal("0"), currency="USD", version=1))
            await session.flush()
            raise ValidationError("abort after write")

        with pytest.raises(ValidationError):
            await coordinator.run(operation)

        assert await count_wallets(session) == 0

    @pytest.mark.asyncio
    async def test_successful_operation_commits(self, session, session_maker) -> None:
        coordinator = ReconciliationCoordinator(session, retry_backoff=0)
        user_id = uuid.uuid4()

        await coordinator.run(lambda s: coordinator.transactions.get_wallet(s, user_id))

        async with session_maker() as other:
            assert await count_wallets(other) == 1

    @pytest.mark.asyncio
    async def test_runs_after_earlier_reads_on_the_session(self, session, coordinator, user_id) -> None:
        assert await count_wallets(session) == 0
        assert session.in_transaction()

        deposit = await coordinator.create_deposit(user_id, Decimal("1"))

        assert deposit.amount == Decimal("1")
