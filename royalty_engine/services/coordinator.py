"""Reconciliation coordinator: one database transaction per business action.

Each action runs inside ``async with session.begin()``, so every ledger,
inventory and status write of the action commits together or not at all.
A ``ConcurrencyError`` (a compare-and-swap that lost a race) rolls the
attempt back and retries the whole action with exponential backoff; any
other exception rolls back and propagates immediately.
"""

import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import ConcurrencyError
from royalty_engine.models.order import Order, SellDecision
from royalty_engine.models.royalty import RoyaltyEarning, RoyaltyType
from royalty_engine.models.transaction import Transaction, TransactionMethod, TransactionStatus
from royalty_engine.services.order_service import OrderService, Portfolio
from royalty_engine.services.royalty_service import (
    RoyaltyDistribution,
    RoyaltyProcessing,
    RoyaltyService,
)
from royalty_engine.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[AsyncSession], Awaitable[T]]


class ReconciliationCoordinator:
    """Runs order, transaction and royalty operations atomically with conflict retry."""

    def __init__(
        self,
        session: AsyncSession,
        max_retries: int = 3,
        retry_backoff: float = 0.05,
        order_service: Optional[OrderService] = None,
        transaction_service: Optional[TransactionService] = None,
        royalty_service: Optional[RoyaltyService] = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.session = session
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.orders = order_service or OrderService()
        self.transactions = transaction_service or TransactionService()
        self.royalties = royalty_service or RoyaltyService()

    async def run(self, operation: Operation[T]) -> T:
        """Run ``operation(session)`` in its own transaction, retrying conflicts."""
        if self.session.in_transaction():
            # Close the implicit transaction opened by earlier reads
            await self.session.commit()

        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session.begin():
                    return await operation(self.session)
            except ConcurrencyError as exc:
                if attempt >= self.max_retries:
                    logger.warning(
                        "Giving up after %d attempts: %s", attempt, exc.message
                    )
                    raise
                delay = self.retry_backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Conflict on attempt %d/%d, retrying in %.3fs: %s",
                    attempt, self.max_retries, delay, exc.message,
                )
                # Drop identity-map state read under the rolled back attempt
                self.session.expunge_all()
                await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def buy(self, user_id: uuid.UUID, asset_id: uuid.UUID, quantity: int) -> tuple[Order, Portfolio]:
        async def operation(session: AsyncSession) -> tuple[Order, Portfolio]:
            order = await self.orders.submit_buy(session, user_id, asset_id, quantity)
            portfolio = await self.orders.get_portfolio(session, user_id)
            return order, portfolio

        return await self.run(operation)

    async def sell(self, user_id: uuid.UUID, portfolio_item_id: uuid.UUID, quantity: int) -> Order:
        return await self.run(
            lambda session: self.orders.submit_sell(session, user_id, portfolio_item_id, quantity)
        )

    async def resolve_sell(
        self,
        order_id: uuid.UUID,
        decision: SellDecision | str,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[Order, bool]:
        return await self.run(
            lambda session: self.orders.resolve_sell(session, order_id, decision, admin_id)
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def create_deposit(
        self,
        user_id: uuid.UUID,
        amount: Decimal,
        network: Optional[str] = None,
        proof_url: Optional[str] = None,
    ) -> Transaction:
        return await self.run(
            lambda session: self.transactions.create_deposit(
                session, user_id, amount, network, proof_url
            )
        )

    async def create_withdraw(
        self,
        user_id: uuid.UUID,
        amount: Decimal,
        method: TransactionMethod | str,
        details: Optional[dict[str, Any]] = None,
        network: Optional[str] = None,
    ) -> Transaction:
        return await self.run(
            lambda session: self.transactions.create_withdraw(
                session, user_id, amount, method, details, network
            )
        )

    async def update_transaction_status(
        self,
        transaction_id: uuid.UUID,
        status: TransactionStatus | str,
        admin_notes: Optional[str] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[Transaction, bool]:
        return await self.run(
            lambda session: self.transactions.update_transaction_status(
                session, transaction_id, status, admin_notes, admin_id
            )
        )

    async def attach_proof(
        self,
        transaction_id: uuid.UUID,
        user_id: uuid.UUID,
        proof_url: str,
    ) -> Transaction:
        return await self.run(
            lambda session: self.transactions.attach_proof(
                session, transaction_id, user_id, proof_url
            )
        )

    async def delete_proof(
        self,
        transaction_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Transaction:
        return await self.run(
            lambda session: self.transactions.delete_proof(session, transaction_id, user_id)
        )

    # ------------------------------------------------------------------
    # Royalties
    # ------------------------------------------------------------------

    async def distribute_royalties(
        self,
        asset_id: uuid.UUID,
        total_amount: Decimal,
        period: str,
        royalty_type: RoyaltyType | str,
        royalty_rate: Decimal = Decimal("1"),
        description: Optional[str] = None,
        auto_process: bool = False,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[RoyaltyDistribution, Optional[RoyaltyProcessing]]:
        """Distribute a pool, then optionally credit it in a second transaction.

        Crediting locks wallets, which must come before the asset lock taken by
        distribution, so the two steps commit separately. If crediting fails the
        earnings stay pending and can be processed later.
        """
        distribution = await self.run(
            lambda session: self.royalties.distribute_royalties(
                session, asset_id, total_amount, period, royalty_type, royalty_rate, description
            )
        )
        if not auto_process:
            return distribution, None

        earning_ids = [e.id for e in distribution.earnings]
        processing = await self.process_pending_royalties(earning_ids=earning_ids, admin_id=admin_id)
        return distribution, processing

    async def process_pending_royalties(
        self,
        earning_ids: Optional[list[uuid.UUID]] = None,
        asset_id: Optional[uuid.UUID] = None,
        period: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> RoyaltyProcessing:
        return await self.run(
            lambda session: self.royalties.process_pending_royalties(
                session, earning_ids, asset_id, period, user_id, admin_id
            )
        )

    async def cancel_royalty(
        self,
        earning_id: uuid.UUID,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[RoyaltyEarning, bool]:
        return await self.run(
            lambda session: self.royalties.cancel_royalty(session, earning_id, admin_id)
        )
