"""Order state machine: buy execution, sell requests and sell resolution.

Buy orders execute synchronously and are created ``completed``. Sell orders
are created ``pending`` and wait for an administrator to approve or reject
them. Once resolved an order is terminal; resolving it again is a no-op that
returns the stored state, so a double-clicked approval can never credit a
wallet twice.

Pending sell orders hold their shares virtually. Nothing is written to the
portfolio item while the order waits; instead every new sell request checks::

    available_for_sell = item.quantity - sum(pending sell quantities of item)

inside the same database transaction that inserts the new order, and bumps
the item's version so two concurrent requests cannot both pass the check.

Locks are always taken in the order Wallet -> Asset -> PortfolioItem so that
concurrent buys and approvals cannot deadlock each other.

All methods expect the caller to own the database transaction (see
``ReconciliationCoordinator``). Nothing here commits.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import (
    AssetInactiveError,
    ConcurrencyError,
    ConflictError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    InsufficientSharesError,
    InvalidAmountError,
    NotFoundError,
    ValidationError,
)
from royalty_engine.core.money import ZERO, line_total, proportional_basis, to_money
from royalty_engine.db.base import utcnow
from royalty_engine.models.asset import Asset
from royalty_engine.models.order import Order, OrderStatus, OrderType, SellDecision
from royalty_engine.models.portfolio import PortfolioItem
from royalty_engine.stores.inventory import InventoryStore
from royalty_engine.stores.ledger import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class Holding:
    item: PortfolioItem
    asset: Asset


@dataclass
class Portfolio:
    """A user's holdings with their market value at last known prices."""

    user_id: uuid.UUID
    holdings: list[Holding] = field(default_factory=list)

    @property
    def total_value(self) -> Decimal:
        return to_money(sum((h.item.current_value for h in self.holdings), ZERO))


@dataclass
class OrderSummary:
    total_orders: int = 0
    buy_orders: int = 0
    sell_orders: int = 0
    completed_orders: int = 0
    pending_orders: int = 0
    rejected_orders: int = 0


@dataclass
class OrderPage:
    orders: list[Order]
    total: int
    page: int
    per_page: int
    summary: OrderSummary


class OrderService:
    """Service for buy/sell order lifecycle and its ledger side effects."""

    def __init__(self, default_currency: str = "USD") -> None:
        self.default_currency = default_currency

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def submit_buy(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        asset_id: uuid.UUID,
        quantity: int,
    ) -> Order:
        """Buy ``quantity`` shares of an asset at its current price.

        Steps:
        1. Validate quantity is positive
        2. Lock the wallet (created on first use) and the asset
        3. Check the asset is active and has enough unsold shares
        4. Check the wallet's available balance covers price x quantity
        5. Move the cost from available to invested
        6. Take the shares out of the asset's supply
        7. Add them to the user's portfolio item (weighted average cost)
        8. Record a completed buy order

        Raises:
            ValidationError: If quantity <= 0
            NotFoundError: If the asset does not exist
            AssetInactiveError: If the asset is not active
            InsufficientSharesError: If available_shares < quantity
            InsufficientFundsError: If available_balance < price x quantity
            InvalidAmountError: If price x quantity rounds to zero money
        """
        if quantity <= 0:
            raise ValidationError("Buy quantity must be greater than zero")

        ledger = LedgerStore(session)
        inventory = InventoryStore(session)

        wallet = await ledger.get_or_create_wallet(user_id, self.default_currency, lock=True)
        asset = await inventory.get_asset(asset_id, lock=True)

        if not asset.is_active:
            raise AssetInactiveError(str(asset.id))
        if asset.available_shares < quantity:
            raise InsufficientSharesError(str(asset.id), quantity, asset.available_shares)

        cost = line_total(asset.price, quantity)
        if cost <= Decimal("0"):
            raise InvalidAmountError(cost)
        if wallet.available_balance < cost:
            raise InsufficientFundsError(str(wallet.id), cost, wallet.available_balance)

        await ledger.invest(wallet, cost)
        await inventory.take_shares(asset, quantity)
        item = await inventory.add_to_holding(user_id, asset, quantity, cost)

        order = Order(
            user_id=user_id,
            asset_id=asset.id,
            portfolio_item_id=item.id,
            order_type=OrderType.BUY,
            status=OrderStatus.COMPLETED,
            quantity=quantity,
            price=asset.price,
            total=cost,
            cost_basis=cost,
            processed_at=utcnow(),
        )
        session.add(order)
        await session.flush()

        logger.info(
            "Buy %s executed: user=%s asset=%s quantity=%d price=%s total=%s",
            order.reference, user_id, asset.id, quantity, asset.price, cost,
        )
        return order

    async def submit_sell(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        portfolio_item_id: uuid.UUID,
        quantity: int,
    ) -> Order:
        """Request to sell ``quantity`` shares of a holding.

        Creates a pending order priced at the asset's current price. Wallet,
        inventory and holding are untouched until the order is approved.

        Raises:
            ValidationError: If quantity <= 0
            NotFoundError: If the item does not exist or belongs to another user
            InsufficientHoldingsError: If quantity exceeds the shares not
                already reserved by pending sell orders
        """
        if quantity <= 0:
            raise ValidationError("Sell quantity must be greater than zero")

        inventory = InventoryStore(session)

        item = await inventory.get_item(portfolio_item_id, lock=True)
        if item.user_id != user_id:
            raise NotFoundError("PortfolioItem", str(portfolio_item_id))

        reserved = await inventory.pending_sell_quantity(item.id)
        sellable = item.quantity - reserved
        if quantity > sellable:
            raise InsufficientHoldingsError(str(item.id), quantity, max(sellable, 0))

        asset = await inventory.get_asset(item.asset_id)
        await inventory.reserve_item(item)

        order = Order(
            user_id=user_id,
            asset_id=asset.id,
            portfolio_item_id=item.id,
            order_type=OrderType.SELL,
            status=OrderStatus.PENDING,
            quantity=quantity,
            price=asset.price,
            total=line_total(asset.price, quantity),
        )
        session.add(order)
        await session.flush()

        logger.info(
            "Sell %s requested: user=%s item=%s quantity=%d price=%s reserved_before=%d",
            order.reference, user_id, item.id, quantity, asset.price, reserved,
        )
        return order

    async def resolve_sell(
        self,
        session: AsyncSession,
        order_id: uuid.UUID,
        decision: SellDecision | str,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[Order, bool]:
        """Approve or reject a pending sell order.

        On approve the holding shrinks, the shares return to the asset's
        supply, the sale proceeds are credited to available balance and the
        holding's proportional cost basis leaves invested balance. The gap
        between proceeds and basis is stored on the order as realized gain.

        On reject only the order status changes; the virtual hold on the
        shares disappears with it.

        Resolving an order that is already completed or rejected returns it
        unchanged. The second element of the result is False in that case.

        Raises:
            ValidationError: If the decision is unknown or the order is a buy
            NotFoundError: If the order does not exist
            ConcurrencyError: If another request resolved the order first
        """
        try:
            decision = SellDecision(decision)
        except ValueError as exc:
            raise ValidationError(f"Unknown sell decision: {decision}") from exc

        order = await self.get_order(session, order_id, lock=True)
        if order.order_type != OrderType.SELL:
            raise ValidationError(f"Order {order.reference} is not a sell order")

        if order.status.is_terminal:
            logger.info(
                "Sell %s already %s; ignoring %s from admin=%s",
                order.reference, order.status.value, decision.value, admin_id,
            )
            return order, False

        if decision is SellDecision.REJECT:
            await self._finish(session, order, OrderStatus.REJECTED, admin_id)
            logger.info("Sell %s rejected by admin=%s", order.reference, admin_id)
            return order, True

        ledger = LedgerStore(session)
        inventory = InventoryStore(session)

        wallet = await ledger.get_wallet(order.user_id, lock=True)
        if wallet is None:
            raise ConflictError(f"No wallet for user {order.user_id} holding order {order.reference}")
        asset = await inventory.get_asset(order.asset_id, lock=True)
        item = await inventory.get_item(order.portfolio_item_id, lock=True)

        basis = proportional_basis(item.cost_basis, item.quantity, order.quantity)
        await self._finish(
            session,
            order,
            OrderStatus.COMPLETED,
            admin_id,
            cost_basis=basis,
            realized_gain=to_money(order.total - basis),
        )
        await inventory.draw_down_item(item, order.quantity, basis)
        await inventory.return_shares(asset, order.quantity)
        await ledger.divest(wallet, basis, order.total)

        logger.info(
            "Sell %s approved by admin=%s: proceeds=%s cost_basis=%s realized_gain=%s",
            order.reference, admin_id, order.total, basis, order.realized_gain,
        )
        return order, True

    async def _finish(
        self,
        session: AsyncSession,
        order: Order,
        status: OrderStatus,
        admin_id: Optional[uuid.UUID],
        cost_basis: Optional[Decimal] = None,
        realized_gain: Optional[Decimal] = None,
    ) -> None:
        """Compare-and-swap the order from pending to ``status``."""
        result = await session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == OrderStatus.PENDING)
            .values(
                status=status,
                processed_by=admin_id,
                processed_at=utcnow(),
                cost_basis=cost_basis,
                realized_gain=realized_gain,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("Order", str(order.id))
        await session.refresh(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_order(
        self,
        session: AsyncSession,
        order_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        lock: bool = False,
    ) -> Order:
        stmt = select(Order).where(Order.id == order_id)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await session.execute(stmt)
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order", str(order_id))
        return order

    async def get_portfolio(self, session: AsyncSession, user_id: uuid.UUID) -> Portfolio:
        inventory = InventoryStore(session)
        rows = await inventory.list_items(user_id)
        return Portfolio(
            user_id=user_id,
            holdings=[Holding(item=item, asset=asset) for item, asset in rows],
        )

    async def list_orders(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        order_type: Optional[OrderType] = None,
        status: Optional[OrderStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> OrderPage:
        """Page through a user's orders, newest first, with per-user totals."""
        filters = [Order.user_id == user_id]
        if order_type is not None:
            filters.append(Order.order_type == order_type)
        if status is not None:
            filters.append(Order.status == status)

        total = (
            await session.execute(select(func.count(Order.id)).where(*filters))
        ).scalar_one()
        result = await session.execute(
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return OrderPage(
            orders=list(result.scalars().all()),
            total=total,
            page=page,
            per_page=per_page,
            summary=await self.summarize_orders(session, user_id),
        )

    async def summarize_orders(self, session: AsyncSession, user_id: uuid.UUID) -> OrderSummary:
        result = await session.execute(
            select(Order.order_type, Order.status, func.count(Order.id))
            .where(Order.user_id == user_id)
            .group_by(Order.order_type, Order.status)
        )
        summary = OrderSummary()
        for order_type, status, count in result.all():
            summary.total_orders += count
            if order_type == OrderType.BUY:
                summary.buy_orders += count
            else:
                summary.sell_orders += count
            if status == OrderStatus.COMPLETED:
                summary.completed_orders += count
            elif status == OrderStatus.PENDING:
                summary.pending_orders += count
            else:
                summary.rejected_orders += count
        return summary

    async def list_pending_sell_orders(self, session: AsyncSession) -> list[Order]:
        """Sell orders awaiting an administrator, oldest first."""
        result = await session.execute(
            select(Order)
            .where(Order.order_type == OrderType.SELL, Order.status == OrderStatus.PENDING)
            .order_by(Order.created_at, Order.id)
        )
        return list(result.scalars().all())
