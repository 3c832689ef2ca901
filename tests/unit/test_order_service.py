"""Unit tests for the order state machine.

Covers buy execution, sell requests with virtual holds on pending shares,
sell approval and rejection, and the preconditions that reject an order
before anything is written.
"""

import uuid
from decimal import Decimal

import pytest

from royalty_engine.core.exceptions import (
    AssetInactiveError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    InsufficientSharesError,
    InvalidAmountError,
    NotFoundError,
    ValidationError,
)
from royalty_engine.models.asset import AssetStatus
from royalty_engine.models.order import OrderStatus, OrderType, SellDecision
from royalty_engine.services.asset_service import AssetService


class TestBuy:
    """Tests for submit_buy."""

    @pytest.mark.asyncio
    async def test_buy_moves_cost_into_invested_and_fills_holding(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        """Wallet 100, buy 10 @ 5 -> available 50, invested 50, 40 shares left."""
        wallet = await make_wallet(user_id, available="100")
        asset = await make_asset(price="5", total_shares=50)

        order, portfolio = await coordinator.buy(user_id, asset.id, 10)

        await session.refresh(wallet)
        await session.refresh(asset)
        assert wallet.available_balance == Decimal("50")
        assert wallet.invested_balance == Decimal("50")
        assert asset.available_shares == 40

        assert order.order_type == OrderType.BUY
        assert order.status == OrderStatus.COMPLETED
        assert order.total == Decimal("50")
        assert order.reference.startswith("ORD-")

        assert len(portfolio.holdings) == 1
        item = portfolio.holdings[0].item
        assert item.quantity == 10
        assert item.purchase_price == Decimal("5")
        assert item.cost_basis == Decimal("50")
        assert portfolio.total_value == Decimal("50")

    @pytest.mark.asyncio
    async def test_repeated_buys_use_weighted_average_price(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        await make_wallet(user_id, available="1000")
        asset = await make_asset(price="5", total_shares=100)

        await coordinator.buy(user_id, asset.id, 10)
        await coordinator.run(lambda s: AssetService().update_price(s, asset.id, Decimal("7")))
        _, portfolio = await coordinator.buy(user_id, asset.id, 10)

        item = portfolio.holdings[0].item
        assert item.quantity == 20
        assert item.purchase_price == Decimal("6")
        assert item.cost_basis == Decimal("120")
        assert item.current_price == Decimal("7")

    @pytest.mark.asyncio
    async def test_buy_without_enough_funds_changes_nothing(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        wallet = await make_wallet(user_id, available="49.9999")
        asset = await make_asset(price="5", total_shares=50)

        with pytest.raises(InsufficientFundsError):
            await coordinator.buy(user_id, asset.id, 10)

        await session.refresh(wallet)
        await session.refresh(asset)
        assert wallet.available_balance == Decimal("49.9999")
        assert wallet.invested_balance == Decimal("0")
        assert asset.available_shares == 50

    @pytest.mark.asyncio
    async def test_buy_more_than_available_shares(
        self, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        await make_wallet(user_id, available="1000")
        asset = await make_asset(price="5", total_shares=50, available_shares=3)

        with pytest.raises(InsufficientSharesError) as exc_info:
            await coordinator.buy(user_id, asset.id, 4)

        assert exc_info.value.available == 3
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_buy_inactive_asset(self, coordinator, make_wallet, make_asset, user_id) -> None:
        await make_wallet(user_id, available="1000")
        asset = await make_asset(status=AssetStatus.INACTIVE)

        with pytest.raises(AssetInactiveError):
            await coordinator.buy(user_id, asset.id, 1)

    @pytest.mark.asyncio
    async def test_buy_costing_less_than_a_ledger_unit_is_rejected(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        """0.00004 x 1 rounds to 0.0000 and must not hand out free shares."""
        wallet = await make_wallet(user_id, available="0")
        asset = await make_asset(price="0.00004", total_shares=50)

        with pytest.raises(InvalidAmountError):
            await coordinator.buy(user_id, asset.id, 1)

        await session.refresh(wallet)
        await session.refresh(asset)
        assert asset.available_shares == 50
        assert wallet.invested_balance == Decimal("0")
        assert (await coordinator.orders.get_portfolio(session, user_id)).holdings == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -3])
    async def test_buy_non_positive_quantity(self, coordinator, make_asset, user_id, quantity) -> None:
        asset = await make_asset()

        with pytest.raises(ValidationError):
            await coordinator.buy(user_id, asset.id, quantity)

    @pytest.mark.asyncio
    async def test_buy_unknown_asset(self, coordinator, make_wallet, user_id) -> None:
        await make_wallet(user_id, available="100")

        with pytest.raises(NotFoundError):
            await coordinator.buy(user_id, uuid.uuid4(), 1)


class TestSell:
    """Tests for submit_sell and resolve_sell."""

    async def _holding(self, coordinator, make_wallet, make_asset, user_id, quantity=10):
        wallet = await make_wallet(user_id, available="100")
        asset = await make_asset(price="5", total_shares=50)
        _, portfolio = await coordinator.buy(user_id, asset.id, quantity)
        return wallet, asset, portfolio.holdings[0].item

    @pytest.mark.asyncio
    async def test_sell_request_is_pending_and_moves_nothing(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        wallet, asset, item = await self._holding(coordinator, make_wallet, make_asset, user_id)

        order = await coordinator.sell(user_id, item.id, 10)

        assert order.status == OrderStatus.PENDING
        assert order.order_type == OrderType.SELL
        assert order.total == Decimal("50")
        for obj in (wallet, asset, item):
            await session.refresh(obj)
        assert wallet.available_balance == Decimal("50")
        assert wallet.invested_balance == Decimal("50")
        assert asset.available_shares == 40
        assert item.quantity == 10

    @pytest.mark.asyncio
    async def test_approve_full_sell_restores_wallet_and_inventory(
        self, session, coordinator, make_wallet, make_asset, user_id, admin_id
    ) -> None:
        """From 10 shares held at 5, approve a sell of 10 -> available 100, invested 0."""
        wallet, asset, item = await self._holding(coordinator, make_wallet, make_asset, user_id)
        order = await coordinator.sell(user_id, item.id, 10)

        resolved, _ = await coordinator.resolve_sell(order.id, SellDecision.APPROVE, admin_id)

        assert resolved.status == OrderStatus.COMPLETED
        assert resolved.processed_by == admin_id
        assert resolved.cost_basis == Decimal("50")
        assert resolved.realized_gain == Decimal("0")
        for obj in (wallet, asset, item):
            await session.refresh(obj)
        assert wallet.available_balance == Decimal("100")
        assert wallet.invested_balance == Decimal("0")
        assert asset.available_shares == 50
        assert item.quantity == 0
        assert item.cost_basis == Decimal("0")

    @pytest.mark.asyncio
    async def test_approve_at_higher_price_records_realized_gain(
        self, session, coordinator, make_wallet, make_asset, user_id, admin_id
    ) -> None:
        wallet, asset, item = await self._holding(coordinator, make_wallet, make_asset, user_id)
        await coordinator.run(lambda s: AssetService().update_price(s, asset.id, Decimal("8")))

        order = await coordinator.sell(user_id, item.id, 4)
        resolved, _ = await coordinator.resolve_sell(order.id, "approve", admin_id)

        assert resolved.total == Decimal("32")
        assert resolved.cost_basis == Decimal("20")
        assert resolved.realized_gain == Decimal("12")
        await session.refresh(wallet)
        assert wallet.available_balance == Decimal("82")
        assert wallet.invested_balance == Decimal("30")

    @pytest.mark.asyncio
    async def test_reject_leaves_ledger_untouched_and_frees_shares(
        self, session, coordinator, make_wallet, make_asset, user_id, admin_id
    ) -> None:
        wallet, asset, item = await self._holding(coordinator, make_wallet, make_asset, user_id)
        order = await coordinator.sell(user_id, item.id, 10)

        resolved, _ = await coordinator.resolve_sell(order.id, SellDecision.REJECT, admin_id)

        assert resolved.status == OrderStatus.REJECTED
        assert resolved.cost_basis is None
        await session.refresh(wallet)
        assert wallet.available_balance == Decimal("50")
        assert wallet.invested_balance == Decimal("50")

        # The virtual hold is gone, so the full position can be offered again
        again = await coordinator.sell(user_id, item.id, 10)
        assert again.status == OrderStatus.PENDING

    @pytest.mark.asyncio
    async def test_pending_sells_reserve_shares(
        self, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        _, _, item = await self._holding(coordinator, make_wallet, make_asset, user_id)
        item_id = item.id
        await coordinator.sell(user_id, item_id, 6)

        with pytest.raises(InsufficientHoldingsError) as exc_info:
            await coordinator.sell(user_id, item_id, 5)
        assert exc_info.value.available == 4

        order = await coordinator.sell(user_id, item_id, 4)
        assert order.quantity == 4

    @pytest.mark.asyncio
    async def test_cannot_sell_another_users_holding(
        self, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        _, _, item = await self._holding(coordinator, make_wallet, make_asset, user_id)

        with pytest.raises(NotFoundError):
            await coordinator.sell(uuid.uuid4(), item.id, 1)

    @pytest.mark.asyncio
    async def test_resolving_twice_is_a_no_op(
        self, session, coordinator, make_wallet, make_asset, user_id, admin_id
    ) -> None:
        wallet, _, item = await self._holding(coordinator, make_wallet, make_asset, user_id)
        order = await coordinator.sell(user_id, item.id, 5)

        first, first_changed = await coordinator.resolve_sell(order.id, SellDecision.APPROVE, admin_id)
        second, second_changed = await coordinator.resolve_sell(order.id, SellDecision.APPROVE, admin_id)
        third, third_changed = await coordinator.resolve_sell(order.id, SellDecision.REJECT, admin_id)

        assert first.status == second.status == third.status == OrderStatus.COMPLETED
        assert (first_changed, second_changed, third_changed) == (True, False, False)
        await session.refresh(wallet)
        assert wallet.available_balance == Decimal("75")
        assert wallet.invested_balance == Decimal("25")

    @pytest.mark.asyncio
    async def test_resolving_a_buy_order_is_rejected(
        self, make_wallet, make_asset, coordinator, user_id
    ) -> None:
        await make_wallet(user_id, available="100")
        asset = await make_asset()
        order, _ = await coordinator.buy(user_id, asset.id, 1)

        with pytest.raises(ValidationError):
            await coordinator.resolve_sell(order.id, SellDecision.APPROVE)

    @pytest.mark.asyncio
    async def test_unknown_decision(self, coordinator) -> None:
        with pytest.raises(ValidationError):
            await coordinator.resolve_sell(uuid.uuid4(), "maybe")


class TestOrderQueries:
    """Tests for order listing, summaries and the pending queue."""

    @pytest.mark.asyncio
    async def test_list_orders_pages_and_summarizes(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        await make_wallet(user_id, available="1000")
        asset = await make_asset(price="5", total_shares=100)
        for _ in range(3):
            _, portfolio = await coordinator.buy(user_id, asset.id, 2)
        item = portfolio.holdings[0].item
        await coordinator.sell(user_id, item.id, 1)

        page = await coordinator.orders.list_orders(session, user_id, page=1, per_page=2)

        assert page.total == 4
        assert len(page.orders) == 2
        assert page.summary.total_orders == 4
        assert page.summary.buy_orders == 3
        assert page.summary.sell_orders == 1
        assert page.summary.pending_orders == 1
        assert page.summary.completed_orders == 3

        sells = await coordinator.orders.list_orders(session, user_id, order_type=OrderType.SELL)
        assert [o.order_type for o in sells.orders] == [OrderType.SELL]

    @pytest.mark.asyncio
    async def test_pending_queue_only_holds_pending_sells(
        self, session, coordinator, make_wallet, make_asset, user_id, admin_id
    ) -> None:
        await make_wallet(user_id, available="1000")
        asset = await make_asset(price="5", total_shares=100)
        _, portfolio = await coordinator.buy(user_id, asset.id, 10)
        item = portfolio.holdings[0].item
        keep = await coordinator.sell(user_id, item.id, 2)
        done = await coordinator.sell(user_id, item.id, 3)
        await coordinator.resolve_sell(done.id, SellDecision.REJECT, admin_id)

        pending = await coordinator.orders.list_pending_sell_orders(session)

        assert [o.id for o in pending] == [keep.id]

    @pytest.mark.asyncio
    async def test_get_order_is_scoped_to_owner(
        self, session, coordinator, make_wallet, make_asset, user_id
    ) -> None:
        await make_wallet(user_id, available="100")
        asset = await make_asset()
        order, _ = await coordinator.buy(user_id, asset.id, 1)

        found = await coordinator.orders.get_order(session, order.id, user_id=user_id)
        assert found.id == order.id
        with pytest.raises(NotFoundError):
            await coordinator.orders.get_order(session, order.id, user_id=uuid.uuid4())
