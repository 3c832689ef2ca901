"""Inventory store: asset share supply and per-user portfolio items.

Share counts move only through conditional UPDATE statements that keep
``0 <= available_shares <= total_shares`` inside the WHERE clause. Portfolio
items are guarded by a ``version`` compare-and-swap: a write that finds a
different version than the one it read raises ConcurrencyError and the whole
operation is retried.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import (
    ConcurrencyError,
    ConflictError,
    InsufficientSharesError,
    NotFoundError,
)
from royalty_engine.core.money import to_money, weighted_average_price
from royalty_engine.models.asset import Asset
from royalty_engine.models.order import Order, OrderStatus, OrderType
from royalty_engine.models.portfolio import PortfolioItem


class InventoryStore:
    """Row-level access to assets and portfolio items within one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def get_asset(self, asset_id: uuid.UUID, lock: bool = False) -> Asset:
        stmt = select(Asset).where(Asset.id == asset_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        asset = result.scalar_one_or_none()
        if asset is None:
            raise NotFoundError("Asset", str(asset_id))
        return asset

    async def take_shares(self, asset: Asset, quantity: int) -> Asset:
        """Remove ``quantity`` shares from the asset's unsold supply."""
        result = await self.session.execute(
            update(Asset)
            .where(Asset.id == asset.id, Asset.available_shares >= quantity)
            .values(
                available_shares=Asset.available_shares - quantity,
                version=Asset.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(asset)
            raise InsufficientSharesError(str(asset.id), quantity, asset.available_shares)
        await self.session.refresh(asset)
        return asset

    async def return_shares(self, asset: Asset, quantity: int) -> Asset:
        """Put ``quantity`` sold shares back into the unsold supply."""
        result = await self.session.execute(
            update(Asset)
            .where(
                Asset.id == asset.id,
                Asset.available_shares + quantity <= Asset.total_shares,
            )
            .values(
                available_shares=Asset.available_shares + quantity,
                version=Asset.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(asset)
            raise ConflictError(
                f"Returning {quantity} shares to asset {asset.id} would exceed "
                f"total_shares {asset.total_shares} "
                f"(available {asset.available_shares})"
            )
        await self.session.refresh(asset)
        return asset

    async def reprice_holdings(self, asset_id: uuid.UUID, price: Decimal) -> int:
        """Set ``current_price`` on every holding of the asset; returns rows touched."""
        result = await self.session.execute(
            update(PortfolioItem)
            .where(PortfolioItem.asset_id == asset_id)
            .values(current_price=price)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ------------------------------------------------------------------
    # Portfolio items
    # ------------------------------------------------------------------

    async def get_item(self, item_id: uuid.UUID, lock: bool = False) -> PortfolioItem:
        stmt = select(PortfolioItem).where(PortfolioItem.id == item_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError("PortfolioItem", str(item_id))
        return item

    async def find_item(
        self,
        user_id: uuid.UUID,
        asset_id: uuid.UUID,
        lock: bool = False,
    ) -> Optional[PortfolioItem]:
        stmt = select(PortfolioItem).where(
            PortfolioItem.user_id == user_id,
            PortfolioItem.asset_id == asset_id,
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_to_holding(
        self,
        user_id: uuid.UUID,
        asset: Asset,
        quantity: int,
        cost: Decimal,
    ) -> PortfolioItem:
        """Upsert the user's holding after a buy of ``quantity`` at ``asset.price``.

        ``purchase_price`` becomes the weighted average of the old holding and
        the new shares; ``cost_basis`` accumulates the exact amount invested.
        """
        item = await self.find_item(user_id, asset.id, lock=True)
        if item is None:
            item = PortfolioItem(
                user_id=user_id,
                asset_id=asset.id,
                quantity=quantity,
                purchase_price=asset.price,
                cost_basis=cost,
                current_price=asset.price,
                version=1,
            )
            self.session.add(item)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise ConcurrencyError("PortfolioItem", f"{user_id}/{asset.id}") from exc
            return item

        result = await self.session.execute(
            update(PortfolioItem)
            .where(PortfolioItem.id == item.id, PortfolioItem.version == item.version)
            .values(
                quantity=item.quantity + quantity,
                purchase_price=weighted_average_price(
                    item.quantity, item.purchase_price, quantity, asset.price
                ),
                cost_basis=to_money(item.cost_basis + cost),
                current_price=asset.price,
                version=item.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("PortfolioItem", str(item.id))
        await self.session.refresh(item)
        return item

    async def reserve_item(self, item: PortfolioItem) -> PortfolioItem:
        """Bump the item's version so concurrent sell submissions serialize."""
        result = await self.session.execute(
            update(PortfolioItem)
            .where(PortfolioItem.id == item.id, PortfolioItem.version == item.version)
            .values(version=item.version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("PortfolioItem", str(item.id))
        await self.session.refresh(item)
        return item

    async def draw_down_item(
        self,
        item: PortfolioItem,
        quantity: int,
        cost_basis: Decimal,
    ) -> PortfolioItem:
        """Remove ``quantity`` shares and their ``cost_basis`` from the holding.

        ``purchase_price`` (the average) is unchanged by a sale. The row is
        kept at quantity 0 after a full sell.
        """
        if item.quantity < quantity:
            raise ConflictError(
                f"PortfolioItem {item.id} holds {item.quantity} shares, "
                f"cannot release {quantity}"
            )
        result = await self.session.execute(
            update(PortfolioItem)
            .where(
                PortfolioItem.id == item.id,
                PortfolioItem.version == item.version,
                PortfolioItem.quantity >= quantity,
            )
            .values(
                quantity=item.quantity - quantity,
                cost_basis=to_money(item.cost_basis - cost_basis),
                version=item.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("PortfolioItem", str(item.id))
        await self.session.refresh(item)
        return item

    async def pending_sell_quantity(self, item_id: uuid.UUID) -> int:
        """Shares of the item already promised to pending sell orders."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(Order.quantity), 0)).where(
                Order.portfolio_item_id == item_id,
                Order.order_type == OrderType.SELL,
                Order.status == OrderStatus.PENDING,
            )
        )
        return int(result.scalar_one())

    async def list_items(self, user_id: uuid.UUID) -> list[tuple[PortfolioItem, Asset]]:
        result = await self.session.execute(
            select(PortfolioItem, Asset)
            .join(Asset, Asset.id == PortfolioItem.asset_id)
            .where(PortfolioItem.user_id == user_id)
            .order_by(PortfolioItem.created_at)
        )
        return [(item, asset) for item, asset in result.all()]

    async def list_holders(self, asset_id: uuid.UUID, lock: bool = False) -> list[PortfolioItem]:
        """Holdings of the asset with at least one share, in id order."""
        stmt = (
            select(PortfolioItem)
            .where(PortfolioItem.asset_id == asset_id, PortfolioItem.quantity > 0)
            .order_by(PortfolioItem.id)
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
