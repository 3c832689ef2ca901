"""Royalty store: per-holder earnings allocated from a distributed pool.

An earning leaves ``pending`` through a compare-and-swap on ``status``, the
same way transactions are resolved, so two processing runs racing on one
earning credit the holder once.

Transaction ownership: the caller (the reconciliation coordinator) starts and
commits the database transaction.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import ConcurrencyError, NotFoundError
from royalty_engine.db.base import utcnow
from royalty_engine.models.portfolio import PortfolioItem
from royalty_engine.models.royalty import RoyaltyEarning, RoyaltyStatus, RoyaltyType
from royalty_engine.models.wallet import Wallet


class RoyaltyStore:
    """Row-level access to royalty earnings within one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_earning(self, earning_id: uuid.UUID, lock: bool = False) -> RoyaltyEarning:
        stmt = select(RoyaltyEarning).where(RoyaltyEarning.id == earning_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        earning = result.scalar_one_or_none()
        if earning is None:
            raise NotFoundError("RoyaltyEarning", str(earning_id))
        return earning

    async def has_distribution(
        self,
        asset_id: uuid.UUID,
        period: str,
        royalty_type: RoyaltyType,
    ) -> bool:
        """True if a non-cancelled earning already exists for this pool."""
        result = await self.session.execute(
            select(RoyaltyEarning.id)
            .where(
                RoyaltyEarning.asset_id == asset_id,
                RoyaltyEarning.period == period,
                RoyaltyEarning.royalty_type == royalty_type,
                RoyaltyEarning.status != RoyaltyStatus.CANCELLED,
            )
            .limit(1)
        )
        return result.first() is not None

    async def add_earning(
        self,
        item: PortfolioItem,
        wallet: Wallet,
        amount: Decimal,
        royalty_rate: Decimal,
        period: str,
        royalty_type: RoyaltyType,
        description: Optional[str] = None,
    ) -> RoyaltyEarning:
        earning = RoyaltyEarning(
            user_id=item.user_id,
            wallet_id=wallet.id,
            asset_id=item.asset_id,
            portfolio_item_id=item.id,
            shares=item.quantity,
            amount=amount,
            royalty_rate=royalty_rate,
            period=period,
            royalty_type=royalty_type,
            description=description,
            status=RoyaltyStatus.PENDING,
        )
        self.session.add(earning)
        await self.session.flush()
        return earning

    async def pending_earnings(
        self,
        earning_ids: Optional[list[uuid.UUID]] = None,
        asset_id: Optional[uuid.UUID] = None,
        period: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> list[RoyaltyEarning]:
        """Pending earnings matching every given filter, in id order."""
        conditions = [RoyaltyEarning.status == RoyaltyStatus.PENDING]
        if earning_ids is not None:
            conditions.append(RoyaltyEarning.id.in_(earning_ids))
        if asset_id is not None:
            conditions.append(RoyaltyEarning.asset_id == asset_id)
        if period is not None:
            conditions.append(RoyaltyEarning.period == period)
        if user_id is not None:
            conditions.append(RoyaltyEarning.user_id == user_id)

        result = await self.session.execute(
            select(RoyaltyEarning)
            .where(*conditions)
            .order_by(RoyaltyEarning.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def settle(
        self,
        earning: RoyaltyEarning,
        status: RoyaltyStatus,
        processed_by: Optional[uuid.UUID],
    ) -> RoyaltyEarning:
        """Move a pending earning to ``status`` exactly once.

        Raises ConcurrencyError if another request settled it first.
        """
        result = await self.session.execute(
            update(RoyaltyEarning)
            .where(
                RoyaltyEarning.id == earning.id,
                RoyaltyEarning.status == RoyaltyStatus.PENDING,
            )
            .values(status=status, processed_by=processed_by, processed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("RoyaltyEarning", str(earning.id))
        await self.session.refresh(earning)
        return earning
