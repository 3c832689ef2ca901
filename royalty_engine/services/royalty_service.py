"""Royalty distribution: split a pool across holders, then credit their wallets.

Distribution and crediting are two separate steps:

1. ``distribute_royalties`` allocates a pool to every current holder of an
   asset, pro rata by shares held, as ``pending`` earnings. No wallet moves.
2. ``process_pending_royalties`` credits pending earnings to available
   balance, each exactly once.

Allocation::

    pool            = to_money(total_amount * royalty_rate)
    holder_amount   = floor_money(pool * holder_quantity / sum(quantities))
    undistributed   = pool - sum(holder_amount)

Every allocation rounds down, so the earnings of one distribution never add
up to more than the pool. Holders whose share rounds to zero get no earning.

Locks: distribution locks the asset and then its holdings (Asset ->
PortfolioItem); processing locks only wallets, in id order. Neither takes a
lock out of the Wallet -> Asset -> PortfolioItem order used by orders.

All methods expect the caller to own the database transaction (see
``ReconciliationCoordinator``). Nothing here commits.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import (
    ConflictError,
    InvalidAmountError,
    NotFoundError,
    ValidationError,
)
from royalty_engine.core.money import ZERO, floor_money, to_money
from royalty_engine.models.asset import Asset
from royalty_engine.models.royalty import RoyaltyEarning, RoyaltyStatus, RoyaltyType
from royalty_engine.stores.inventory import InventoryStore
from royalty_engine.stores.ledger import LedgerStore
from royalty_engine.stores.royalties import RoyaltyStore

logger = logging.getLogger(__name__)

RATE_PLACES = Decimal("0.000001")
MAX_PERIOD_LENGTH = 20
RECENT_EARNINGS = 5


@dataclass
class RoyaltyDistribution:
    asset_id: uuid.UUID
    period: str
    royalty_type: RoyaltyType
    total_royalty_pool: Decimal
    total_distributed: Decimal
    investors_count: int
    earnings: list[RoyaltyEarning] = field(default_factory=list)

    @property
    def undistributed(self) -> Decimal:
        return to_money(self.total_royalty_pool - self.total_distributed)


@dataclass
class RoyaltyProcessing:
    processed_count: int = 0
    total_amount: Decimal = ZERO
    skipped_count: int = 0
    earnings: list[RoyaltyEarning] = field(default_factory=list)


@dataclass
class RoyaltyFilters:
    user_id: Optional[uuid.UUID] = None
    asset_id: Optional[uuid.UUID] = None
    status: Optional[RoyaltyStatus] = None
    period: Optional[str] = None
    royalty_type: Optional[RoyaltyType] = None
    page: int = 1
    per_page: int = 20


@dataclass
class RoyaltyStatistics:
    total_royalties: Decimal = ZERO
    pending_royalties: Decimal = ZERO
    processed_royalties: Decimal = ZERO
    cancelled_royalties: Decimal = ZERO
    total_earnings_count: int = 0
    cancelled_count: int = 0

    @property
    def average_earning(self) -> Decimal:
        """Mean of pending and processed earnings; cancelled ones are left out."""
        counted = self.total_earnings_count - self.cancelled_count
        if counted == 0:
            return ZERO
        return to_money(self.total_royalties / counted)


@dataclass
class RoyaltyPage:
    royalties: list[RoyaltyEarning]
    total: int
    page: int
    per_page: int
    statistics: RoyaltyStatistics


@dataclass
class AssetEarnings:
    asset_id: uuid.UUID
    title: str
    artist: Optional[str]
    total_earnings: Decimal


@dataclass
class RoyaltySummary:
    """A holder's royalty income: credited, still pending, and per asset."""

    total_earned: Decimal = ZERO
    pending_earnings: Decimal = ZERO
    total_earnings_count: int = 0
    earnings_by_asset: list[AssetEarnings] = field(default_factory=list)
    recent_earnings: list[RoyaltyEarning] = field(default_factory=list)


class RoyaltyService:
    """Service for royalty pool distribution and crediting."""

    def __init__(self, default_currency: str = "USD") -> None:
        self.default_currency = default_currency

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def distribute_royalties(
        self,
        session: AsyncSession,
        asset_id: uuid.UUID,
        total_amount: Decimal,
        period: str,
        royalty_type: RoyaltyType | str,
        royalty_rate: Decimal = Decimal("1"),
        description: Optional[str] = None,
    ) -> RoyaltyDistribution:
        """Allocate a royalty pool to the asset's current holders as pending earnings.

        Raises:
            InvalidAmountError: If the pool rounds to zero or less
            ValidationError: If rate, period or type is invalid, or the asset
                has no holders
            NotFoundError: If the asset does not exist
            ConflictError: If this asset, period and type were already distributed
        """
        total_amount = to_money(total_amount)
        if total_amount <= Decimal("0"):
            raise InvalidAmountError(total_amount)
        try:
            royalty_rate = Decimal(royalty_rate).quantize(RATE_PLACES)
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid royalty rate: {royalty_rate}") from exc
        if not Decimal("0") < royalty_rate <= Decimal("1"):
            raise ValidationError(f"Royalty rate must be in (0, 1], got {royalty_rate}")
        period = (period or "").strip()
        if not period or len(period) > MAX_PERIOD_LENGTH:
            raise ValidationError(f"Period must be 1 to {MAX_PERIOD_LENGTH} characters")
        try:
            royalty_type = RoyaltyType(royalty_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown royalty type: {royalty_type}") from exc

        pool = to_money(total_amount * royalty_rate)
        if pool <= Decimal("0"):
            raise InvalidAmountError(pool)

        ledger = LedgerStore(session)
        inventory = InventoryStore(session)
        royalties = RoyaltyStore(session)

        asset = await inventory.get_asset(asset_id, lock=True)
        if await royalties.has_distribution(asset.id, period, royalty_type):
            raise ConflictError(
                f"Royalties for asset {asset.id} period {period} ({royalty_type.value}) "
                "were already distributed"
            )

        holders = await inventory.list_holders(asset.id, lock=True)
        held = sum(item.quantity for item in holders)
        if held == 0:
            raise ValidationError(f"Asset {asset.id} has no holders to distribute to")

        distribution = RoyaltyDistribution(
            asset_id=asset.id,
            period=period,
            royalty_type=royalty_type,
            total_royalty_pool=pool,
            total_distributed=ZERO,
            investors_count=0,
        )
        for item in holders:
            amount = floor_money(pool * item.quantity / held)
            if amount <= Decimal("0"):
                continue
            wallet = await ledger.get_or_create_wallet(item.user_id, self.default_currency, lock=False)
            earning = await royalties.add_earning(
                item, wallet, amount, royalty_rate, period, royalty_type, description
            )
            distribution.earnings.append(earning)
            distribution.total_distributed = to_money(distribution.total_distributed + amount)
        distribution.investors_count = len(distribution.earnings)

        logger.info(
            "Royalties distributed for asset=%s period=%s type=%s: pool=%s distributed=%s "
            "investors=%d undistributed=%s",
            asset.id, period, royalty_type.value, pool, distribution.total_distributed,
            distribution.investors_count, distribution.undistributed,
        )
        return distribution

    async def process_pending_royalties(
        self,
        session: AsyncSession,
        earning_ids: Optional[list[uuid.UUID]] = None,
        asset_id: Optional[uuid.UUID] = None,
        period: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> RoyaltyProcessing:
        """Credit every pending earning matching the filters to its holder's wallet.

        Earnings that are no longer pending are skipped, so running this twice
        credits nothing the second time. ``skipped_count`` counts requested
        ``earning_ids`` that were not pending.

        Raises:
            ConcurrencyError: If another request settled one of the earnings first
        """
        ledger = LedgerStore(session)
        royalties = RoyaltyStore(session)

        pending = await royalties.pending_earnings(earning_ids, asset_id, period, user_id)

        wallets = {}
        for wallet_id in sorted({e.wallet_id for e in pending}):
            wallets[wallet_id] = await ledger.get_wallet_by_id(wallet_id, lock=True)

        result = RoyaltyProcessing()
        for earning in pending:
            await royalties.settle(earning, RoyaltyStatus.PROCESSED, admin_id)
            await ledger.credit_available(wallets[earning.wallet_id], earning.amount)
            result.earnings.append(earning)
            result.processed_count += 1
            result.total_amount = to_money(result.total_amount + earning.amount)

        if earning_ids is not None:
            result.skipped_count = len(set(earning_ids)) - result.processed_count

        logger.info(
            "Royalties processed by admin=%s: count=%d amount=%s skipped=%d",
            admin_id, result.processed_count, result.total_amount, result.skipped_count,
        )
        return result

    async def cancel_royalty(
        self,
        session: AsyncSession,
        earning_id: uuid.UUID,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[RoyaltyEarning, bool]:
        """Cancel a pending earning. A processed or cancelled one comes back unchanged with False."""
        royalties = RoyaltyStore(session)
        earning = await royalties.get_earning(earning_id, lock=True)
        if earning.status is not RoyaltyStatus.PENDING:
            logger.info(
                "Royalty %s already %s; ignoring cancel from admin=%s",
                earning.reference, earning.status.value, admin_id,
            )
            return earning, False

        await royalties.settle(earning, RoyaltyStatus.CANCELLED, admin_id)
        logger.info("Royalty %s cancelled by admin=%s", earning.reference, admin_id)
        return earning, True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_royalty(
        self,
        session: AsyncSession,
        earning_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> RoyaltyEarning:
        earning = await RoyaltyStore(session).get_earning(earning_id)
        if user_id is not None and earning.user_id != user_id:
            raise NotFoundError("RoyaltyEarning", str(earning_id))
        return earning

    async def list_royalties(self, session: AsyncSession, filters: RoyaltyFilters) -> RoyaltyPage:
        """Page through earnings, newest first, with statistics of the filtered set."""
        conditions = self._conditions(filters)
        result = await session.execute(
            select(RoyaltyEarning)
            .where(*conditions)
            .order_by(RoyaltyEarning.created_at.desc(), RoyaltyEarning.id)
            .offset((filters.page - 1) * filters.per_page)
            .limit(filters.per_page)
        )
        statistics = await self._statistics(session, conditions)
        return RoyaltyPage(
            royalties=list(result.scalars().all()),
            total=statistics.total_earnings_count,
            page=filters.page,
            per_page=filters.per_page,
            statistics=statistics,
        )

    async def royalty_statistics(
        self,
        session: AsyncSession,
        period: Optional[str] = None,
        asset_id: Optional[uuid.UUID] = None,
    ) -> RoyaltyStatistics:
        return await self._statistics(
            session, self._conditions(RoyaltyFilters(period=period, asset_id=asset_id))
        )

    async def royalty_summary(self, session: AsyncSession, user_id: uuid.UUID) -> RoyaltySummary:
        """Credited and pending income of one holder, per asset and most recent first."""
        statistics = await self._statistics(session, [RoyaltyEarning.user_id == user_id])
        summary = RoyaltySummary(
            total_earned=statistics.processed_royalties,
            pending_earnings=statistics.pending_royalties,
            total_earnings_count=statistics.total_earnings_count,
        )

        by_asset = await session.execute(
            select(
                Asset.id,
                Asset.title,
                Asset.artist,
                func.coalesce(func.sum(RoyaltyEarning.amount), 0),
            )
            .join(Asset, Asset.id == RoyaltyEarning.asset_id)
            .where(
                RoyaltyEarning.user_id == user_id,
                RoyaltyEarning.status != RoyaltyStatus.CANCELLED,
            )
            .group_by(Asset.id, Asset.title, Asset.artist)
            .order_by(Asset.title)
        )
        summary.earnings_by_asset = [
            AssetEarnings(asset_id, title, artist, to_money(Decimal(str(total))))
            for asset_id, title, artist, total in by_asset.all()
        ]

        recent = await session.execute(
            select(RoyaltyEarning)
            .where(RoyaltyEarning.user_id == user_id)
            .order_by(RoyaltyEarning.created_at.desc(), RoyaltyEarning.id)
            .limit(RECENT_EARNINGS)
        )
        summary.recent_earnings = list(recent.scalars().all())
        return summary

    @staticmethod
    def _conditions(filters: RoyaltyFilters) -> list:
        conditions = []
        if filters.user_id is not None:
            conditions.append(RoyaltyEarning.user_id == filters.user_id)
        if filters.asset_id is not None:
            conditions.append(RoyaltyEarning.asset_id == filters.asset_id)
        if filters.status is not None:
            conditions.append(RoyaltyEarning.status == filters.status)
        if filters.period is not None:
            conditions.append(RoyaltyEarning.period == filters.period)
        if filters.royalty_type is not None:
            conditions.append(RoyaltyEarning.royalty_type == filters.royalty_type)
        return conditions

    async def _statistics(self, session: AsyncSession, conditions: list) -> RoyaltyStatistics:
        result = await session.execute(
            select(
                RoyaltyEarning.status,
                func.count(RoyaltyEarning.id),
                func.coalesce(func.sum(RoyaltyEarning.amount), 0),
            )
            .where(*conditions)
            .group_by(RoyaltyEarning.status)
        )
        statistics = RoyaltyStatistics()
        for status, count, amount in result.all():
            amount = to_money(Decimal(str(amount)))
            statistics.total_earnings_count += count
            if status is RoyaltyStatus.PENDING:
                statistics.pending_royalties = amount
            elif status is RoyaltyStatus.PROCESSED:
                statistics.processed_royalties = amount
            else:
                statistics.cancelled_royalties = amount
                statistics.cancelled_count = count
        statistics.total_royalties = to_money(
            statistics.pending_royalties + statistics.processed_royalties
        )
        return statistics
