"""RoyaltyEarning SQLAlchemy ORM model."""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from royalty_engine.core.references import new_royalty_reference
from royalty_engine.db.base import Base, enum_column_type, utcnow


class RoyaltyType(str, enum.Enum):
    """Revenue stream a royalty pool was collected from."""

    STREAMING = "streaming"
    SALES = "sales"
    PERFORMANCE = "performance"
    MECHANICAL = "mechanical"


class RoyaltyStatus(str, enum.Enum):
    """Royalty earning status enum.

    Values:
        PENDING: Allocated to the holder, not yet credited
        PROCESSED: Credited to the holder's available balance
        CANCELLED: Withdrawn before processing; never credited
    """

    PENDING = "pending"
    PROCESSED = "processed"
    CANCELLED = "cancelled"


class RoyaltyEarning(Base):
    """One holder's share of a distributed royalty pool.

    Attributes:
        id: Unique identifier (UUID)
        user_id: Holder the earning belongs to
        wallet_id: Wallet credited when the earning is processed
        asset_id: Asset whose royalties were distributed
        portfolio_item_id: Holding the share was computed from
        shares: Shares held at distribution time
        amount: DECIMAL(18,4), always positive
        royalty_rate: Fraction of the pool paid out, 0 < rate <= 1
        period: Reporting period label, e.g. "2026-09"
        royalty_type: streaming, sales, performance or mechanical
        status: pending, processed or cancelled
        reference: Unique client-displayable identifier
        processed_by: Administrator who processed or cancelled it
        processed_at: When it left the pending state
    """

    __tablename__ = "royalty_earnings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("wallets.id"),
        nullable=False
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assets.id"),
        nullable=False
    )
    portfolio_item_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("portfolio_items.id"),
        nullable=False
    )
    shares: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    royalty_rate: Mapped[Decimal] = mapped_column(
        Numeric(7, 6),
        nullable=False,
        default=Decimal("1")
    )
    period: Mapped[str] = mapped_column(String(20), nullable=False)
    royalty_type: Mapped[RoyaltyType] = mapped_column(
        enum_column_type(RoyaltyType),
        nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[RoyaltyStatus] = mapped_column(
        enum_column_type(RoyaltyStatus),
        nullable=False,
        default=RoyaltyStatus.PENDING
    )
    reference: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        default=new_royalty_reference
    )
    processed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("shares > 0", name="shares_positive"),
        CheckConstraint("royalty_rate > 0 AND royalty_rate <= 1", name="royalty_rate_in_range"),
        Index("ix_royalty_earnings_user_id", "user_id"),
        Index("ix_royalty_earnings_asset_period", "asset_id", "period"),
        Index("ix_royalty_earnings_status", "status"),
    )
