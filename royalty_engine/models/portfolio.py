"""PortfolioItem SQLAlchemy ORM model."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from royalty_engine.core.money import to_money
from royalty_engine.db.base import Base, utcnow


class PortfolioItem(Base):
    """A user's holding of one asset.

    Attributes:
        id: Unique identifier (UUID)
        user_id: Owning user
        asset_id: Foreign key to Asset (unique per user)
        quantity: Shares held, never negative; kept at 0 after a full sell
        purchase_price: Weighted average cost per share, DECIMAL(18,8)
        cost_basis: Total cost of the held shares, DECIMAL(18,4)
        current_price: Last known asset price, DECIMAL(18,8)
        version: Compare-and-swap counter guarding sells against each other
    """

    __tablename__ = "portfolio_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("assets.id"),
        nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchase_price: Mapped[Decimal] = mapped_column(
        Numeric(18, 8),
        nullable=False,
        default=Decimal("0")
    )
    cost_basis: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False,
        default=Decimal("0.0000")
    )
    current_price: Mapped[Decimal] = mapped_column(
        Numeric(18, 8),
        nullable=False,
        default=Decimal("0")
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
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
        UniqueConstraint("user_id", "asset_id", name="uq_portfolio_items_user_asset"),
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        Index("ix_portfolio_items_user_id", "user_id"),
    )

    @property
    def current_value(self) -> Decimal:
        """Market value of the holding at the last known price."""
        return to_money(self.quantity * self.current_price)
