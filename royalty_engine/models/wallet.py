"""Wallet SQLAlchemy ORM model."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from royalty_engine.db.base import Base, utcnow


class Wallet(Base):
    """Custodial wallet holding a user's cash with financial precision.

    Attributes:
        id: Unique identifier (UUID)
        user_id: Owning user (unique, one wallet per user)
        available_balance: Spendable cash, DECIMAL(18,4), never negative
        invested_balance: Cost basis of held shares, DECIMAL(18,4)
        currency: ISO currency code (default: USD)
        version: Incremented on every balance mutation
        created_at: Record creation timestamp
        updated_at: Last modification timestamp
    """

    __tablename__ = "wallets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        unique=True,
        nullable=False
    )
    available_balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False,
        default=Decimal("0.0000")
    )
    invested_balance: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False,
        default=Decimal("0.0000")
    )
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default="USD"
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1
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
        CheckConstraint("available_balance >= 0", name="available_balance_non_negative"),
        CheckConstraint("invested_balance >= 0", name="invested_balance_non_negative"),
    )

    @property
    def total_balance(self) -> Decimal:
        """Display-only total; never stored."""
        return self.available_balance + self.invested_balance
