"""Order SQLAlchemy ORM model."""

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
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from royalty_engine.core.references import new_order_reference
from royalty_engine.db.base import Base, enum_column_type, utcnow


class OrderType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"


class OrderStatus(str, enum.Enum):
    """Order status enum.

    Values:
        PENDING: Sell order awaiting an administrator decision
        COMPLETED: Order executed and applied to ledger and inventory
        REJECTED: Sell order declined; no ledger or inventory effect
    """

    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class SellDecision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Order(Base):
    """Buy or sell intent against a portfolio item.

    Orders are never deleted; resolved orders are the audit trail for every
    inventory and invested-balance movement.

    Attributes:
        id: Unique identifier (UUID)
        user_id: Ordering user
        asset_id: Foreign key to Asset
        portfolio_item_id: Foreign key to the PortfolioItem drawn down or filled
        order_type: buy or sell
        status: pending, completed or rejected
        quantity: Number of shares
        price: Unit price snapshot at submission
        total: price x quantity, DECIMAL(18,4)
        cost_basis: Basis removed from invested balance (approved sells)
        realized_gain: total - cost_basis, reporting only (approved sells)
        reference: Unique client-displayable identifier
        processed_by: Administrator who resolved a sell order
        processed_at: When the order reached its terminal state
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
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
    order_type: Mapped[OrderType] = mapped_column(
        enum_column_type(OrderType),
        nullable=False
    )
    status: Mapped[OrderStatus] = mapped_column(
        enum_column_type(OrderStatus),
        nullable=False,
        default=OrderStatus.PENDING
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    cost_basis: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4), nullable=True)
    realized_gain: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4), nullable=True)
    reference: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        default=new_order_reference
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
        CheckConstraint("quantity > 0", name="quantity_positive"),
        Index("ix_orders_user_id", "user_id"),
        Index("ix_orders_portfolio_item_status", "portfolio_item_id", "status"),
        Index("ix_orders_status_type", "status", "order_type"),
    )
