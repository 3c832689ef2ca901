"""Asset SQLAlchemy ORM model."""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from royalty_engine.db.base import Base, enum_column_type, utcnow


class AssetType(str, enum.Enum):
    """A single song or a basket of songs."""

    SINGLE = "single"
    BASKET = "basket"


class AssetStatus(str, enum.Enum):
    """Only active assets can be bought."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Asset(Base):
    """Tradable royalty asset with a fixed share supply.

    Attributes:
        id: Unique identifier (UUID)
        title: Display title of the song or basket
        asset_type: single or basket
        artist: Artist name, when the asset is a single song
        price: Current unit price per share, DECIMAL(18,8)
        total_shares: Share supply, fixed at creation
        available_shares: Unsold shares, 0 <= available_shares <= total_shares
        status: active or inactive
        version: Incremented on every inventory mutation
    """

    __tablename__ = "assets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_type: Mapped[AssetType] = mapped_column(
        enum_column_type(AssetType),
        nullable=False,
        default=AssetType.SINGLE
    )
    artist: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 8), nullable=False)
    total_shares: Mapped[int] = mapped_column(Integer, nullable=False)
    available_shares: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[AssetStatus] = mapped_column(
        enum_column_type(AssetStatus),
        nullable=False,
        default=AssetStatus.ACTIVE
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
        CheckConstraint("total_shares > 0", name="total_shares_positive"),
        CheckConstraint(
            "available_shares >= 0 AND available_shares <= total_shares",
            name="available_shares_in_range",
        ),
        CheckConstraint("price > 0", name="price_positive"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == AssetStatus.ACTIVE
