"""Asset and network wallet Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from royalty_engine.models.asset import AssetStatus, AssetType


class AssetCreate(BaseModel):
    """Schema for creating a new Asset.

    ``available_shares`` defaults to ``total_shares``.
    """

    title: str = Field(..., min_length=1, max_length=255)
    asset_type: AssetType = AssetType.SINGLE
    artist: Optional[str] = Field(default=None, max_length=255)
    price: Decimal = Field(..., gt=0, decimal_places=8)
    total_shares: int = Field(..., gt=0)
    available_shares: Optional[int] = Field(default=None, ge=0)
    status: AssetStatus = AssetStatus.ACTIVE

    @model_validator(mode="after")
    def check_available_shares(self) -> "AssetCreate":
        if self.available_shares is not None and self.available_shares > self.total_shares:
            raise ValueError("available_shares cannot exceed total_shares")
        return self


class AssetPriceUpdate(BaseModel):
    price: Decimal = Field(..., gt=0, decimal_places=8)


class AssetStatusUpdate(BaseModel):
    status: AssetStatus


class AssetRead(BaseModel):
    """Schema for reading Asset data.

    Price is serialized as a decimal string for precision.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    asset_type: AssetType
    artist: Optional[str] = None
    price: Decimal
    total_shares: int
    available_shares: int
    status: AssetStatus
    created_at: datetime
    updated_at: datetime

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> str:
        """Serialize price as decimal string to preserve precision."""
        return str(price)

    @field_serializer("asset_type", "status")
    def serialize_enum(self, value: Any) -> str:
        return value.value


class NetworkWalletCreate(BaseModel):
    network: str = Field(..., min_length=1, max_length=50)
    wallet_address: str = Field(..., min_length=1, max_length=255)
    notes: Optional[str] = None
    is_active: bool = True


class NetworkWalletUpdate(BaseModel):
    """Schema for updating an existing NetworkWallet.

    All fields are optional to allow partial updates.
    """

    wallet_address: Optional[str] = Field(default=None, min_length=1, max_length=255)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class NetworkWalletRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    network: str
    wallet_address: str
    is_active: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
