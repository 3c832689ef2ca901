"""Royalty distribution Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from royalty_engine.models.royalty import RoyaltyStatus, RoyaltyType


class DistributeRoyaltiesRequest(BaseModel):
    """Request schema for splitting a royalty pool across an asset's holders."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_amount": "1200.0000",
                "period": "2026-09",
                "royalty_rate": "0.85",
                "royalty_type": "streaming",
                "description": "September streaming payout",
                "auto_process": False,
            }
        }
    )

    total_amount: Decimal = Field(..., gt=0, decimal_places=4, description="Royalties collected")
    period: str = Field(..., min_length=1, max_length=20, description="Reporting period")
    royalty_rate: Decimal = Field(default=Decimal("1"), gt=0, le=1, decimal_places=6)
    royalty_type: RoyaltyType
    description: Optional[str] = None
    auto_process: bool = Field(default=False, description="Credit wallets right away")


class ProcessRoyaltiesRequest(BaseModel):
    """Filters selecting which pending earnings to credit; all optional."""

    earning_ids: Optional[list[uuid.UUID]] = None
    asset_id: Optional[uuid.UUID] = None
    period: Optional[str] = Field(default=None, max_length=20)
    user_id: Optional[uuid.UUID] = None


class RoyaltyEarningRead(BaseModel):
    """Schema for reading RoyaltyEarning data.

    Amount and rate are serialized as decimal strings for precision.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference: str
    user_id: uuid.UUID
    wallet_id: uuid.UUID
    asset_id: uuid.UUID
    portfolio_item_id: uuid.UUID
    shares: int
    amount: Decimal
    royalty_rate: Decimal
    period: str
    royalty_type: RoyaltyType
    description: Optional[str] = None
    status: RoyaltyStatus
    processed_by: Optional[uuid.UUID] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("amount", "royalty_rate")
    def serialize_decimal(self, value: Decimal) -> str:
        return str(value)

    @field_serializer("royalty_type", "status")
    def serialize_enum(self, value: Any) -> str:
        return value.value


class RoyaltyProcessingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    processed_count: int
    total_amount: Decimal
    skipped_count: int

    @field_serializer("total_amount")
    def serialize_total(self, value: Decimal) -> str:
        return str(value)


class RoyaltyDistributionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset_id: uuid.UUID
    period: str
    royalty_type: RoyaltyType
    total_royalty_pool: Decimal
    total_distributed: Decimal
    undistributed: Decimal
    investors_count: int
    earnings: list[RoyaltyEarningRead]
    processing: Optional[RoyaltyProcessingRead] = None

    @field_serializer("total_royalty_pool", "total_distributed", "undistributed")
    def serialize_decimal(self, value: Decimal) -> str:
        return str(value)

    @field_serializer("royalty_type")
    def serialize_enum(self, value: Any) -> str:
        return value.value


class RoyaltyStatisticsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_royalties: Decimal
    pending_royalties: Decimal
    processed_royalties: Decimal
    cancelled_royalties: Decimal
    total_earnings_count: int
    average_earning: Decimal

    @field_serializer(
        "total_royalties",
        "pending_royalties",
        "processed_royalties",
        "cancelled_royalties",
        "average_earning",
    )
    def serialize_decimal(self, value: Decimal) -> str:
        return str(value)


class RoyaltyListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    royalties: list[RoyaltyEarningRead]
    total: int
    page: int
    per_page: int
    statistics: RoyaltyStatisticsRead


class AssetEarningsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset_id: uuid.UUID
    title: str
    artist: Optional[str] = None
    total_earnings: Decimal

    @field_serializer("total_earnings")
    def serialize_total(self, value: Decimal) -> str:
        return str(value)


class RoyaltySummaryRead(BaseModel):
    """A holder's credited and pending royalty income."""

    model_config = ConfigDict(from_attributes=True)

    total_earned: Decimal
    pending_earnings: Decimal
    total_earnings_count: int
    earnings_by_asset: list[AssetEarningsRead]
    recent_earnings: list[RoyaltyEarningRead]

    @field_serializer("total_earned", "pending_earnings")
    def serialize_decimal(self, value: Decimal) -> str:
        return str(value)
