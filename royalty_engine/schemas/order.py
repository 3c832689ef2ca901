"""Order and portfolio Pydantic schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from royalty_engine.models.order import OrderStatus, OrderType, SellDecision
from royalty_engine.schemas.asset import AssetRead


class BuyRequest(BaseModel):
    """Request schema for buying shares at the asset's current price."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "asset_id": "123e4567-e89b-12d3-a456-426614174000",
                "quantity": 10,
            }
        }
    )

    asset_id: uuid.UUID = Field(..., description="Asset to buy")
    quantity: int = Field(..., gt=0, description="Number of shares")


class SellRequest(BaseModel):
    """Request schema for selling shares of a holding."""

    portfolio_item_id: uuid.UUID = Field(..., description="Holding to sell from")
    quantity: int = Field(..., gt=0, description="Number of shares")


class SellDecisionRequest(BaseModel):
    order_id: uuid.UUID
    decision: SellDecision


class OrderRead(BaseModel):
    """Schema for reading Order data.

    Money and prices are serialized as decimal strings for precision.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference: str
    user_id: uuid.UUID
    asset_id: uuid.UUID
    portfolio_item_id: Optional[uuid.UUID] = None
    order_type: OrderType
    status: OrderStatus
    quantity: int
    price: Decimal
    total: Decimal
    cost_basis: Optional[Decimal] = None
    realized_gain: Optional[Decimal] = None
    processed_by: Optional[uuid.UUID] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("price", "total", "cost_basis", "realized_gain")
    def serialize_decimal(self, value: Optional[Decimal]) -> Optional[str]:
        """Serialize decimals as strings to preserve precision."""
        return None if value is None else str(value)

    @field_serializer("order_type", "status")
    def serialize_enum(self, value: Any) -> str:
        return value.value


class OrderSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_orders: int
    buy_orders: int
    sell_orders: int
    completed_orders: int
    pending_orders: int
    rejected_orders: int


class OrderListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    orders: list[OrderRead]
    total: int
    page: int
    per_page: int
    summary: OrderSummaryRead


class PortfolioItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    asset_id: uuid.UUID
    quantity: int
    purchase_price: Decimal
    cost_basis: Decimal
    current_price: Decimal
    current_value: Decimal

    @field_serializer("purchase_price", "cost_basis", "current_price", "current_value")
    def serialize_decimal(self, value: Decimal) -> str:
        return str(value)


class HoldingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item: PortfolioItemRead
    asset: AssetRead


class PortfolioRead(BaseModel):
    """A user's holdings and their total value at last known prices."""

    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    holdings: list[HoldingRead]
    total_value: Decimal

    @field_serializer("total_value")
    def serialize_total(self, value: Decimal) -> str:
        return str(value)


class BuyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order: OrderRead
    portfolio: PortfolioRead
