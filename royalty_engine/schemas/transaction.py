"""Transaction Pydantic schemas for request/response validation."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from royalty_engine.models.transaction import (
    TransactionKind,
    TransactionMethod,
    TransactionStatus,
    TransactionType,
)


class DepositRequest(BaseModel):
    """Request schema for a crypto deposit."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "amount": "250.0000",
                "network": "TRC20",
                "proof_url": "https://files.example.com/proofs/tx-8812.png",
            }
        }
    )

    amount: Decimal = Field(..., gt=0, decimal_places=4, description="Deposit amount")
    network: Optional[str] = Field(default=None, max_length=50)
    proof_url: Optional[str] = Field(default=None, max_length=500)


class WithdrawRequest(BaseModel):
    """Request schema for a withdrawal to a bank account or crypto address."""

    amount: Decimal = Field(..., gt=0, decimal_places=4, description="Withdrawal amount")
    method: TransactionMethod
    details: dict[str, Any] = Field(..., min_length=1, description="Payout destination")
    network: Optional[str] = Field(default=None, max_length=50)


class ProofUpload(BaseModel):
    proof_url: str = Field(..., min_length=1, max_length=500)


class TransactionStatusUpdate(BaseModel):
    """Administrator decision on a pending transaction."""

    status: TransactionStatus
    admin_notes: Optional[str] = None


class TransactionRead(BaseModel):
    """Schema for reading Transaction data.

    Amount is serialized as a decimal string for precision.
    Enums are serialized as their string values.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference: str
    wallet_id: uuid.UUID
    user_id: uuid.UUID
    kind: TransactionKind
    type: TransactionType
    amount: Decimal
    status: TransactionStatus
    method: TransactionMethod
    network: Optional[str] = None
    proof_url: Optional[str] = None
    withdrawal_details: Optional[dict[str, Any]] = None
    admin_notes: Optional[str] = None
    processed_by: Optional[uuid.UUID] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        """Serialize amount as decimal string to preserve precision."""
        return str(amount)

    @field_serializer("kind", "type", "status", "method")
    def serialize_enum(self, value: Any) -> str:
        return value.value


class TransactionSummaryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_count: int
    total_amount: Decimal
    by_status: dict[str, int]
    by_kind: dict[str, int]

    @field_serializer("total_amount")
    def serialize_total(self, amount: Decimal) -> str:
        return str(amount)


class TransactionListResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transactions: list[TransactionRead]
    total: int
    page: int
    per_page: int
    summary: TransactionSummaryRead
