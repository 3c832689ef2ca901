"""Wallet Pydantic schemas for response serialization."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_serializer


class WalletRead(BaseModel):
    """Schema for reading Wallet data.

    Balances are serialized as decimal strings for precision.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    available_balance: Decimal
    invested_balance: Decimal
    total_balance: Decimal
    currency: str
    version: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("available_balance", "invested_balance", "total_balance")
    def serialize_balance(self, balance: Decimal) -> str:
        """Serialize balance as decimal string to preserve precision."""
        return str(balance)
