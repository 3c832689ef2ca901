"""Transaction SQLAlchemy ORM model."""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from royalty_engine.core.references import new_transaction_reference
from royalty_engine.db.base import Base, enum_column_type, utcnow


class TransactionKind(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"

    @property
    def entry_type(self) -> "TransactionType":
        """Deposits credit the wallet, withdrawals debit it."""
        if self is TransactionKind.DEPOSIT:
            return TransactionType.CREDIT
        return TransactionType.DEBIT


class TransactionType(str, enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, enum.Enum):
    """Transaction status enum.

    Values:
        PENDING: Awaiting an administrator decision
        COMPLETED: Funds received (deposit) or paid out (withdraw)
        FAILED: Deposit not received, or withdrawal payout refunded
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


class TransactionMethod(str, enum.Enum):
    CRYPTO = "crypto"
    BANK = "bank"


class Transaction(Base):
    """Wallet funding or defunding event.

    Attributes:
        id: Unique identifier (UUID)
        wallet_id: Foreign key to Wallet
        user_id: Owning user
        kind: deposit or withdraw
        type: credit or debit, derived from kind
        amount: DECIMAL(18,4), always positive
        status: pending, completed or failed
        method: crypto or bank
        network: Crypto network (deposits and crypto withdrawals)
        proof_url: Deposit evidence supplied by the user
        withdrawal_details: Bank or crypto payout destination
        admin_notes: Free text recorded with the administrator decision
        reference: Unique client-displayable identifier
        processed_by: Administrator who resolved the transaction
        processed_at: When the transaction reached its terminal state
    """

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    wallet_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("wallets.id"),
        nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    kind: Mapped[TransactionKind] = mapped_column(
        enum_column_type(TransactionKind),
        nullable=False
    )
    type: Mapped[TransactionType] = mapped_column(
        enum_column_type(TransactionType),
        nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 4),
        nullable=False
    )
    status: Mapped[TransactionStatus] = mapped_column(
        enum_column_type(TransactionStatus),
        nullable=False,
        default=TransactionStatus.PENDING
    )
    method: Mapped[TransactionMethod] = mapped_column(
        enum_column_type(TransactionMethod),
        nullable=False
    )
    network: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    proof_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    withdrawal_details: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        default=new_transaction_reference
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
        Index("ix_transactions_wallet_id", "wallet_id"),
        Index("ix_transactions_user_id", "user_id"),
        Index("ix_transactions_status_kind", "status", "kind"),
    )
