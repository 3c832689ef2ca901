"""Transaction state machine: deposits, withdrawals and their resolution.

LEDGER EFFECTS BY TRANSITION
============================

| kind     | on create                 | -> completed              | -> failed                 |
|----------|---------------------------|---------------------------|---------------------------|
| deposit  | none                      | credit available          | none                      |
| withdraw | debit available (hold)    | none (payout done)        | credit available (refund) |

Deposits stay inert until an administrator confirms receipt off-chain.
Withdrawals debit the wallet at request time so that several requests can
never jointly exceed the balance; a failed payout refunds exactly the held
amount.

Every transition is terminal and idempotent: updating a transaction that is
no longer pending returns it unchanged. The pending -> terminal write is a
compare-and-swap on ``status``, so two administrators racing on the same
transaction apply the ledger effect once; the loser's request is retried by
the coordinator and then sees the terminal state.

All methods expect the caller to own the database transaction (see
``ReconciliationCoordinator``). Nothing here commits.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    NotFoundError,
    NotPendingError,
    ValidationError,
)
from royalty_engine.core.money import ZERO, to_money
from royalty_engine.models.transaction import (
    Transaction,
    TransactionKind,
    TransactionMethod,
    TransactionStatus,
)
from royalty_engine.models.wallet import Wallet
from royalty_engine.stores.ledger import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class TransactionFilters:
    kind: Optional[TransactionKind] = None
    status: Optional[TransactionStatus] = None
    user_id: Optional[uuid.UUID] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = 1
    per_page: int = 20


@dataclass
class TransactionSummary:
    total_count: int = 0
    total_amount: Decimal = ZERO
    by_status: dict[str, int] = field(default_factory=dict)
    by_kind: dict[str, int] = field(default_factory=dict)


@dataclass
class TransactionPage:
    transactions: list[Transaction]
    total: int
    page: int
    per_page: int
    summary: TransactionSummary


class TransactionService:
    """Service for wallet funding/defunding with ACID guarantees."""

    def __init__(self, default_currency: str = "USD") -> None:
        self.default_currency = default_currency

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_deposit(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        amount: Decimal,
        network: Optional[str] = None,
        proof_url: Optional[str] = None,
    ) -> Transaction:
        """Record a crypto deposit the user says they sent.

        Raises:
            InvalidAmountError: If amount <= 0
        """
        amount = to_money(amount)
        if amount <= Decimal("0"):
            raise InvalidAmountError(amount)

        ledger = LedgerStore(session)
        wallet = await ledger.get_or_create_wallet(user_id, self.default_currency, lock=False)
        transaction = await ledger.add_transaction(
            wallet,
            kind=TransactionKind.DEPOSIT,
            amount=amount,
            method=TransactionMethod.CRYPTO,
            network=network,
            proof_url=proof_url,
        )

        logger.info(
            "Deposit %s created: user=%s amount=%s network=%s",
            transaction.reference, user_id, transaction.amount, network,
        )
        return transaction

    async def create_withdraw(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        amount: Decimal,
        method: TransactionMethod | str,
        details: Optional[dict[str, Any]] = None,
        network: Optional[str] = None,
    ) -> Transaction:
        """Request a payout, holding the amount out of available balance.

        Raises:
            InvalidAmountError: If amount <= 0
            ValidationError: If method is unknown or details are missing
            InsufficientFundsError: If available_balance < amount
        """
        amount = to_money(amount)
        if amount <= Decimal("0"):
            raise InvalidAmountError(amount)
        try:
            method = TransactionMethod(method)
        except ValueError as exc:
            raise ValidationError(f"Unknown withdrawal method: {method}") from exc
        if not details:
            raise ValidationError("Withdrawal destination details are required")

        ledger = LedgerStore(session)

        wallet = await ledger.get_or_create_wallet(user_id, self.default_currency, lock=True)
        if wallet.available_balance < amount:
            raise InsufficientFundsError(str(wallet.id), amount, wallet.available_balance)

        await ledger.debit_available(wallet, amount)
        transaction = await ledger.add_transaction(
            wallet,
            kind=TransactionKind.WITHDRAW,
            amount=amount,
            method=method,
            network=network,
            withdrawal_details=details,
        )

        logger.info(
            "Withdrawal %s requested: user=%s amount=%s method=%s available_after=%s",
            transaction.reference, user_id, amount, method.value, wallet.available_balance,
        )
        return transaction

    async def update_transaction_status(
        self,
        session: AsyncSession,
        transaction_id: uuid.UUID,
        status: TransactionStatus | str,
        admin_notes: Optional[str] = None,
        admin_id: Optional[uuid.UUID] = None,
    ) -> tuple[Transaction, bool]:
        """Resolve a pending deposit or withdrawal.

        Returns the transaction and whether this call resolved it; a
        transaction that was already completed or failed comes back unchanged
        with False.

        Raises:
            ValidationError: If status is not completed or failed
            NotFoundError: If the transaction does not exist
            ConcurrencyError: If another request resolved it first
        """
        try:
            status = TransactionStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown transaction status: {status}") from exc
        if not status.is_terminal:
            raise ValidationError("Transaction status can only move to completed or failed")

        ledger = LedgerStore(session)
        transaction = await ledger.get_transaction(transaction_id, lock=True)

        if transaction.status.is_terminal:
            logger.info(
                "Transaction %s already %s; ignoring %s from admin=%s",
                transaction.reference, transaction.status.value, status.value, admin_id,
            )
            return transaction, False

        wallet = await ledger.get_wallet_by_id(transaction.wallet_id, lock=True)
        await ledger.resolve_transaction(transaction, status, admin_notes, admin_id)

        if transaction.kind is TransactionKind.DEPOSIT and status is TransactionStatus.COMPLETED:
            await ledger.credit_available(wallet, transaction.amount)
        elif transaction.kind is TransactionKind.WITHDRAW and status is TransactionStatus.FAILED:
            await ledger.credit_available(wallet, transaction.amount)

        logger.info(
            "%s %s marked %s by admin=%s: amount=%s available_after=%s",
            transaction.kind.value.capitalize(), transaction.reference, status.value,
            admin_id, transaction.amount, wallet.available_balance,
        )
        return transaction, True

    async def attach_proof(
        self,
        session: AsyncSession,
        transaction_id: uuid.UUID,
        user_id: uuid.UUID,
        proof_url: str,
    ) -> Transaction:
        """Set the deposit evidence on the user's own pending deposit.

        Raises:
            NotFoundError: If the transaction does not exist or is not the user's
            ValidationError: If the transaction is a withdrawal or the URL is empty
            NotPendingError: If the transaction is already resolved
        """
        if not proof_url:
            raise ValidationError("Proof URL must not be empty")

        ledger = LedgerStore(session)
        transaction = await ledger.get_transaction(transaction_id, lock=True)
        if transaction.user_id != user_id:
            raise NotFoundError("Transaction", str(transaction_id))
        if transaction.kind is not TransactionKind.DEPOSIT:
            raise ValidationError("Proof can only be attached to deposits")
        self._require_pending(transaction)

        await ledger.set_proof(transaction, proof_url)
        logger.info("Proof attached to %s", transaction.reference)
        return transaction

    async def delete_proof(
        self,
        session: AsyncSession,
        transaction_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Transaction:
        """Clear the deposit evidence of a pending transaction.

        ``user_id`` restricts the call to the owner; administrators pass None.

        Raises:
            NotFoundError: If the transaction does not exist
            NotPendingError: If the transaction is already resolved
        """
        ledger = LedgerStore(session)
        transaction = await ledger.get_transaction(transaction_id, lock=True)
        if user_id is not None and transaction.user_id != user_id:
            raise NotFoundError("Transaction", str(transaction_id))
        self._require_pending(transaction)

        await ledger.set_proof(transaction, None)
        logger.info("Proof removed from %s", transaction.reference)
        return transaction

    @staticmethod
    def _require_pending(transaction: Transaction) -> None:
        if transaction.status is not TransactionStatus.PENDING:
            raise NotPendingError("Transaction", transaction.reference, transaction.status.value)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_wallet(self, session: AsyncSession, user_id: uuid.UUID) -> Wallet:
        """Return the user's wallet, creating an empty one on first access."""
        ledger = LedgerStore(session)
        return await ledger.get_or_create_wallet(user_id, self.default_currency, lock=False)

    async def get_transaction(
        self,
        session: AsyncSession,
        transaction_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
    ) -> Transaction:
        transaction = await LedgerStore(session).get_transaction(transaction_id)
        if user_id is not None and transaction.user_id != user_id:
            raise NotFoundError("Transaction", str(transaction_id))
        return transaction

    async def list_transactions(
        self,
        session: AsyncSession,
        filters: TransactionFilters,
    ) -> TransactionPage:
        """Page through transactions, newest first, with a summary of the filtered set."""
        conditions = []
        if filters.kind is not None:
            conditions.append(Transaction.kind == filters.kind)
        if filters.status is not None:
            conditions.append(Transaction.status == filters.status)
        if filters.user_id is not None:
            conditions.append(Transaction.user_id == filters.user_id)
        if filters.date_from is not None:
            conditions.append(Transaction.created_at >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(Transaction.created_at <= filters.date_to)

        result = await session.execute(
            select(Transaction)
            .where(*conditions)
            .order_by(Transaction.created_at.desc(), Transaction.id)
            .offset((filters.page - 1) * filters.per_page)
            .limit(filters.per_page)
        )
        summary = await self._summarize(session, conditions)
        return TransactionPage(
            transactions=list(result.scalars().all()),
            total=summary.total_count,
            page=filters.page,
            per_page=filters.per_page,
            summary=summary,
        )

    async def _summarize(self, session: AsyncSession, conditions: list) -> TransactionSummary:
        result = await session.execute(
            select(
                Transaction.kind,
                Transaction.status,
                func.count(Transaction.id),
                func.coalesce(func.sum(Transaction.amount), 0),
            )
            .where(*conditions)
            .group_by(Transaction.kind, Transaction.status)
        )
        summary = TransactionSummary()
        for kind, status, count, amount in result.all():
            summary.total_count += count
            summary.total_amount = to_money(summary.total_amount + Decimal(str(amount)))
            summary.by_status[status.value] = summary.by_status.get(status.value, 0) + count
            summary.by_kind[kind.value] = summary.by_kind.get(kind.value, 0) + count
        return summary
