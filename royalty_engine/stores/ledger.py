"""Ledger store: wallet balances and the transaction journal.

Balance mutations are conditional UPDATE statements so the check and the
write happen in one statement, e.g.::

    UPDATE wallets
       SET available_balance = available_balance - :amount,
           version = version + 1
     WHERE id = :id AND available_balance >= :amount

Zero affected rows means the precondition no longer holds. Callers also lock
the wallet row with ``SELECT ... FOR UPDATE`` first; the conditional write is
what keeps a wallet from going negative on backends that ignore row locks.

Transaction ownership: the caller (the reconciliation coordinator) starts and
commits the database transaction.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import (
    ConcurrencyError,
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
)
from royalty_engine.db.base import utcnow
from royalty_engine.models.transaction import (
    Transaction,
    TransactionKind,
    TransactionMethod,
    TransactionStatus,
)
from royalty_engine.models.wallet import Wallet


class LedgerStore:
    """Row-level access to wallets and transactions within one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def get_wallet(self, user_id: uuid.UUID, lock: bool = False) -> Optional[Wallet]:
        stmt = select(Wallet).where(Wallet.user_id == user_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_wallet_by_id(self, wallet_id: uuid.UUID, lock: bool = False) -> Wallet:
        stmt = select(Wallet).where(Wallet.id == wallet_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        wallet = result.scalar_one_or_none()
        if wallet is None:
            raise NotFoundError("Wallet", str(wallet_id))
        return wallet

    async def get_or_create_wallet(
        self,
        user_id: uuid.UUID,
        currency: str = "USD",
        lock: bool = True,
    ) -> Wallet:
        """Return the user's wallet, creating an empty one on first use.

        Two first-time requests for the same user race on the unique
        ``user_id``; the loser gets ConcurrencyError and is retried, at which
        point it finds the winner's row.
        """
        wallet = await self.get_wallet(user_id, lock=lock)
        if wallet is not None:
            return wallet

        wallet = Wallet(
            user_id=user_id,
            available_balance=Decimal("0.0000"),
            invested_balance=Decimal("0.0000"),
            currency=currency,
            version=1,
        )
        self.session.add(wallet)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise ConcurrencyError("Wallet", f"for user {user_id}") from exc
        return wallet

    async def debit_available(self, wallet: Wallet, amount: Decimal) -> Wallet:
        """Hold ``amount`` out of the available balance (withdrawal request)."""
        result = await self.session.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id, Wallet.available_balance >= amount)
            .values(
                available_balance=Wallet.available_balance - amount,
                version=Wallet.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(wallet)
            raise InsufficientFundsError(str(wallet.id), amount, wallet.available_balance)
        await self.session.refresh(wallet)
        return wallet

    async def credit_available(self, wallet: Wallet, amount: Decimal) -> Wallet:
        """Add ``amount`` to the available balance (deposit or refund)."""
        await self.session.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id)
            .values(
                available_balance=Wallet.available_balance + amount,
                version=Wallet.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(wallet)
        return wallet

    async def invest(self, wallet: Wallet, amount: Decimal) -> Wallet:
        """Move ``amount`` from available to invested (buy execution)."""
        result = await self.session.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id, Wallet.available_balance >= amount)
            .values(
                available_balance=Wallet.available_balance - amount,
                invested_balance=Wallet.invested_balance + amount,
                version=Wallet.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(wallet)
            raise InsufficientFundsError(str(wallet.id), amount, wallet.available_balance)
        await self.session.refresh(wallet)
        return wallet

    async def divest(self, wallet: Wallet, cost_basis: Decimal, proceeds: Decimal) -> Wallet:
        """Release ``cost_basis`` from invested and credit ``proceeds`` (sell approval).

        The difference between the two is realized gain or loss; it is
        recorded on the order, not booked as a separate ledger line.
        """
        result = await self.session.execute(
            update(Wallet)
            .where(Wallet.id == wallet.id, Wallet.invested_balance >= cost_basis)
            .values(
                available_balance=Wallet.available_balance + proceeds,
                invested_balance=Wallet.invested_balance - cost_basis,
                version=Wallet.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(wallet)
            raise ConflictError(
                f"Wallet {wallet.id} invested balance {wallet.invested_balance} "
                f"cannot release cost basis {cost_basis}"
            )
        await self.session.refresh(wallet)
        return wallet

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_transaction(
        self,
        transaction_id: uuid.UUID,
        lock: bool = False,
    ) -> Transaction:
        stmt = select(Transaction).where(Transaction.id == transaction_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise NotFoundError("Transaction", str(transaction_id))
        return transaction

    async def add_transaction(
        self,
        wallet: Wallet,
        kind: TransactionKind,
        amount: Decimal,
        method: TransactionMethod,
        network: Optional[str] = None,
        proof_url: Optional[str] = None,
        withdrawal_details: Optional[dict[str, Any]] = None,
    ) -> Transaction:
        transaction = Transaction(
            wallet_id=wallet.id,
            user_id=wallet.user_id,
            kind=kind,
            type=kind.entry_type,
            amount=amount,
            status=TransactionStatus.PENDING,
            method=method,
            network=network,
            proof_url=proof_url,
            withdrawal_details=withdrawal_details,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def resolve_transaction(
        self,
        transaction: Transaction,
        status: TransactionStatus,
        admin_notes: Optional[str],
        processed_by: Optional[uuid.UUID],
    ) -> Transaction:
        """Move a pending transaction to ``status`` exactly once.

        Raises ConcurrencyError if another request resolved it first.
        """
        processed_at: datetime = utcnow()
        result = await self.session.execute(
            update(Transaction)
            .where(
                Transaction.id == transaction.id,
                Transaction.status == TransactionStatus.PENDING,
            )
            .values(
                status=status,
                admin_notes=admin_notes,
                processed_by=processed_by,
                processed_at=processed_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("Transaction", str(transaction.id))
        await self.session.refresh(transaction)
        return transaction

    async def set_proof(self, transaction: Transaction, proof_url: Optional[str]) -> Transaction:
        """Replace the deposit proof of a still-pending transaction."""
        result = await self.session.execute(
            update(Transaction)
            .where(
                Transaction.id == transaction.id,
                Transaction.status == TransactionStatus.PENDING,
            )
            .values(proof_url=proof_url)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError("Transaction", str(transaction.id))
        await self.session.refresh(transaction)
        return transaction
