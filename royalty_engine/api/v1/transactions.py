"""Deposit and withdrawal API endpoints."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from royalty_engine.api import audit
from royalty_engine.api.deps import Coordinator, CurrentUserId, DBSession, Transactions
from royalty_engine.models.transaction import TransactionKind, TransactionStatus
from royalty_engine.schemas.transaction import (
    DepositRequest,
    ProofUpload,
    TransactionListResponse,
    TransactionRead,
    WithdrawRequest,
)
from royalty_engine.services.transaction_service import TransactionFilters

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/deposit", response_model=TransactionRead, status_code=201)
async def create_deposit(request: DepositRequest, user_id: CurrentUserId, coordinator: Coordinator):
    """
    Record a crypto deposit sent to the platform's network wallet.

    - **amount**: Amount sent (positive, max 4 decimal places)
    - **network**: Network the funds were sent on
    - **proof_url**: Optional link to the transfer evidence

    The wallet is credited only when an administrator completes the deposit.
    """
    transaction = await coordinator.create_deposit(
        user_id, request.amount, request.network, request.proof_url
    )
    audit.publish("transaction.deposit_created", audit.transaction_payload(transaction))
    return transaction


@router.post("/withdraw", response_model=TransactionRead, status_code=201)
async def create_withdraw(request: WithdrawRequest, user_id: CurrentUserId, coordinator: Coordinator):
    """
    Request a withdrawal.

    The amount leaves available balance immediately and is refunded if the
    payout is later marked failed.
    """
    transaction = await coordinator.create_withdraw(
        user_id, request.amount, request.method, request.details, request.network
    )
    audit.publish("transaction.withdraw_created", audit.transaction_payload(transaction))
    return transaction


@router.get("/history", response_model=TransactionListResponse)
async def history(
    session: DBSession,
    user_id: CurrentUserId,
    transactions: Transactions,
    kind: Optional[TransactionKind] = None,
    status: Optional[TransactionStatus] = None,
    date_from: Optional[datetime] = Query(default=None, alias="from"),
    date_to: Optional[datetime] = Query(default=None, alias="to"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
):
    filters = TransactionFilters(
        kind=kind,
        status=status,
        user_id=user_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    result = await transactions.list_transactions(session, filters)
    return TransactionListResponse.model_validate(result)


@router.post("/{transaction_id}/upload-proof", response_model=TransactionRead)
async def upload_proof(
    transaction_id: uuid.UUID,
    request: ProofUpload,
    user_id: CurrentUserId,
    coordinator: Coordinator,
):
    transaction = await coordinator.attach_proof(transaction_id, user_id, request.proof_url)
    audit.publish("transaction.proof_attached", audit.transaction_payload(transaction))
    return transaction


@router.delete("/{transaction_id}/proof", response_model=TransactionRead)
async def delete_proof(transaction_id: uuid.UUID, user_id: CurrentUserId, coordinator: Coordinator):
    transaction = await coordinator.delete_proof(transaction_id, user_id)
    audit.publish("transaction.proof_deleted", audit.transaction_payload(transaction))
    return transaction
