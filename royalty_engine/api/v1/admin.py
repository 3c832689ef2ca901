"""Administrator API endpoints: sell approvals, transaction review, royalties, network wallets."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from royalty_engine.api import audit
from royalty_engine.api.deps import AdminId, Assets, Coordinator, DBSession, Orders, Royalties, Transactions
from royalty_engine.models.royalty import RoyaltyStatus, RoyaltyType
from royalty_engine.models.transaction import TransactionKind, TransactionStatus
from royalty_engine.schemas.asset import NetworkWalletCreate, NetworkWalletRead, NetworkWalletUpdate
from royalty_engine.schemas.order import OrderRead, SellDecisionRequest
from royalty_engine.schemas.royalty import (
    DistributeRoyaltiesRequest,
    ProcessRoyaltiesRequest,
    RoyaltyDistributionRead,
    RoyaltyEarningRead,
    RoyaltyListResponse,
    RoyaltyProcessingRead,
    RoyaltyStatisticsRead,
)
from royalty_engine.schemas.transaction import (
    TransactionListResponse,
    TransactionRead,
    TransactionStatusUpdate,
)
from royalty_engine.services.royalty_service import RoyaltyFilters
from royalty_engine.services.transaction_service import TransactionFilters

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/sell/pending", response_model=list[OrderRead])
async def pending_sell_orders(session: DBSession, admin_id: AdminId, orders: Orders):
    return await orders.list_pending_sell_orders(session)


@router.post("/sell/approve", response_model=OrderRead)
async def resolve_sell(request: SellDecisionRequest, admin_id: AdminId, coordinator: Coordinator):
    """
    Approve or reject a pending sell order.

    Resolving an order that is already completed or rejected returns it
    unchanged and queues no audit event.
    """
    order, changed = await coordinator.resolve_sell(request.order_id, request.decision, admin_id)
    if changed:
        audit.publish(f"order.sell_{order.status.value}", audit.order_payload(order))
    return order


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    session: DBSession,
    admin_id: AdminId,
    transactions: Transactions,
    kind: Optional[TransactionKind] = None,
    status: Optional[TransactionStatus] = None,
    user_id: Optional[uuid.UUID] = None,
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


@router.put("/transactions/{transaction_id}/status", response_model=TransactionRead)
async def update_transaction_status(
    transaction_id: uuid.UUID,
    request: TransactionStatusUpdate,
    admin_id: AdminId,
    coordinator: Coordinator,
):
    """
    Complete or fail a pending deposit or withdrawal.

    - completed deposit: credits the wallet
    - failed withdrawal: refunds the held amount
    """
    transaction, changed = await coordinator.update_transaction_status(
        transaction_id, request.status, request.admin_notes, admin_id
    )
    if changed:
        audit.publish("transaction.status_updated", audit.transaction_payload(transaction))
    return transaction


@router.post(
    "/royalties/distribute/{asset_id}", response_model=RoyaltyDistributionRead, status_code=201
)
async def distribute_royalties(
    asset_id: uuid.UUID,
    request: DistributeRoyaltiesRequest,
    admin_id: AdminId,
    coordinator: Coordinator,
):
    """
    Split a royalty pool across the asset's current holders, pro rata by shares.

    Earnings are created pending. With **auto_process** they are credited to
    wallets right after the distribution commits.
    """
    distribution, processing = await coordinator.distribute_royalties(
        asset_id,
        request.total_amount,
        request.period,
        request.royalty_type,
        request.royalty_rate,
        request.description,
        auto_process=request.auto_process,
        admin_id=admin_id,
    )
    for earning in distribution.earnings:
        audit.publish("royalty.distributed", audit.royalty_payload(earning))
    response = RoyaltyDistributionRead.model_validate(distribution)
    if processing is not None:
        for earning in processing.earnings:
            audit.publish("royalty.processed", audit.royalty_payload(earning))
        response.processing = RoyaltyProcessingRead.model_validate(processing)
    return response


@router.post("/royalties/process-pending", response_model=RoyaltyProcessingRead)
async def process_pending_royalties(
    request: ProcessRoyaltiesRequest,
    admin_id: AdminId,
    coordinator: Coordinator,
):
    """Credit pending earnings matching the filters. Already credited ones are skipped."""
    processing = await coordinator.process_pending_royalties(
        earning_ids=request.earning_ids,
        asset_id=request.asset_id,
        period=request.period,
        user_id=request.user_id,
        admin_id=admin_id,
    )
    for earning in processing.earnings:
        audit.publish("royalty.processed", audit.royalty_payload(earning))
    return RoyaltyProcessingRead.model_validate(processing)


@router.post("/royalties/{earning_id}/cancel", response_model=RoyaltyEarningRead)
async def cancel_royalty(earning_id: uuid.UUID, admin_id: AdminId, coordinator: Coordinator):
    earning, changed = await coordinator.cancel_royalty(earning_id, admin_id)
    if changed:
        audit.publish("royalty.cancelled", audit.royalty_payload(earning))
    return earning


@router.get("/royalties", response_model=RoyaltyListResponse)
async def list_royalties(
    session: DBSession,
    admin_id: AdminId,
    royalties: Royalties,
    user_id: Optional[uuid.UUID] = None,
    asset_id: Optional[uuid.UUID] = None,
    status: Optional[RoyaltyStatus] = None,
    period: Optional[str] = Query(default=None, max_length=20),
    royalty_type: Optional[RoyaltyType] = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
):
    filters = RoyaltyFilters(
        user_id=user_id,
        asset_id=asset_id,
        status=status,
        period=period,
        royalty_type=royalty_type,
        page=page,
        per_page=per_page,
    )
    result = await royalties.list_royalties(session, filters)
    return RoyaltyListResponse.model_validate(result)


@router.get("/royalties/statistics", response_model=RoyaltyStatisticsRead)
async def royalty_statistics(
    session: DBSession,
    admin_id: AdminId,
    royalties: Royalties,
    period: Optional[str] = Query(default=None, max_length=20),
    asset_id: Optional[uuid.UUID] = None,
):
    statistics = await royalties.royalty_statistics(session, period=period, asset_id=asset_id)
    return RoyaltyStatisticsRead.model_validate(statistics)


@router.get("/network-wallets", response_model=list[NetworkWalletRead])
async def list_network_wallets(
    session: DBSession,
    admin_id: AdminId,
    assets: Assets,
    active_only: bool = False,
):
    return await assets.list_network_wallets(session, active_only=active_only)


@router.post("/network-wallets", response_model=NetworkWalletRead, status_code=201)
async def create_network_wallet(
    request: NetworkWalletCreate,
    session: DBSession,
    admin_id: AdminId,
    assets: Assets,
):
    async with session.begin():
        wallet = await assets.create_network_wallet(
            session,
            network=request.network,
            wallet_address=request.wallet_address,
            notes=request.notes,
            is_active=request.is_active,
        )
    return wallet


@router.put("/network-wallets/{network_wallet_id}", response_model=NetworkWalletRead)
async def update_network_wallet(
    network_wallet_id: uuid.UUID,
    request: NetworkWalletUpdate,
    session: DBSession,
    admin_id: AdminId,
    assets: Assets,
):
    async with session.begin():
        wallet = await assets.update_network_wallet(
            session,
            network_wallet_id,
            wallet_address=request.wallet_address,
            notes=request.notes,
            is_active=request.is_active,
        )
    return wallet
