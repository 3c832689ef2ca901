"""Portfolio and wallet API endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Query

from royalty_engine.api import audit
from royalty_engine.api.deps import Coordinator, CurrentUserId, DBSession, Orders, Transactions
from royalty_engine.models.order import OrderStatus, OrderType
from royalty_engine.schemas.order import (
    BuyRequest,
    BuyResponse,
    OrderListResponse,
    OrderRead,
    PortfolioRead,
    SellRequest,
)
from royalty_engine.schemas.wallet import WalletRead

router = APIRouter(tags=["portfolio"])


@router.get("/wallet", response_model=WalletRead)
async def get_wallet(session: DBSession, user_id: CurrentUserId, transactions: Transactions):
    """Return the caller's wallet, creating an empty one on first access."""
    async with session.begin():
        wallet = await transactions.get_wallet(session, user_id)
    return wallet


@router.get("/portfolio", response_model=PortfolioRead)
async def get_portfolio(session: DBSession, user_id: CurrentUserId, orders: Orders):
    portfolio = await orders.get_portfolio(session, user_id)
    return PortfolioRead.model_validate(portfolio)


@router.post("/portfolio/buy", response_model=BuyResponse, status_code=201)
async def buy(request: BuyRequest, user_id: CurrentUserId, coordinator: Coordinator):
    """
    Buy shares of an asset at its current price.

    - **asset_id**: Asset to buy
    - **quantity**: Number of shares (positive integer)

    The order executes immediately; the response carries the completed order
    and the caller's updated portfolio.
    """
    order, portfolio = await coordinator.buy(user_id, request.asset_id, request.quantity)

    # Committed at this point; safe to queue the audit event
    audit.publish("order.buy", audit.order_payload(order))
    return BuyResponse(
        order=OrderRead.model_validate(order),
        portfolio=PortfolioRead.model_validate(portfolio),
    )


@router.post("/portfolio/sell", response_model=OrderRead, status_code=201)
async def sell(request: SellRequest, user_id: CurrentUserId, coordinator: Coordinator):
    """
    Request to sell shares of a holding.

    Creates a pending sell order; nothing moves until an administrator
    approves it.
    """
    order = await coordinator.sell(user_id, request.portfolio_item_id, request.quantity)
    audit.publish("order.sell_requested", audit.order_payload(order))
    return order


@router.get("/portfolio/orders", response_model=OrderListResponse)
async def list_orders(
    session: DBSession,
    user_id: CurrentUserId,
    orders: Orders,
    order_type: Optional[OrderType] = None,
    status: Optional[OrderStatus] = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
):
    result = await orders.list_orders(session, user_id, order_type, status, page, per_page)
    return OrderListResponse.model_validate(result)


@router.get("/portfolio/orders/{order_id}", response_model=OrderRead)
async def get_order(order_id: uuid.UUID, session: DBSession, user_id: CurrentUserId, orders: Orders):
    return await orders.get_order(session, order_id, user_id=user_id)
