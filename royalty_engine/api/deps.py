"""API dependency injection.

Provides FastAPI dependencies for database sessions, caller identity and the
reconciliation coordinator used across API endpoints.
"""

import uuid
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header

from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.config import get_settings
from royalty_engine.db.session import get_async_session
from royalty_engine.services.asset_service import AssetService
from royalty_engine.services.coordinator import ReconciliationCoordinator
from royalty_engine.services.order_service import OrderService
from royalty_engine.services.royalty_service import RoyaltyService
from royalty_engine.services.transaction_service import TransactionService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides an async database session.

    This wraps the session management from royalty_engine.db.session
    for use as a FastAPI dependency.
    """
    async for session in get_async_session():
        yield session


# Type alias for cleaner dependency injection syntax
DBSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user_id(x_user_id: Annotated[uuid.UUID, Header()]) -> uuid.UUID:
    """Caller identity; authentication happens upstream of this service."""
    return x_user_id


async def get_admin_id(x_admin_id: Annotated[uuid.UUID, Header()]) -> uuid.UUID:
    return x_admin_id


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
AdminId = Annotated[uuid.UUID, Depends(get_admin_id)]


def get_order_service() -> OrderService:
    return OrderService(default_currency=get_settings().DEFAULT_CURRENCY)


def get_transaction_service() -> TransactionService:
    return TransactionService(default_currency=get_settings().DEFAULT_CURRENCY)


def get_asset_service() -> AssetService:
    return AssetService()


def get_royalty_service() -> RoyaltyService:
    return RoyaltyService(default_currency=get_settings().DEFAULT_CURRENCY)


Orders = Annotated[OrderService, Depends(get_order_service)]
Transactions = Annotated[TransactionService, Depends(get_transaction_service)]
Assets = Annotated[AssetService, Depends(get_asset_service)]
Royalties = Annotated[RoyaltyService, Depends(get_royalty_service)]


def get_coordinator(
    session: DBSession,
    orders: Orders,
    transactions: Transactions,
    royalties: Royalties,
) -> ReconciliationCoordinator:
    settings = get_settings()
    return ReconciliationCoordinator(
        session,
        max_retries=settings.CONFLICT_MAX_RETRIES,
        retry_backoff=settings.CONFLICT_RETRY_BACKOFF,
        order_service=orders,
        transaction_service=transactions,
        royalty_service=royalties,
    )


Coordinator = Annotated[ReconciliationCoordinator, Depends(get_coordinator)]
