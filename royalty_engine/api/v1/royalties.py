"""Holder-facing royalty endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Query

from royalty_engine.api.deps import CurrentUserId, DBSession, Royalties
from royalty_engine.models.royalty import RoyaltyStatus, RoyaltyType
from royalty_engine.schemas.royalty import (
    RoyaltyEarningRead,
    RoyaltyListResponse,
    RoyaltySummaryRead,
)
from royalty_engine.services.royalty_service import RoyaltyFilters

router = APIRouter(prefix="/royalties", tags=["royalties"])


@router.get("", response_model=RoyaltyListResponse)
async def list_royalties(
    session: DBSession,
    user_id: CurrentUserId,
    royalties: Royalties,
    status: Optional[RoyaltyStatus] = None,
    period: Optional[str] = Query(default=None, max_length=20),
    royalty_type: Optional[RoyaltyType] = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1, le=100),
):
    """List the caller's royalty earnings, newest first."""
    filters = RoyaltyFilters(
        user_id=user_id,
        status=status,
        period=period,
        royalty_type=royalty_type,
        page=page,
        per_page=per_page,
    )
    result = await royalties.list_royalties(session, filters)
    return RoyaltyListResponse.model_validate(result)


@router.get("/summary", response_model=RoyaltySummaryRead)
async def royalty_summary(session: DBSession, user_id: CurrentUserId, royalties: Royalties):
    """
    Summarize the caller's royalty income.

    - **total_earned**: credited to the wallet
    - **pending_earnings**: allocated, not yet credited
    """
    summary = await royalties.royalty_summary(session, user_id)
    return RoyaltySummaryRead.model_validate(summary)


@router.get("/{earning_id}", response_model=RoyaltyEarningRead)
async def get_royalty(
    earning_id: uuid.UUID,
    session: DBSession,
    user_id: CurrentUserId,
    royalties: Royalties,
):
    return await royalties.get_royalty(session, earning_id, user_id)
