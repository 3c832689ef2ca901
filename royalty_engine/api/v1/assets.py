"""Asset catalogue API endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter

from royalty_engine.api.deps import AdminId, Assets, DBSession
from royalty_engine.models.asset import AssetStatus
from royalty_engine.schemas.asset import AssetCreate, AssetPriceUpdate, AssetRead, AssetStatusUpdate

router = APIRouter(prefix="/assets", tags=["assets"])


@router.get("", response_model=list[AssetRead])
async def list_assets(session: DBSession, assets: Assets, status: Optional[AssetStatus] = None):
    return await assets.list_assets(session, status)


@router.post("", response_model=AssetRead, status_code=201)
async def create_asset(request: AssetCreate, session: DBSession, admin_id: AdminId, assets: Assets):
    async with session.begin():
        asset = await assets.create_asset(session, **request.model_dump())
    return asset


@router.get("/{asset_id}", response_model=AssetRead)
async def get_asset(asset_id: uuid.UUID, session: DBSession, assets: Assets):
    return await assets.get_asset(session, asset_id)


@router.put("/{asset_id}/price", response_model=AssetRead)
async def update_price(
    asset_id: uuid.UUID,
    request: AssetPriceUpdate,
    session: DBSession,
    admin_id: AdminId,
    assets: Assets,
):
    """Set a new unit price; every holding of the asset is revalued."""
    async with session.begin():
        asset = await assets.update_price(session, asset_id, request.price)
    return asset


@router.put("/{asset_id}/status", response_model=AssetRead)
async def set_status(
    asset_id: uuid.UUID,
    request: AssetStatusUpdate,
    session: DBSession,
    admin_id: AdminId,
    assets: Assets,
):
    async with session.begin():
        asset = await assets.set_status(session, asset_id, request.status)
    return asset
