"""API v1 router aggregation."""

from fastapi import APIRouter

from royalty_engine.api.v1 import admin, assets, portfolio, royalties, transactions

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(portfolio.router)
api_router.include_router(transactions.router)
api_router.include_router(assets.router)
api_router.include_router(royalties.router)
api_router.include_router(admin.router)
