# SQLAlchemy ORM Models
"""Model package exports for Alembic discovery and application use.

All models must be imported here to ensure Alembic can discover them
for automatic migration generation.
"""

from royalty_engine.models.asset import Asset, AssetStatus, AssetType
from royalty_engine.models.network_wallet import NetworkWallet
from royalty_engine.models.order import Order, OrderStatus, OrderType, SellDecision
from royalty_engine.models.portfolio import PortfolioItem
from royalty_engine.models.royalty import RoyaltyEarning, RoyaltyStatus, RoyaltyType
from royalty_engine.models.transaction import (
    Transaction,
    TransactionKind,
    TransactionMethod,
    TransactionStatus,
    TransactionType,
)
from royalty_engine.models.wallet import Wallet

__all__ = [
    "Asset",
    "AssetStatus",
    "AssetType",
    "NetworkWallet",
    "Order",
    "OrderStatus",
    "OrderType",
    "PortfolioItem",
    "RoyaltyEarning",
    "RoyaltyStatus",
    "RoyaltyType",
    "SellDecision",
    "Transaction",
    "TransactionKind",
    "TransactionMethod",
    "TransactionStatus",
    "TransactionType",
    "Wallet",
]
