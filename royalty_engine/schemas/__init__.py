# Pydantic Data Transfer Objects

from royalty_engine.schemas.asset import AssetCreate, AssetRead, NetworkWalletCreate, NetworkWalletRead, NetworkWalletUpdate
from royalty_engine.schemas.order import BuyRequest, OrderListResponse, OrderRead, PortfolioRead, SellDecisionRequest, SellRequest
from royalty_engine.schemas.royalty import DistributeRoyaltiesRequest, ProcessRoyaltiesRequest, RoyaltyDistributionRead, RoyaltyEarningRead, RoyaltyListResponse, RoyaltySummaryRead
from royalty_engine.schemas.transaction import DepositRequest, TransactionListResponse, TransactionRead, TransactionStatusUpdate, WithdrawRequest
from royalty_engine.schemas.wallet import WalletRead

__all__ = [
    "AssetCreate",
    "AssetRead",
    "BuyRequest",
    "DepositRequest",
    "DistributeRoyaltiesRequest",
    "NetworkWalletCreate",
    "NetworkWalletRead",
    "NetworkWalletUpdate",
    "OrderListResponse",
    "OrderRead",
    "PortfolioRead",
    "ProcessRoyaltiesRequest",
    "RoyaltyDistributionRead",
    "RoyaltyEarningRead",
    "RoyaltyListResponse",
    "RoyaltySummaryRead",
    "SellDecisionRequest",
    "SellRequest",
    "TransactionListResponse",
    "TransactionRead",
    "TransactionStatusUpdate",
    "WalletRead",
    "WithdrawRequest",
]
