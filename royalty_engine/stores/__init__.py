# Row-level persistence for the ledger, the share inventory and royalty earnings

from royalty_engine.stores.inventory import InventoryStore
from royalty_engine.stores.ledger import LedgerStore
from royalty_engine.stores.royalties import RoyaltyStore

__all__ = ["InventoryStore", "LedgerStore", "RoyaltyStore"]
