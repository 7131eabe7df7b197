from ledger.models.ledger import Account, EntryType, InventoryPurchase, LedgerEntry, Product
from ledger.models.user import User

__all__ = [
    "Account",
    "EntryType",
    "InventoryPurchase",
    "LedgerEntry",
    "Product",
    "User",
]
