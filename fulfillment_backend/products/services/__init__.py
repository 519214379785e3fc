from .exceptions import InsufficientStock, InventoryError, ProductNotFound
from .inventory import InventoryLedger

__all__ = [
    "InventoryLedger",
    "InventoryError",
    "InsufficientStock",
    "ProductNotFound",
]
