# products/services/exceptions.py

"""
INVENTORY SERVICE ERRORS

Centralized domain errors for the inventory ledger.
"""


class InventoryError(Exception):
    """Base exception for all inventory failures."""


class ProductNotFound(InventoryError):
    """Raised when a requested product does not exist or is inactive."""

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class InsufficientStock(InventoryError):
    """Raised when a reservation would take stock below zero."""

    def __init__(self, *, product_id, product_name: str, requested: int, available: int):
        self.product_id = product_id
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Requested: {requested}, Available: {available}"
        )
