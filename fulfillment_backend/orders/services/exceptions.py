# orders/services/exceptions.py

"""
ORDER SERVICE ERRORS
"""


class OrderError(Exception):
    """Base exception for order workflow failures."""


class OrderNotCancellable(OrderError):
    """Raised when cancelling a delivered or already-cancelled order."""

    def __init__(self, order):
        self.order_id = order.pk
        self.status = order.status
        super().__init__(f"Order {order.order_no} cannot be cancelled (status: {order.status})")


class InvalidOrderTransition(OrderError):
    """Raised when a status change is not in the lifecycle table."""


class PaymentNotRetryable(OrderError):
    """Raised when an order is not in a state that accepts a new payment attempt."""
