from .exceptions import (
    InvalidOrderTransition,
    OrderError,
    OrderNotCancellable,
    PaymentNotRetryable,
)
from .pricing import OrderTotals, PricingPolicy, compute_totals

__all__ = [
    "OrderError",
    "OrderNotCancellable",
    "InvalidOrderTransition",
    "PaymentNotRetryable",
    "OrderTotals",
    "PricingPolicy",
    "compute_totals",
]
