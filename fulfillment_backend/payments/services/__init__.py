from .payment_lifecycle import InvalidPaymentTransition
from .reconciliation import PaymentAttemptResult, ReconciliationEngine
from .factory import build_engine

__all__ = [
    "InvalidPaymentTransition",
    "PaymentAttemptResult",
    "ReconciliationEngine",
    "build_engine",
]
