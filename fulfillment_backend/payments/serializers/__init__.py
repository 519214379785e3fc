from .payment import PaymentSerializer

__all__ = ["PaymentSerializer"]
