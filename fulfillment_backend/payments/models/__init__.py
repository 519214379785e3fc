"""
PAYMENTS MODELS PACKAGE EXPORTS
"""

from .payment import Payment

__all__ = [
    "Payment",
]
