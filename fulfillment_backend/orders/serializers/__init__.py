from .commands import (
    OrderCreateSerializer,
    OrderLineInputSerializer,
    OrderStatusUpdateSerializer,
    PaymentRetrySerializer,
)
from .order import OrderItemSerializer, OrderSerializer

__all__ = [
    "OrderSerializer",
    "OrderItemSerializer",
    "OrderCreateSerializer",
    "OrderLineInputSerializer",
    "OrderStatusUpdateSerializer",
    "PaymentRetrySerializer",
]
