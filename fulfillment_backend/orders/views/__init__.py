from .orders import (
    OrderCancelView,
    OrderDetailView,
    OrderListCreateView,
    OrderPayView,
    OrderStatusView,
    OrderTrackView,
)

__all__ = [
    "OrderListCreateView",
    "OrderDetailView",
    "OrderCancelView",
    "OrderPayView",
    "OrderStatusView",
    "OrderTrackView",
]
