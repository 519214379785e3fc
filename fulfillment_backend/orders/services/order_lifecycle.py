"""
ORDER LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed status transitions
for Order entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
"""

from orders.models import Order
from orders.services.exceptions import InvalidOrderTransition, OrderNotCancellable

# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.STATUS_DELIVERED,
    Order.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Order.STATUS_PENDING: {
        Order.STATUS_CONFIRMED,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_CONFIRMED: {
        Order.STATUS_PROCESSING,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_PROCESSING: {
        Order.STATUS_SHIPPED,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_SHIPPED: {
        Order.STATUS_DELIVERED,
        Order.STATUS_CANCELLED,
    },
}

# Milestones shown by the tracking endpoint, in display order.
TIMELINE = [
    Order.STATUS_PENDING,
    Order.STATUS_CONFIRMED,
    Order.STATUS_PROCESSING,
    Order.STATUS_SHIPPED,
    Order.STATUS_DELIVERED,
]


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, order: Order, target_status: str):
    if not can_transition(from_status=order.status, to_status=target_status):
        raise InvalidOrderTransition(
            f"Order {order.order_no} cannot transition from "
            f"'{order.status}' to '{target_status}'"
        )


def validate_cancellable(*, order: Order):
    if order.status in TERMINAL_STATES:
        raise OrderNotCancellable(order)


def timeline(order: Order) -> list[dict]:
    """
    Milestone list for tracking. A cancelled order shows the milestones it
    reached plus the cancellation.
    """
    if order.status == Order.STATUS_CANCELLED:
        reached_index = 1 if order.confirmed_at else 0
    else:
        reached_index = TIMELINE.index(order.status)

    stamps = {
        Order.STATUS_PENDING: order.created_at,
        Order.STATUS_CONFIRMED: order.confirmed_at,
        Order.STATUS_DELIVERED: order.delivered_at,
    }

    steps = [
        {
            "status": status,
            "completed": index <= reached_index,
            "timestamp": stamps.get(status) if index <= reached_index else None,
        }
        for index, status in enumerate(TIMELINE)
    ]

    if order.status == Order.STATUS_CANCELLED:
        steps.append(
            {"status": Order.STATUS_CANCELLED, "completed": True, "timestamp": order.cancelled_at}
        )
    return steps
