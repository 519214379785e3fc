# orders/views/errors.py

from rest_framework import status
from rest_framework.response import Response

from orders.services.exceptions import (
    InvalidOrderTransition,
    OrderNotCancellable,
    PaymentNotRetryable,
)
from payments.gateways import GatewayNotConfigured
from products.services.exceptions import InsufficientStock, ProductNotFound


# ======================================================
# API ERROR NORMALIZATION
# ======================================================

def error_response(*, code: str, message: str, http_status: int, **extra):
    """
    Canonical API error response.
    """
    return Response(
        {"error": {"code": code, "message": message, **extra}},
        status=http_status,
    )


def domain_error_response(exc: Exception):
    """
    Map a domain exception to its HTTP response, or None if it is not one
    of ours.
    """
    if isinstance(exc, ProductNotFound):
        return error_response(
            code="product_not_found",
            message=str(exc),
            http_status=status.HTTP_404_NOT_FOUND,
            product_id=str(exc.product_id),
        )
    if isinstance(exc, InsufficientStock):
        return error_response(
            code="insufficient_stock",
            message=str(exc),
            http_status=status.HTTP_409_CONFLICT,
            product_id=str(exc.product_id),
            requested=exc.requested,
            available=exc.available,
        )
    if isinstance(exc, OrderNotCancellable):
        return error_response(code="order_not_cancellable", message=str(exc), http_status=status.HTTP_409_CONFLICT)
    if isinstance(exc, InvalidOrderTransition):
        return error_response(code="invalid_transition", message=str(exc), http_status=status.HTTP_409_CONFLICT)
    if isinstance(exc, PaymentNotRetryable):
        return error_response(code="payment_not_retryable", message=str(exc), http_status=status.HTTP_409_CONFLICT)
    if isinstance(exc, GatewayNotConfigured):
        return error_response(
            code="gateway_not_configured",
            message=str(exc),
            http_status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return None
