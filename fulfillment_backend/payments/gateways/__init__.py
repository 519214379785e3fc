from .airtel import AirtelGateway
from .base import BaseGateway, CallbackResult, PushResult, normalize_msisdn
from .exceptions import (
    GatewayError,
    GatewayNotConfigured,
    GatewayRejected,
    GatewayUnavailable,
    InvalidCallback,
)
from .mpesa import MpesaGateway

GATEWAY_CLASSES = {
    MpesaGateway.provider: MpesaGateway,
    AirtelGateway.provider: AirtelGateway,
}

__all__ = [
    "BaseGateway",
    "MpesaGateway",
    "AirtelGateway",
    "GATEWAY_CLASSES",
    "PushResult",
    "CallbackResult",
    "normalize_msisdn",
    "GatewayError",
    "GatewayUnavailable",
    "GatewayRejected",
    "GatewayNotConfigured",
    "InvalidCallback",
]
