from .callbacks import AirtelCallbackView, MpesaCallbackView, WebhookThrottle
from .status import PaymentStatusView

__all__ = [
    "MpesaCallbackView",
    "AirtelCallbackView",
    "WebhookThrottle",
    "PaymentStatusView",
]
