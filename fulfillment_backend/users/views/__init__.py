from .otp import OtpSendView, OtpVerifyView

__all__ = [
    "OtpSendView",
    "OtpVerifyView",
]
