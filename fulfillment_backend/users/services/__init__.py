from .otp_service import InvalidOtpError, issue_otp, verify_otp

__all__ = [
    "issue_otp",
    "verify_otp",
    "InvalidOtpError",
]
