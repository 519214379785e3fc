from .otp import OneTimePasscode
from .user import User

__all__ = [
    "User",
    "OneTimePasscode",
]
