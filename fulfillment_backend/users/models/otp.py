"""
PATH: users/models/otp.py

ONE-TIME PASSCODE (side-channel confirmation)

Rules:
- One live code per (phone, purpose): issuing a new code deletes older ones.
- Single use: `used_at` is stamped on successful verification.
- Expires after OTP["TTL_MINUTES"]; expired codes never verify.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class OneTimePasscode(models.Model):
    PURPOSE_LOGIN = "login"
    PURPOSE_REGISTRATION = "registration"
    PURPOSE_PASSWORD_RESET = "password_reset"

    PURPOSE_CHOICES = [
        (PURPOSE_LOGIN, "Login"),
        (PURPOSE_REGISTRATION, "Registration"),
        (PURPOSE_PASSWORD_RESET, "Password Reset"),
    ]

    phone = models.CharField(max_length=20)
    code = models.CharField(max_length=6)
    purpose = models.CharField(max_length=32, choices=PURPOSE_CHOICES)

    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["phone", "purpose"], name="users_otp_phone_purpose_idx"),
        ]

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def is_expired(self, now=None) -> bool:
        return (now or timezone.now()) >= self.expires_at

    def __str__(self):
        return f"{self.phone} | {self.purpose} | {'used' if self.is_used else 'live'}"
