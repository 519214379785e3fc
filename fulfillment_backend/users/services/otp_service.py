"""
PATH: users/services/otp_service.py

OTP SERVICE

- Phones are normalized to 2547XXXXXXXX / 2541XXXXXXXX before storing or
  matching, so 07.. and 254.. forms of one number are the same subscriber.
- issue_otp(): 6-digit code, replaces any live code for the same phone+purpose,
  delivered through the notification sink after commit.
- verify_otp(): single-use, purpose-scoped, expiry enforced; the row is locked
  so two concurrent verifications cannot both succeed.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from notifications.services import NotificationSink
from payments.gateways import normalize_msisdn
from users.models import OneTimePasscode

logger = logging.getLogger(__name__)


class InvalidOtpError(Exception):
    pass


def _normalize_phone(phone) -> str:
    try:
        return normalize_msisdn(phone)
    except ValueError:
        raise InvalidOtpError("A valid mobile number is required") from None


def _ttl_minutes() -> int:
    cfg = getattr(settings, "OTP", {}) or {}
    return int(cfg.get("TTL_MINUTES") or 10)


def _generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


@transaction.atomic
def issue_otp(*, phone: str, purpose: str, notifier: NotificationSink | None = None) -> OneTimePasscode:
    phone = _normalize_phone(phone)

    if purpose not in dict(OneTimePasscode.PURPOSE_CHOICES):
        raise InvalidOtpError(f"Unsupported OTP purpose: {purpose}")

    OneTimePasscode.objects.filter(phone=phone, purpose=purpose).delete()

    ttl = _ttl_minutes()
    otp = OneTimePasscode.objects.create(
        phone=phone,
        code=_generate_code(),
        purpose=purpose,
        expires_at=timezone.now() + timedelta(minutes=ttl),
    )

    (notifier or NotificationSink()).otp_issued(phone=phone, code=otp.code, ttl_minutes=ttl)
    logger.info("OTP issued", extra={"purpose": purpose})
    return otp


@transaction.atomic
def verify_otp(*, phone: str, code: str, purpose: str) -> OneTimePasscode:
    otp = (
        OneTimePasscode.objects.select_for_update()
        .filter(
            phone=_normalize_phone(phone),
            code=(code or "").strip(),
            purpose=purpose,
            used_at__isnull=True,
        )
        .first()
    )

    now = timezone.now()
    if otp is None or otp.is_expired(now):
        raise InvalidOtpError("Invalid or expired OTP")

    otp.used_at = now
    otp.save(update_fields=["used_at"])
    return otp
