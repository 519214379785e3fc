# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- File-backed SQLite, fast hashing
- Notifications run inline (no worker threads)
- Dummy provider credentials so gateway factories can be built

SQLite:
- The test database is a file, not shared-cache memory: threaded tests open
  one connection per thread and shared-cache tables fail with "locked"
  instead of waiting.
- IMMEDIATE transactions take the write lock at BEGIN, so concurrent writers
  queue on the busy timeout rather than erroring on lock upgrade.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import BASE_DIR, PAYMENTS

DEBUG = False

TEST_DB_PATH = str(BASE_DIR / "test_fulfillment.sqlite3")

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": TEST_DB_PATH,
        "OPTIONS": {
            "transaction_mode": "IMMEDIATE",
            "timeout": 20,
        },
        "TEST": {"NAME": TEST_DB_PATH},
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

NOTIFICATIONS = {
    "ASYNC": False,
    "SMS_BACKEND": "notifications.sms.LocmemSmsBackend",
    "OPERATIONS_EMAIL": "ops@example.com",
}

PAYMENTS = {
    **PAYMENTS,
    "MPESA": {
        "ENVIRONMENT": "sandbox",
        "CONSUMER_KEY": "test-key",
        "CONSUMER_SECRET": "test-secret",
        "PASSKEY": "test-passkey",
        "SHORTCODE": "174379",
        "CALLBACK_URL": "https://example.com/api/payments/mpesa/callback/",
    },
    "AIRTEL": {
        "ENVIRONMENT": "staging",
        "CLIENT_ID": "test-client",
        "CLIENT_SECRET": "test-secret",
        "COUNTRY": "KE",
    },
}

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": (),
    "DEFAULT_THROTTLE_RATES": {
        "anon": "10000/min",
        "user": "10000/min",
        "webhook": "10000/min",
        "otp": "10000/min",
    },
}
