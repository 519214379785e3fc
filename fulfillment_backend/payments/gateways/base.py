# payments/gateways/base.py

"""
======================================================
PATH: payments/gateways/base.py
======================================================
PAYMENT GATEWAY ADAPTER INTERFACE

Every provider adapter exposes the same surface to the reconciliation
engine and never leaks its own response shapes:

- acquire_access_credential() -> bearer token, cached until near expiry
- preassign_handle() -> handle chosen by us before the push, or None when
  the provider assigns it in the push response
- push_payment(phone, amount, reference, handle) -> PushResult
- parse_callback(payload) -> CallbackResult (or InvalidCallback)
- acknowledgement() -> body the provider expects back from our webhook
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from django.core.cache import caches

from payments.gateways import http
from payments.gateways.exceptions import GatewayNotConfigured

logger = logging.getLogger(__name__)

# Refresh tokens this many seconds before the provider says they expire.
TOKEN_EXPIRY_MARGIN = 60

MSISDN_RE = re.compile(r"^254[17]\d{8}$")

OUTCOME_SUCCESS = "success"
OUTCOME_FAILED = "failed"
OUTCOME_CANCELLED = "cancelled"


@dataclass(frozen=True)
class PushResult:
    handle: str
    initiated: bool
    external_ref: str = ""
    message: str = ""
    raw: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CallbackResult:
    """
    outcome is one of success / failed / cancelled, or None while the
    provider still reports the transaction as in progress.
    """

    handle: str
    outcome: Optional[str]
    result_code: str = ""
    description: str = ""
    external_ref: str = ""
    raw: dict = field(default_factory=dict)


def normalize_msisdn(phone) -> str:
    """
    Any Kenyan mobile format -> 2547XXXXXXXX / 2541XXXXXXXX.
    Accepts 07.., 01.., +254.., 254.., 7.. with spaces or dashes.
    """
    digits = re.sub(r"\D", "", str(phone or ""))

    if len(digits) == 10 and digits.startswith("0"):
        digits = "254" + digits[1:]
    elif len(digits) == 9:
        digits = "254" + digits

    if not MSISDN_RE.match(digits):
        raise ValueError(f"Invalid phone number: {phone}")
    return digits


class BaseGateway:
    provider: str = ""

    def __init__(self, config: dict, *, timeout: int = http.DEFAULT_TIMEOUT, cache_alias: str = "default"):
        self.config = config or {}
        self.timeout = int(timeout)
        self.cache = caches[cache_alias]

    # ------------------------------------------------------------
    # config
    # ------------------------------------------------------------

    required_settings: tuple = ()

    def _setting(self, key: str) -> str:
        value = str(self.config.get(key) or "").strip()
        if not value:
            raise GatewayNotConfigured(
                f"{self.provider} setting '{key}' is not configured", provider=self.provider
            )
        return value

    def check_configured(self) -> None:
        for key in self.required_settings:
            self._setting(key)

    # ------------------------------------------------------------
    # credentials
    # ------------------------------------------------------------

    def _token_cache_key(self) -> str:
        return f"payments:{self.provider}:token"

    def _fetch_access_token(self) -> tuple[str, int]:
        """Return (token, expires_in_seconds) from the provider."""
        raise NotImplementedError

    def acquire_access_credential(self) -> str:
        key = self._token_cache_key()
        token = self.cache.get(key)
        if token:
            return token

        token, expires_in = self._fetch_access_token()
        ttl = max(int(expires_in) - TOKEN_EXPIRY_MARGIN, 1)
        self.cache.set(key, token, ttl)
        logger.info("Gateway token refreshed", extra={"provider": self.provider, "ttl": ttl})
        return token

    def _request(self, method: str, url: str, *, body: dict | None = None, headers: dict | None = None) -> dict[str, Any]:
        return http.request_json(
            method,
            url,
            provider=self.provider,
            body=body,
            headers=headers,
            timeout=self.timeout,
        )

    # ------------------------------------------------------------
    # operations
    # ------------------------------------------------------------

    def preassign_handle(self) -> Optional[str]:
        return None

    def push_payment(self, *, phone: str, amount: Decimal, reference: str, handle: str | None = None) -> PushResult:
        raise NotImplementedError

    def parse_callback(self, payload) -> CallbackResult:
        raise NotImplementedError

    def acknowledgement(self) -> dict:
        raise NotImplementedError
