# payments/gateways/airtel.py

"""
======================================================
PATH: payments/gateways/airtel.py
======================================================
AIRTEL MONEY COLLECTION ADAPTER

- Credentials: POST /auth/oauth2/token (client credentials)
- Push:        POST /merchant/v1/payments/ with X-Country / X-Currency
- Handle:      transaction.id, generated by us (preassign_handle) and sent
               with the push, so it is known even if the push times out
- Callback:    transaction.{id, status_code, message, airtel_money_id}

Status codes:
- TS -> success, TF -> failed, TE -> cancelled (expired)
- TIP / TA -> still in progress (no state change)
- anything else -> failed
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from payments.gateways.base import (
    OUTCOME_CANCELLED,
    OUTCOME_FAILED,
    OUTCOME_SUCCESS,
    BaseGateway,
    CallbackResult,
    PushResult,
    normalize_msisdn,
)
from payments.gateways.exceptions import GatewayRejected, GatewayUnavailable, InvalidCallback

HOSTS = {
    "staging": "https://openapiuat.airtel.africa",
    "production": "https://openapi.airtel.africa",
}

COUNTRY_CURRENCY = {
    "KE": "KES",
    "UG": "UGX",
    "TZ": "TZS",
    "RW": "RWF",
    "ZM": "ZMW",
}

STATUS_OUTCOMES = {
    "TS": OUTCOME_SUCCESS,
    "TF": OUTCOME_FAILED,
    "TE": OUTCOME_CANCELLED,
}
IN_PROGRESS_CODES = {"TIP", "TA"}


class AirtelGateway(BaseGateway):
    provider = "airtel"
    required_settings = ("CLIENT_ID", "CLIENT_SECRET", "COUNTRY")

    @property
    def base_url(self) -> str:
        env = str(self.config.get("ENVIRONMENT") or "staging").strip().lower()
        return HOSTS.get(env, HOSTS["staging"])

    @property
    def country(self) -> str:
        return str(self.config.get("COUNTRY") or "KE").strip().upper()

    @property
    def currency(self) -> str:
        return COUNTRY_CURRENCY.get(self.country, "KES")

    def _token_cache_key(self) -> str:
        return f"payments:airtel:token:{self._setting('CLIENT_ID')}"

    def _fetch_access_token(self) -> tuple[str, int]:
        data = self._request(
            "POST",
            f"{self.base_url}/auth/oauth2/token",
            body={
                "client_id": self._setting("CLIENT_ID"),
                "client_secret": self._setting("CLIENT_SECRET"),
                "grant_type": "client_credentials",
            },
        )

        token = str(data.get("access_token") or "").strip()
        if not token:
            raise GatewayUnavailable("Airtel returned no access token", provider=self.provider, raw=data)

        try:
            expires_in = int(data.get("expires_in") or 180)
        except (TypeError, ValueError):
            expires_in = 180
        return token, expires_in

    def preassign_handle(self) -> str:
        return uuid.uuid4().hex[:20].upper()

    def push_payment(self, *, phone: str, amount: Decimal, reference: str, handle: str | None = None) -> PushResult:
        self.check_configured()
        # Airtel wants the subscriber number without the country code.
        msisdn = normalize_msisdn(phone)[3:]
        transaction_id = handle or self.preassign_handle()

        body = {
            "reference": str(reference),
            "subscriber": {
                "country": self.country,
                "currency": self.currency,
                "msisdn": msisdn,
            },
            "transaction": {
                "amount": float(Decimal(amount)),
                "country": self.country,
                "currency": self.currency,
                "id": transaction_id,
            },
        }

        data = self._request(
            "POST",
            f"{self.base_url}/merchant/v1/payments/",
            body=body,
            headers={
                "Authorization": f"Bearer {self.acquire_access_credential()}",
                "X-Country": self.country,
                "X-Currency": self.currency,
            },
        )

        status_block = data.get("status") or {}
        if not status_block.get("success"):
            raise GatewayRejected(
                status_block.get("message") or "Airtel rejected the payment request",
                provider=self.provider,
                raw=data,
            )

        return PushResult(
            handle=transaction_id,
            initiated=True,
            external_ref=str(status_block.get("result_code") or ""),
            message=str(status_block.get("message") or ""),
            raw=data,
        )

    def parse_callback(self, payload) -> CallbackResult:
        if not isinstance(payload, dict):
            raise InvalidCallback("Airtel callback body is not an object", provider=self.provider)

        txn = payload.get("transaction")
        if not isinstance(txn, dict):
            raise InvalidCallback("Airtel callback missing transaction", provider=self.provider, raw=payload)

        handle = str(txn.get("id") or "").strip()
        if not handle:
            raise InvalidCallback("Airtel callback missing transaction.id", provider=self.provider, raw=payload)

        status_code = str(txn.get("status_code") or "").strip().upper()
        if status_code in IN_PROGRESS_CODES:
            outcome = None
        else:
            outcome = STATUS_OUTCOMES.get(status_code, OUTCOME_FAILED)

        return CallbackResult(
            handle=handle,
            outcome=outcome,
            result_code=status_code,
            description=str(txn.get("message") or ""),
            external_ref=str(txn.get("airtel_money_id") or ""),
            raw=payload,
        )

    def acknowledgement(self) -> dict:
        return {"status": "success"}
