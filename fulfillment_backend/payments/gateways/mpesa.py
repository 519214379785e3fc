# payments/gateways/mpesa.py

"""
======================================================
PATH: payments/gateways/mpesa.py
======================================================
M-PESA (Safaricom Daraja) STK PUSH ADAPTER

- Credentials: GET /oauth/v1/generate with HTTP Basic (consumer key/secret)
- Push:        POST /mpesa/stkpush/v1/processrequest
- Handle:      CheckoutRequestID (MerchantRequestID kept as external_ref)
- Callback:    Body.stkCallback.{CheckoutRequestID, ResultCode, ResultDesc}

Result codes:
- 0            -> success
- 1032, 1037   -> cancelled (user cancelled / no response from handset)
- anything else, or missing -> failed
"""

from __future__ import annotations

import base64
from decimal import ROUND_CEILING, Decimal

from django.utils import timezone

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
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

CANCELLED_RESULT_CODES = {"1032", "1037"}


class MpesaGateway(BaseGateway):
    provider = "mpesa"
    required_settings = ("CONSUMER_KEY", "CONSUMER_SECRET", "PASSKEY", "SHORTCODE", "CALLBACK_URL")

    @property
    def base_url(self) -> str:
        env = str(self.config.get("ENVIRONMENT") or "sandbox").strip().lower()
        return HOSTS.get(env, HOSTS["sandbox"])

    def _token_cache_key(self) -> str:
        return f"payments:mpesa:token:{self._setting('CONSUMER_KEY')}"

    # ------------------------------------------------------------
    # credentials
    # ------------------------------------------------------------

    def _fetch_access_token(self) -> tuple[str, int]:
        basic = base64.b64encode(
            f"{self._setting('CONSUMER_KEY')}:{self._setting('CONSUMER_SECRET')}".encode("utf-8")
        ).decode("ascii")

        data = self._request(
            "GET",
            f"{self.base_url}/oauth/v1/generate?grant_type=client_credentials",
            headers={"Authorization": f"Basic {basic}"},
        )

        token = str(data.get("access_token") or "").strip()
        if not token:
            raise GatewayUnavailable("M-Pesa returned no access token", provider=self.provider, raw=data)

        try:
            expires_in = int(data.get("expires_in") or 3599)
        except (TypeError, ValueError):
            expires_in = 3599
        return token, expires_in

    # ------------------------------------------------------------
    # push
    # ------------------------------------------------------------

    def _password(self, timestamp: str) -> str:
        raw = f"{self._setting('SHORTCODE')}{self._setting('PASSKEY')}{timestamp}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")

    def push_payment(self, *, phone: str, amount: Decimal, reference: str, handle: str | None = None) -> PushResult:
        self.check_configured()
        msisdn = normalize_msisdn(phone)
        # STK push only accepts whole shillings; never undercharge.
        whole_amount = int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_CEILING))
        timestamp = timezone.localtime().strftime("%Y%m%d%H%M%S")
        shortcode = self._setting("SHORTCODE")

        body = {
            "BusinessShortCode": shortcode,
            "Password": self._password(timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": whole_amount,
            "PartyA": msisdn,
            "PartyB": shortcode,
            "PhoneNumber": msisdn,
            "CallBackURL": self._setting("CALLBACK_URL"),
            "AccountReference": str(reference)[:12],
            "TransactionDesc": f"Order {reference}"[:13],
        }

        data = self._request(
            "POST",
            f"{self.base_url}/mpesa/stkpush/v1/processrequest",
            body=body,
            headers={"Authorization": f"Bearer {self.acquire_access_credential()}"},
        )

        response_code = str(data.get("ResponseCode", "")).strip()
        handle = str(data.get("CheckoutRequestID") or "").strip()

        if response_code != "0" or not handle:
            raise GatewayRejected(
                data.get("ResponseDescription") or data.get("errorMessage") or "M-Pesa rejected the STK push",
                provider=self.provider,
                raw=data,
            )

        return PushResult(
            handle=handle,
            initiated=True,
            external_ref=str(data.get("MerchantRequestID") or ""),
            message=str(data.get("CustomerMessage") or data.get("ResponseDescription") or ""),
            raw=data,
        )

    # ------------------------------------------------------------
    # callback
    # ------------------------------------------------------------

    @staticmethod
    def _metadata(callback: dict) -> dict:
        items = ((callback.get("CallbackMetadata") or {}).get("Item")) or []
        out = {}
        for item in items:
            if isinstance(item, dict) and item.get("Name"):
                out[str(item["Name"])] = item.get("Value")
        return out

    def parse_callback(self, payload) -> CallbackResult:
        if not isinstance(payload, dict):
            raise InvalidCallback("M-Pesa callback body is not an object", provider=self.provider)

        body = payload.get("Body")
        callback = body.get("stkCallback") if isinstance(body, dict) else None
        if not isinstance(callback, dict):
            raise InvalidCallback("M-Pesa callback missing Body.stkCallback", provider=self.provider, raw=payload)

        handle = str(callback.get("CheckoutRequestID") or "").strip()
        if not handle:
            raise InvalidCallback("M-Pesa callback missing CheckoutRequestID", provider=self.provider, raw=payload)

        result_code = str(callback.get("ResultCode", "")).strip()
        if result_code == "0":
            outcome = OUTCOME_SUCCESS
        elif result_code in CANCELLED_RESULT_CODES:
            outcome = OUTCOME_CANCELLED
        else:
            outcome = OUTCOME_FAILED

        receipt = self._metadata(callback).get("MpesaReceiptNumber")

        return CallbackResult(
            handle=handle,
            outcome=outcome,
            result_code=result_code,
            description=str(callback.get("ResultDesc") or ""),
            external_ref=str(receipt or ""),
            raw=payload,
        )

    def acknowledgement(self) -> dict:
        return {"ResultCode": 0, "ResultDesc": "Accepted"}
