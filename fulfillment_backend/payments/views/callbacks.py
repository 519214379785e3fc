# payments/views/callbacks.py

"""
======================================================
PATH: payments/views/callbacks.py
======================================================
PROVIDER CALLBACK WEBHOOKS

- AllowAny + throttled (providers do not authenticate to us)
- Always 200 with the provider's acknowledgement body. Malformed or
  unknown payloads are logged, never turned into an error response,
  otherwise the provider keeps retrying.
"""

from __future__ import annotations

import json
import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from payments.models import Payment
from payments.services import build_engine

logger = logging.getLogger(__name__)


class WebhookThrottle(AnonRateThrottle):
    scope = "webhook"


def _read_payload(request):
    """
    Parse the raw body ourselves so a broken body never reaches DRF's parser
    error path (which would answer 400).
    """
    raw = request.body or b""
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        logger.warning("Callback body is not JSON", extra={"path": request.path, "size": len(raw)})
        return None


class BaseCallbackView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [WebhookThrottle]

    provider: str = ""

    @extend_schema(request=dict, responses={200: dict})
    def post(self, request):
        payload = _read_payload(request)
        engine = build_engine()
        gateway = engine.gateway_for(self.provider)

        try:
            ack = engine.handle_callback(provider=self.provider, payload=payload)
        except Exception:
            # Recorded for operators; the provider still gets its ack.
            logger.exception("Callback processing failed", extra={"provider": self.provider})
            ack = gateway.acknowledgement()

        return Response(ack, status=status.HTTP_200_OK)


class MpesaCallbackView(BaseCallbackView):
    provider = Payment.PROVIDER_MPESA


class AirtelCallbackView(BaseCallbackView):
    provider = Payment.PROVIDER_AIRTEL
