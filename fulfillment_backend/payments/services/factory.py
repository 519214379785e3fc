# payments/services/factory.py

"""
Builds a ReconciliationEngine from settings.

Views and management commands call build_engine() per request/run; tests
construct ReconciliationEngine directly with fakes.
"""

from django.conf import settings

from notifications.services import NotificationSink
from payments.gateways import GATEWAY_CLASSES
from products.services import InventoryLedger

from .reconciliation import ReconciliationEngine


def build_gateways() -> dict:
    cfg = getattr(settings, "PAYMENTS", {}) or {}
    timeout = int(cfg.get("TIMEOUT_SECONDS") or 30)
    return {
        provider: cls(cfg.get(provider.upper()) or {}, timeout=timeout)
        for provider, cls in GATEWAY_CLASSES.items()
    }


def build_engine(*, ledger=None, gateways=None, notifier=None) -> ReconciliationEngine:
    return ReconciliationEngine(
        ledger=ledger or InventoryLedger(),
        gateways=gateways if gateways is not None else build_gateways(),
        notifier=notifier or NotificationSink(),
    )
