"""
PATH: notifications/sms.py

SMS BACKENDS

Same shape as Django's email backends: a class selected by dotted path
(settings.NOTIFICATIONS["SMS_BACKEND"]) exposing send(to, message).

- ConsoleSmsBackend: logs the message (development default)
- LocmemSmsBackend: keeps messages in `outbox` (tests)
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

DEFAULT_SMS_BACKEND = "notifications.sms.ConsoleSmsBackend"

outbox: list[dict] = []


class BaseSmsBackend:
    def send(self, *, to: str, message: str) -> None:
        raise NotImplementedError


class ConsoleSmsBackend(BaseSmsBackend):
    def send(self, *, to: str, message: str) -> None:
        logger.info("SMS to %s: %s", to, message)


class LocmemSmsBackend(BaseSmsBackend):
    def send(self, *, to: str, message: str) -> None:
        outbox.append({"to": to, "message": message})


def get_sms_backend(path: str | None = None) -> BaseSmsBackend:
    cfg = getattr(settings, "NOTIFICATIONS", {}) or {}
    dotted = (path or cfg.get("SMS_BACKEND") or DEFAULT_SMS_BACKEND).strip()
    return import_string(dotted)()
