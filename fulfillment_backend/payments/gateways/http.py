# payments/gateways/http.py

"""
======================================================
PATH: payments/gateways/http.py
======================================================
JSON-over-HTTP helper shared by the provider adapters.

- Bounded timeout on every call.
- Provider 4xx  -> GatewayRejected
- Provider 5xx, URLError, socket timeout, non-JSON body -> GatewayUnavailable
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from payments.gateways.exceptions import GatewayRejected, GatewayUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def _safe_preview(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _parse_json_or_text(raw: str) -> dict[str, Any]:
    raw = raw or ""
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {"kind": "text", "raw": raw}
    if isinstance(parsed, dict):
        return {"kind": "json", "json": parsed, "raw": raw}
    return {"kind": "json_non_object", "json": parsed, "raw": raw}


def request_json(
    method: str,
    url: str,
    *,
    provider: str,
    body: dict | None = None,
    headers: dict | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    data = None
    if body is not None:
        data = json.dumps(body, ensure_ascii=False).encode("utf-8")

    req = Request(
        url,
        data=data,
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(headers or {}),
        },
        method=method,
    )

    try:
        with urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
            parsed_any = _parse_json_or_text(raw)
    except HTTPError as e:
        raw = ""
        try:
            raw = e.read().decode("utf-8", errors="replace")
        except OSError:
            raw = ""
        parsed_any = _parse_json_or_text(raw)
        body_json = parsed_any.get("json") if parsed_any.get("kind") == "json" else {}

        logger.warning(
            "Gateway HTTP error",
            extra={"provider": provider, "status_code": e.code, "url": url},
        )

        msg = (
            (body_json or {}).get("errorMessage")
            or (body_json or {}).get("error_description")
            or (body_json or {}).get("message")
            or _safe_preview(parsed_any.get("raw") or str(e))
        )
        if e.code >= 500:
            raise GatewayUnavailable(
                f"{provider} HTTP {e.code}: {msg}", provider=provider, raw=body_json or {}
            ) from e
        raise GatewayRejected(
            f"{provider} HTTP {e.code}: {msg}", provider=provider, raw=body_json or {}
        ) from e
    except URLError as e:
        logger.warning("Gateway unreachable", extra={"provider": provider, "url": url})
        raise GatewayUnavailable(f"{provider} unreachable: {e.reason}", provider=provider) from e
    except OSError as e:
        # socket timeout / connection reset
        logger.warning("Gateway I/O failure", extra={"provider": provider, "url": url})
        raise GatewayUnavailable(f"{provider} request failed: {e}", provider=provider) from e

    if parsed_any.get("kind") != "json":
        raise GatewayUnavailable(
            f"{provider} returned non-JSON: {_safe_preview(parsed_any.get('raw') or '')}",
            provider=provider,
        )

    return parsed_any.get("json") or {}
