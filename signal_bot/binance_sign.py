"""Helpers for signing Binance futures API requests."""

from __future__ import annotations

import hashlib
import hmac
import time
from decimal import Decimal
from urllib.parse import urlencode


def build_query(params: dict[str, object]) -> str:
    """Build query string without None values, preserving insertion order."""
    filtered = {k: _format_value(v) for k, v in params.items() if v is not None}
    return urlencode(list(filtered.items()), doseq=True)


def sign_payload(secret: str, payload: str) -> str:
    """Return HMAC SHA256 hex digest for payload."""
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def signed_query(params: dict[str, object], api_secret: str, recv_window: int = 5000) -> str:
    """Return query string with timestamp, recvWindow and signature appended."""
    all_params = {**params, "recvWindow": recv_window, "timestamp": int(time.time() * 1000)}
    query = build_query(all_params)
    return f"{query}&signature={sign_payload(api_secret, query)}"


def _format_value(value: object) -> object:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    return value
