"""Parser for incoming Telegram LONG signal messages."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from signal_bot.models import TradeIntent


SIGNAL_MARKER = "LONG SIGNAL"

_NUMBER = r"(?P<value>[-+]?\d+(?:\.\d+)?|[-+]?\.\d+)"

# Evaluated in this order; the first three are mandatory.
_PATTERNS: dict[str, re.Pattern[str]] = {
    "symbol": re.compile(r"LONG SIGNAL - (?P<value>\w+)"),
    "entry": re.compile(r"Entry:\s*" + _NUMBER),
    "take_profit": re.compile(r"TP:\s*" + _NUMBER),
    "leverage": re.compile(r"Leverage:\s*(?P<value>\d+)x"),
    "margin": re.compile(r"Margin:\s*\$?" + _NUMBER),
}


class SignalParser:
    """Turn raw message text into a ``TradeIntent`` or ``None``."""

    def __init__(
        self,
        default_leverage: int = 3,
        default_margin_usdt: Decimal | float | str = Decimal("5"),
        logger: Any | None = None,
    ) -> None:
        self.default_leverage = int(default_leverage)
        self.default_margin_usdt = Decimal(str(default_margin_usdt))
        self.logger = logger

    def is_signal(self, raw_text: str | None) -> bool:
        return SIGNAL_MARKER in (raw_text or "")

    def parse(self, raw_text: str | None) -> TradeIntent | None:
        text = raw_text or ""
        if not self.is_signal(text):
            return None

        symbol = self._extract(text, "symbol")
        if not symbol:
            return self._reject("missing symbol")

        entry = self._extract_decimal(text, "entry")
        if entry is None:
            return self._reject("missing or invalid entry", symbol)

        take_profit = self._extract_decimal(text, "take_profit")
        if take_profit is None:
            return self._reject("missing or invalid TP", symbol)

        raw_leverage = self._extract(text, "leverage")
        leverage = int(raw_leverage) if raw_leverage is not None else self.default_leverage

        margin = self.default_margin_usdt
        if _PATTERNS["margin"].search(text):
            margin = self._extract_decimal(text, "margin")
            if margin is None:
                return self._reject("invalid margin", symbol)

        if entry <= 0 or take_profit <= 0 or leverage <= 0 or margin <= 0:
            return self._reject("non-positive numeric field", symbol)

        return TradeIntent(
            symbol=symbol,
            entry_price=entry,
            take_profit_price=take_profit,
            leverage=leverage,
            margin_usdt=margin,
        )

    def _extract(self, text: str, field: str) -> str | None:
        match = _PATTERNS[field].search(text)
        if not match:
            return None
        return match.group("value")

    def _extract_decimal(self, text: str, field: str) -> Decimal | None:
        raw = self._extract(text, field)
        if raw is None:
            return None
        try:
            value = Decimal(raw)
        except InvalidOperation:
            return None
        if not value.is_finite() or value < 0:
            return None
        return value

    def _reject(self, reason: str, symbol: str | None = None) -> None:
        if self.logger is not None and hasattr(self.logger, "info"):
            self.logger.info("SignalParser: rejected signal symbol={} reason={}", symbol, reason)
        return None
