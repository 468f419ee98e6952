"""Real Binance USDT-M Futures client with async wrappers."""

from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from signal_bot.binance_sign import build_query, signed_query
from signal_bot.errors import ExchangeError
from signal_bot.models import InstrumentFilter


class BinanceFuturesClientReal:
    """Thin async wrapper over the Binance futures REST API.

    Calls are not retried: every failure is raised as ``ExchangeError``.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        logger: Any | None = None,
        base_url: str = "https://fapi.binance.com",
        timeout_sec: float = 10,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)
        self.timeout_sec = timeout_sec

    async def test_connection(self) -> bool:
        try:
            await self._request("GET", "/fapi/v1/ping")
            return True
        except ExchangeError as exc:
            self._log_error("test_connection", exc)
            return False

    async def get_instrument_filter(self, symbol: str) -> InstrumentFilter | None:
        symbol = self.normalize_symbol(symbol)
        data = await self._request("GET", "/fapi/v1/exchangeInfo")
        rows = data.get("symbols") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ExchangeError("exchangeInfo response has no symbols")

        for row in rows:
            if str(row.get("symbol") or "") != symbol:
                continue
            step_size = None
            for flt in row.get("filters") or []:
                if flt.get("filterType") == "LOT_SIZE":
                    step_size = flt.get("stepSize")
                    break
            return InstrumentFilter(symbol=symbol, step_size=step_size)
        return None

    async def get_mark_price(self, symbol: str) -> Decimal:
        data = await self._request("GET", "/fapi/v1/premiumIndex", {"symbol": self.normalize_symbol(symbol)})
        price = data.get("markPrice") if isinstance(data, dict) else None
        if price in (None, ""):
            raise ExchangeError(f"mark price missing for {symbol}")
        return Decimal(str(price))

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        await self._signed_request(
            "POST",
            "/fapi/v1/leverage",
            {"symbol": self.normalize_symbol(symbol), "leverage": int(leverage)},
        )

    async def set_margin_type(self, symbol: str, margin_type: str) -> None:
        await self._signed_request(
            "POST",
            "/fapi/v1/marginType",
            {"symbol": self.normalize_symbol(symbol), "marginType": margin_type.upper()},
        )

    async def place_market_order(self, symbol: str, side: str, quantity: Decimal) -> str:
        payload: dict[str, object] = {
            "symbol": self.normalize_symbol(symbol),
            "side": self._to_binance_side(side),
            "type": "MARKET",
            "quantity": Decimal(str(quantity)),
        }
        data = await self._signed_request("POST", "/fapi/v1/order", payload)
        return self._order_id(data)

    async def place_take_profit_market_order(
        self,
        symbol: str,
        side: str,
        stop_price: Decimal,
        close_position: bool = True,
    ) -> str:
        payload: dict[str, object] = {
            "symbol": self.normalize_symbol(symbol),
            "side": self._to_binance_side(side),
            "type": "TAKE_PROFIT_MARKET",
            "stopPrice": Decimal(str(stop_price)),
            "closePosition": bool(close_position),
        }
        data = await self._signed_request("POST", "/fapi/v1/order", payload)
        return self._order_id(data)

    async def get_position_amount(self, symbol: str) -> Decimal:
        symbol = self.normalize_symbol(symbol)
        data = await self._signed_request("GET", "/fapi/v2/positionRisk", {"symbol": symbol})
        rows = data if isinstance(data, list) else []
        total = Decimal("0")
        found = False
        for row in rows:
            if str(row.get("symbol") or "") != symbol:
                continue
            found = True
            total += Decimal(str(row.get("positionAmt") or "0"))
        if not found:
            raise ExchangeError(f"positionRisk returned no row for {symbol}")
        return total

    def normalize_symbol(self, symbol: str) -> str:
        return symbol.replace("/", "").replace("-", "").replace("_", "").upper().strip()

    async def _request(self, method: str, path: str, params: dict[str, object] | None = None) -> Any:
        return await asyncio.to_thread(self._request_sync, method, path, build_query(params or {}), {})

    async def _signed_request(self, method: str, path: str, params: dict[str, object] | None = None) -> Any:
        query = signed_query(params or {}, self.api_secret)
        headers = {"X-MBX-APIKEY": self.api_key}
        return await asyncio.to_thread(self._request_sync, method, path, query, headers)

    def _request_sync(self, method: str, path: str, query: str, headers: dict[str, str]) -> Any:
        method = method.upper()
        url = f"{self.base_url}{path}"
        data = None
        if method == "GET":
            if query:
                url = f"{url}?{query}"
        else:
            data = query.encode("utf-8")
            headers = {**headers, "Content-Type": "application/x-www-form-urlencoded"}

        req = Request(url=url, data=data, method=method, headers=headers)

        try:
            with urlopen(req, timeout=self.timeout_sec) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="ignore")
            raise self._error_from_body(raw, f"HTTPError {exc.code}") from exc
        except URLError as exc:
            raise ExchangeError(f"URLError: {exc}") from exc
        except TimeoutError as exc:
            raise ExchangeError(f"timeout: {exc}") from exc

        try:
            payload = json.loads(raw or "{}")
        except ValueError as exc:
            raise ExchangeError(f"invalid JSON: {raw[:200]}") from exc
        if isinstance(payload, dict) and isinstance(payload.get("code"), int) and payload["code"] < 0:
            raise ExchangeError(f"API error code={payload['code']} msg={payload.get('msg')}", payload["code"])
        return payload

    def _error_from_body(self, raw: str, fallback: str) -> ExchangeError:
        try:
            body = json.loads(raw or "{}")
        except ValueError:
            return ExchangeError(f"{fallback}: {raw}")
        if isinstance(body, dict) and "code" in body:
            return ExchangeError(str(body.get("msg") or fallback), int(body.get("code") or 0))
        return ExchangeError(f"{fallback}: {raw}")

    def _order_id(self, data: Any) -> str:
        oid = data.get("orderId") if isinstance(data, dict) else None
        if oid is None:
            raise ExchangeError("exchange order id missing")
        return str(oid)

    def _to_binance_side(self, side: str) -> str:
        value = side.upper()
        if value not in {"BUY", "SELL"}:
            raise ValueError("invalid side")
        return value

    def _log_error(self, scope: str, exc: Exception) -> None:
        if hasattr(self.logger, "error"):
            self.logger.error("Binance real client error [{}]: {}", scope, exc)
