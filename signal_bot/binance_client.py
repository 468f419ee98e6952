"""Unified Binance futures client wrapper (paper/live)."""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from signal_bot.binance_client_real import BinanceFuturesClientReal
from signal_bot.errors import ExchangeError
from signal_bot.models import InstrumentFilter, Position


@dataclass(slots=True)
class PaperOrder:
    order_id: str
    symbol: str
    side: str
    type: str
    quantity: Decimal | None
    stop_price: Decimal | None
    status: str
    close_position: bool = False


class _BinanceFuturesClientPaper:
    """In-memory futures account.

    Market orders fill immediately; take-profit orders fire once the mark
    price seen by ``apply_market_price`` reaches the stop price.
    Instrument metadata and mark prices come from the public endpoints.
    """

    VALID_SIDES = {"BUY", "SELL"}

    def __init__(self, public_client: BinanceFuturesClientReal, logger: Any | None = None) -> None:
        self.public_client = public_client
        self.logger = logger
        self._leverage_by_symbol: dict[str, int] = {}
        self._margin_type_by_symbol: dict[str, str] = {}
        self._last_price_by_symbol: dict[str, Decimal] = {}
        self._orders: dict[str, PaperOrder] = {}
        self._positions: dict[str, Decimal] = {}
        self._lock = asyncio.Lock()

    async def test_connection(self) -> bool:
        return True

    async def get_instrument_filter(self, symbol: str) -> InstrumentFilter | None:
        return await self.public_client.get_instrument_filter(symbol)

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        if int(leverage) < 1 or int(leverage) > 125:
            raise ExchangeError("Leverage is not valid", -4028)
        self._leverage_by_symbol[self.normalize_symbol(symbol)] = int(leverage)

    async def set_margin_type(self, symbol: str, margin_type: str) -> None:
        symbol = self.normalize_symbol(symbol)
        if self._margin_type_by_symbol.get(symbol) == margin_type.upper():
            raise ExchangeError("No need to change margin type.", -4046)
        self._margin_type_by_symbol[symbol] = margin_type.upper()

    async def place_market_order(self, symbol: str, side: str, quantity: Decimal) -> str:
        symbol = self.normalize_symbol(symbol)
        side = self._validate_side(side)
        if symbol not in self._last_price_by_symbol:
            await self.apply_market_price(symbol, await self.public_client.get_mark_price(symbol))
        async with self._lock:
            order = PaperOrder(
                order_id=str(uuid.uuid4()),
                symbol=symbol,
                side=side,
                type="MARKET",
                quantity=Decimal(str(quantity)),
                stop_price=None,
                status="FILLED",
            )
            self._orders[order.order_id] = order
            signed_qty = order.quantity if side == "BUY" else -order.quantity
            self._positions[symbol] = self._positions.get(symbol, Decimal("0")) + signed_qty
            return order.order_id

    async def place_take_profit_market_order(
        self,
        symbol: str,
        side: str,
        stop_price: Decimal,
        close_position: bool = True,
    ) -> str:
        async with self._lock:
            symbol = self.normalize_symbol(symbol)
            order = PaperOrder(
                order_id=str(uuid.uuid4()),
                symbol=symbol,
                side=self._validate_side(side),
                type="TAKE_PROFIT_MARKET",
                quantity=None,
                stop_price=Decimal(str(stop_price)),
                status="NEW",
                close_position=close_position,
            )
            self._orders[order.order_id] = order
            return order.order_id

    async def restore_position(self, position: Position) -> None:
        """Re-seed the in-memory book with a position persisted before a restart."""
        async with self._lock:
            symbol = self.normalize_symbol(position.symbol)
            self._positions[symbol] = Decimal(str(position.quantity))
            self._last_price_by_symbol.setdefault(symbol, position.entry_price)
            if position.take_profit_order_id is not None:
                self._orders[position.take_profit_order_id] = PaperOrder(
                    order_id=position.take_profit_order_id,
                    symbol=symbol,
                    side="SELL",
                    type="TAKE_PROFIT_MARKET",
                    quantity=None,
                    stop_price=position.take_profit_price,
                    status="NEW",
                    close_position=True,
                )

    async def get_position_amount(self, symbol: str) -> Decimal:
        symbol = self.normalize_symbol(symbol)
        if self._positions.get(symbol):
            mark_price = await self.public_client.get_mark_price(symbol)
            await self.apply_market_price(symbol, mark_price)
        return self._positions.get(symbol, Decimal("0"))

    async def apply_market_price(self, symbol: str, price: Decimal) -> None:
        async with self._lock:
            symbol = self.normalize_symbol(symbol)
            price = Decimal(str(price))
            self._last_price_by_symbol[symbol] = price
            for order in self._orders.values():
                if order.symbol != symbol or order.type != "TAKE_PROFIT_MARKET" or order.status != "NEW":
                    continue
                if self._stop_triggered(order, price):
                    order.status = "FILLED"
                    if order.close_position:
                        self._positions.pop(symbol, None)

    def normalize_symbol(self, symbol: str) -> str:
        return self.public_client.normalize_symbol(symbol)

    def _validate_side(self, side: str) -> str:
        value = side.upper()
        if value not in self.VALID_SIDES:
            raise ValueError("invalid side")
        return value

    def _stop_triggered(self, order: PaperOrder, price: Decimal) -> bool:
        if order.stop_price is None:
            return False
        if order.side == "SELL":
            return price >= order.stop_price
        return price <= order.stop_price


class BinanceFuturesClient:
    """Common wrapper so callers do not depend on paper/live implementation."""

    def __init__(
        self,
        mode: str,
        api_key: str | None = None,
        api_secret: str | None = None,
        base_url: str = "https://fapi.binance.com",
        logger: Any | None = None,
    ) -> None:
        self.mode = mode
        if mode == "live":
            if not api_key or not api_secret:
                raise ValueError("Live mode requires api_key and api_secret")
            self._client: Any = BinanceFuturesClientReal(
                api_key=api_key,
                api_secret=api_secret,
                logger=logger,
                base_url=base_url,
            )
        else:
            public_client = BinanceFuturesClientReal(
                api_key=api_key or "",
                api_secret=api_secret or "",
                logger=logger,
                base_url=base_url,
            )
            self._client = _BinanceFuturesClientPaper(public_client=public_client, logger=logger)

    @property
    def is_paper(self) -> bool:
        return isinstance(self._client, _BinanceFuturesClientPaper)

    async def test_connection(self) -> bool:
        return await self._client.test_connection()

    async def get_instrument_filter(self, symbol: str) -> InstrumentFilter | None:
        return await self._client.get_instrument_filter(symbol)

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        await self._client.set_leverage(symbol, leverage)

    async def set_margin_type(self, symbol: str, margin_type: str) -> None:
        await self._client.set_margin_type(symbol, margin_type)

    async def place_market_order(self, symbol: str, side: str, quantity: Decimal) -> str:
        return await self._client.place_market_order(symbol, side, quantity)

    async def place_take_profit_market_order(
        self,
        symbol: str,
        side: str,
        stop_price: Decimal,
        close_position: bool = True,
    ) -> str:
        return await self._client.place_take_profit_market_order(
            symbol, side, stop_price, close_position=close_position
        )

    async def get_position_amount(self, symbol: str) -> Decimal:
        return await self._client.get_position_amount(symbol)

    async def restore_position(self, position: Position) -> None:
        if hasattr(self._client, "restore_position"):
            await self._client.restore_position(position)

    async def apply_market_price(self, symbol: str, price: Decimal) -> None:
        if hasattr(self._client, "apply_market_price"):
            await self._client.apply_market_price(symbol, price)

    def normalize_symbol(self, symbol: str) -> str:
        return self._client.normalize_symbol(symbol)
