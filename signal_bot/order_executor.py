"""Entry + take-profit order sequence for a single LONG intent."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from signal_bot.errors import ExecutionError, PartialExecutionError
from signal_bot.models import Position, SizedOrder, StepResult, TradeIntent
from signal_bot.quantity_sizer import QuantitySizer


class OrderExecutor:
    """Configures the symbol, opens the position and rests a take-profit.

    No stop-loss is ever placed and nothing is rolled back: a failure after
    leverage/margin changes or after the entry fill leaves that state on the
    exchange.
    """

    def __init__(
        self,
        exchange_client,
        logger,
        sizer: QuantitySizer | None = None,
        margin_type: str = "ISOLATED",
    ) -> None:
        self.exchange_client = exchange_client
        self.logger = logger
        self.sizer = sizer or QuantitySizer()
        self.margin_type = margin_type

    async def execute(self, intent: TradeIntent) -> Position:
        symbol = intent.symbol
        self.logger.info(
            "OrderExecutor: placing order symbol={} entry={} tp={} leverage={} margin={}",
            symbol,
            intent.entry_price,
            intent.take_profit_price,
            intent.leverage,
            intent.margin_usdt,
        )

        try:
            await self.exchange_client.set_leverage(symbol, intent.leverage)
        except Exception as exc:  # noqa: BLE001
            raise self._fail("leverage", symbol, exc) from exc

        margin_result = await self.set_margin_type(symbol)
        if not margin_result.ok:
            self.logger.info("OrderExecutor: margin type already set or error symbol={} err={}", symbol, margin_result.error)

        sized = await self.size(intent)
        self.logger.info("OrderExecutor: calculated quantity symbol={} qty={}", symbol, sized.quantity)

        try:
            entry_order_id = await self.exchange_client.place_market_order(symbol, "BUY", sized.quantity)
        except Exception as exc:  # noqa: BLE001
            raise self._fail("entry_order", symbol, exc) from exc
        self.logger.info("OrderExecutor: entry order placed symbol={} order_id={}", symbol, entry_order_id)

        position = Position(
            symbol=symbol,
            entry_order_id=entry_order_id,
            take_profit_order_id=None,
            quantity=sized.quantity,
            entry_price=intent.entry_price,
            take_profit_price=intent.take_profit_price,
            leverage=intent.leverage,
            margin_usdt=intent.margin_usdt,
            opened_at=datetime.now(UTC),
        )

        try:
            position.take_profit_order_id = await self.exchange_client.place_take_profit_market_order(
                symbol,
                "SELL",
                intent.take_profit_price,
                close_position=True,
            )
        except Exception as exc:  # noqa: BLE001
            self.logger.error(
                "OrderExecutor: entry filled but take profit failed symbol={} entry_order_id={} err={}",
                symbol,
                entry_order_id,
                exc,
            )
            raise PartialExecutionError(position, exc) from exc

        self.logger.info(
            "OrderExecutor: take profit order placed symbol={} order_id={} stop_price={}",
            symbol,
            position.take_profit_order_id,
            intent.take_profit_price,
        )
        return position

    async def set_margin_type(self, symbol: str) -> StepResult:
        """Best-effort: the exchange rejects the call when the mode is already set."""
        try:
            await self.exchange_client.set_margin_type(symbol, self.margin_type)
        except Exception as exc:  # noqa: BLE001
            return StepResult(step="margin_mode", ok=False, error=str(exc))
        return StepResult(step="margin_mode", ok=True)

    async def size(self, intent: TradeIntent) -> SizedOrder:
        instrument = await self.exchange_client.get_instrument_filter(intent.symbol)
        return self.sizer.size(intent, instrument)

    def _fail(self, step: str, symbol: str, exc: Exception) -> ExecutionError:
        self.logger.error("OrderExecutor: {} failed symbol={} err={}", step, symbol, exc)
        return ExecutionError(step, exc)
