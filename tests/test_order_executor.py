"""Tests for OrderExecutor."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from signal_bot.errors import (
    ExchangeError,
    ExecutionError,
    InstrumentNotFound,
    PartialExecutionError,
    SizingError,
)
from signal_bot.models import InstrumentFilter, TradeIntent
from signal_bot.order_executor import OrderExecutor


def _intent():
    return TradeIntent(
        symbol="BTCUSDT",
        entry_price=Decimal("50000"),
        take_profit_price=Decimal("51000"),
        leverage=5,
        margin_usdt=Decimal("10"),
    )


@pytest.fixture
def executor(exchange, logger):
    return OrderExecutor(exchange_client=exchange, logger=logger)


class TestExecuteSuccess:
    @pytest.mark.asyncio
    async def test_order_sequence(self, executor, exchange):
        position = await executor.execute(_intent())

        exchange.set_leverage.assert_awaited_once_with("BTCUSDT", 5)
        exchange.set_margin_type.assert_awaited_once_with("BTCUSDT", "ISOLATED")
        exchange.place_market_order.assert_awaited_once_with("BTCUSDT", "BUY", Decimal("0.001"))
        exchange.place_take_profit_market_order.assert_awaited_once_with(
            "BTCUSDT", "SELL", Decimal("51000"), close_position=True
        )

        assert position.symbol == "BTCUSDT"
        assert position.entry_order_id == "1001"
        assert position.take_profit_order_id == "1002"
        assert position.quantity == Decimal("0.001")
        assert position.entry_price == Decimal("50000")
        assert position.take_profit_price == Decimal("51000")
        assert position.opened_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, executor, exchange):
        exchange.attach_mock(exchange.set_leverage, "set_leverage")
        exchange.attach_mock(exchange.set_margin_type, "set_margin_type")
        exchange.attach_mock(exchange.get_instrument_filter, "get_instrument_filter")
        exchange.attach_mock(exchange.place_market_order, "place_market_order")
        exchange.attach_mock(exchange.place_take_profit_market_order, "place_take_profit_market_order")

        await executor.execute(_intent())

        calls = [c[0] for c in exchange.mock_calls]
        assert calls == [
            "set_leverage",
            "set_margin_type",
            "get_instrument_filter",
            "place_market_order",
            "place_take_profit_market_order",
        ]

    @pytest.mark.asyncio
    async def test_margin_type_error_is_not_fatal(self, executor, exchange, logger):
        exchange.set_margin_type.side_effect = ExchangeError("No need to change margin type.", -4046)

        position = await executor.execute(_intent())

        assert position.take_profit_order_id == "1002"
        exchange.place_market_order.assert_awaited_once()
        assert any("margin type" in c.args[0] for c in logger.info.call_args_list)

    @pytest.mark.asyncio
    async def test_no_stop_loss_order(self, executor, exchange):
        await executor.execute(_intent())
        exchange.place_market_order.assert_awaited_once()
        assert exchange.place_take_profit_market_order.await_count == 1


class TestSetMarginType:
    @pytest.mark.asyncio
    async def test_result_ok(self, executor):
        result = await executor.set_margin_type("BTCUSDT")
        assert result.ok is True
        assert result.step == "margin_mode"

    @pytest.mark.asyncio
    async def test_result_failed(self, executor, exchange):
        exchange.set_margin_type.side_effect = RuntimeError("boom")
        result = await executor.set_margin_type("BTCUSDT")
        assert result.ok is False
        assert result.error == "boom"


class TestExecuteFailures:
    @pytest.mark.asyncio
    async def test_leverage_failure_aborts(self, executor, exchange):
        exchange.set_leverage.side_effect = ExchangeError("Leverage is not valid", -4028)

        with pytest.raises(ExecutionError) as exc_info:
            await executor.execute(_intent())

        assert exc_info.value.step == "leverage"
        assert isinstance(exc_info.value.cause, ExchangeError)
        exchange.set_margin_type.assert_not_awaited()
        exchange.place_market_order.assert_not_awaited()
        exchange.place_take_profit_market_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, executor, exchange):
        exchange.get_instrument_filter = AsyncMock(return_value=None)

        with pytest.raises(InstrumentNotFound):
            await executor.execute(_intent())
        exchange.place_market_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_quantity(self, executor, exchange):
        exchange.get_instrument_filter = AsyncMock(
            return_value=InstrumentFilter(symbol="BTCUSDT", step_size="1")
        )

        with pytest.raises(SizingError):
            await executor.execute(_intent())
        exchange.place_market_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_entry_failure_places_no_take_profit(self, executor, exchange):
        exchange.place_market_order.side_effect = ExchangeError("Margin is insufficient.", -2019)

        with pytest.raises(ExecutionError) as exc_info:
            await executor.execute(_intent())

        assert exc_info.value.step == "entry_order"
        assert not isinstance(exc_info.value, PartialExecutionError)
        exchange.place_take_profit_market_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_take_profit_failure_carries_entry_only_position(self, executor, exchange):
        exchange.place_take_profit_market_order.side_effect = ExchangeError("Order would immediately trigger.", -2021)

        with pytest.raises(PartialExecutionError) as exc_info:
            await executor.execute(_intent())

        err = exc_info.value
        assert err.step == "tp_order"
        assert err.position.entry_order_id == "1001"
        assert err.position.take_profit_order_id is None
        assert err.position.has_take_profit is False
        assert err.position.quantity == Decimal("0.001")
