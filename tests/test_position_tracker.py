"""Tests for PositionTracker."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from signal_bot.errors import ExchangeError
from signal_bot.models import Position
from signal_bot.position_tracker import PositionTracker


def _position():
    return Position(
        symbol="BTCUSDT",
        entry_order_id="1001",
        take_profit_order_id="1002",
        quantity=Decimal("0.001"),
        entry_price=Decimal("50000"),
        take_profit_price=Decimal("51000"),
        leverage=5,
        margin_usdt=Decimal("10"),
        opened_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


@pytest.fixture
def tracker(exchange, logger):
    return PositionTracker(exchange_client=exchange, logger=logger)


class TestCheckClosed:
    @pytest.mark.asyncio
    async def test_open_position_returns_none(self, tracker, exchange):
        assert await tracker.check_closed(_position()) is None
        exchange.get_position_amount.assert_awaited_once_with("BTCUSDT")

    @pytest.mark.asyncio
    async def test_shrunk_position_still_open(self, tracker, exchange):
        exchange.get_position_amount.return_value = Decimal("0.0005")
        assert await tracker.check_closed(_position()) is None

    @pytest.mark.asyncio
    async def test_zero_amount_emits_event(self, tracker, exchange):
        exchange.get_position_amount.return_value = Decimal("0.000")
        position = _position()

        event = await tracker.check_closed(position)

        assert event is not None
        assert event.position is position
        assert event.symbol == "BTCUSDT"
        assert event.entry_price == Decimal("50000")
        assert event.exit_price == Decimal("51000")
        assert event.quantity == Decimal("0.001")

    @pytest.mark.asyncio
    async def test_query_error_is_logged_not_raised(self, tracker, exchange, logger):
        exchange.get_position_amount.side_effect = ExchangeError("URLError: down")

        assert await tracker.check_closed(_position()) is None
        logger.error.assert_called_once()
