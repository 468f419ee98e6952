"""
Shared test fixtures.

Provides mock exchange clients, notifiers and loggers for the signal bot
components.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from signal_bot.models import InstrumentFilter

SIGNAL_TEXT = "🟢 LONG SIGNAL - BTCUSDT\nEntry: 50000\nTP: 51000\nLeverage: 5x\nMargin: $10"
CHAT_ID = "-1001234567890"


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def exchange():
    """Exchange client double whose calls all succeed."""
    client = MagicMock()
    client.set_leverage = AsyncMock(return_value=None)
    client.set_margin_type = AsyncMock(return_value=None)
    client.get_instrument_filter = AsyncMock(
        side_effect=lambda symbol: InstrumentFilter(symbol=symbol, step_size="0.001")
    )
    client.place_market_order = AsyncMock(return_value="1001")
    client.place_take_profit_market_order = AsyncMock(return_value="1002")
    client.get_position_amount = AsyncMock(return_value=Decimal("0.001"))
    return client


@pytest.fixture
def notifier():
    sender = MagicMock()
    sender.notify = AsyncMock()
    return sender
