"""Tests for QuantitySizer."""

from decimal import Decimal

import pytest

from signal_bot.errors import InstrumentNotFound, SizingError
from signal_bot.models import InstrumentFilter, TradeIntent
from signal_bot.quantity_sizer import QuantitySizer


def _intent(entry="100", margin="5", leverage=3, symbol="BTCUSDT"):
    return TradeIntent(
        symbol=symbol,
        entry_price=Decimal(entry),
        take_profit_price=Decimal(entry) * 2,
        leverage=leverage,
        margin_usdt=Decimal(margin),
    )


@pytest.fixture
def sizer():
    return QuantitySizer()


class TestPrecision:
    @pytest.mark.parametrize(
        "step,expected",
        [
            ("0.001", 3),
            ("0.00100000", 3),
            ("1", 0),
            ("1.0", 0),
            ("10", 0),
            ("0.1", 1),
        ],
    )
    def test_precision_from_step(self, step, expected):
        assert InstrumentFilter(symbol="X", step_size=step).precision == expected

    def test_missing_step_raises(self):
        with pytest.raises(ValueError):
            InstrumentFilter(symbol="X", step_size=None).precision


class TestSize:
    def test_basic_quantity(self, sizer):
        sized = sizer.size(_intent(), InstrumentFilter(symbol="BTCUSDT", step_size="0.001"))
        assert sized.quantity == Decimal("0.15")
        assert sized.symbol == "BTCUSDT"

    def test_integral_step_rounds_to_integer(self, sizer):
        sized = sizer.size(_intent(entry="0.7"), InstrumentFilter(symbol="DOGEUSDT", step_size="1"))
        # 15 / 0.7 = 21.43
        assert sized.quantity == Decimal("21")
        assert sized.quantity == sized.quantity.to_integral_value()

    def test_never_rounds_up_past_step(self, sizer):
        # 15 / 7 = 2.142857...
        sized = sizer.size(_intent(entry="7"), InstrumentFilter(symbol="X", step_size="0.01"))
        assert sized.quantity == Decimal("2.14")

    def test_truncates_instead_of_half_up(self, sizer):
        # 15 / 9 = 1.6666...
        sized = sizer.size(_intent(entry="9"), InstrumentFilter(symbol="X", step_size="0.1"))
        assert sized.quantity == Decimal("1.6")

    def test_end_to_end_example(self, sizer):
        intent = _intent(entry="50000", margin="10", leverage=5)
        sized = sizer.size(intent, InstrumentFilter(symbol="BTCUSDT", step_size="0.001"))
        assert sized.quantity == Decimal("0.001")


class TestSizeErrors:
    def test_zero_quantity_raises(self, sizer):
        with pytest.raises(SizingError):
            sizer.size(_intent(entry="50000"), InstrumentFilter(symbol="BTCUSDT", step_size="0.001"))

    def test_unknown_instrument(self, sizer):
        with pytest.raises(InstrumentNotFound) as exc_info:
            sizer.size(_intent(symbol="NOPEUSDT"), None)
        assert exc_info.value.symbol == "NOPEUSDT"

    @pytest.mark.parametrize("step", [None, "abc", "0", "-0.1"])
    def test_invalid_step_raises_sizing_error(self, sizer, step):
        with pytest.raises(SizingError):
            sizer.size(_intent(), InstrumentFilter(symbol="BTCUSDT", step_size=step))

    def test_oversized_quantity_raises_sizing_error(self, sizer):
        intent = _intent(entry="0.000000000000000000000000000001")
        with pytest.raises(SizingError) as exc_info:
            sizer.size(intent, InstrumentFilter(symbol="BTCUSDT", step_size="0.001"))
        assert "BTCUSDT" in exc_info.value.message
