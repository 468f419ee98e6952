"""Order quantity sizing against the instrument lot-size step."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, DivisionByZero, InvalidOperation

from signal_bot.errors import InstrumentNotFound, SizingError
from signal_bot.models import InstrumentFilter, SizedOrder, TradeIntent


class QuantitySizer:
    """Converts margin x leverage into a tradable base-asset quantity."""

    def size(self, intent: TradeIntent, instrument: InstrumentFilter | None) -> SizedOrder:
        if instrument is None:
            raise InstrumentNotFound(intent.symbol)

        try:
            precision = instrument.precision
        except ValueError as exc:
            raise SizingError(f"{intent.symbol}: {exc}") from exc

        raw = self.raw_quantity(intent)
        try:
            quantity = self.round_quantity(raw, precision)
        except InvalidOperation as exc:
            raise SizingError(f"{intent.symbol}: quantity {raw} cannot be rounded to {precision} decimals") from exc
        if quantity <= 0:
            raise SizingError(
                f"{intent.symbol}: quantity rounds to zero "
                f"(notional={intent.notional} entry={intent.entry_price} step={instrument.step_size})"
            )
        return SizedOrder(intent=intent, quantity=quantity)

    def raw_quantity(self, intent: TradeIntent) -> Decimal:
        try:
            return intent.notional / intent.entry_price
        except (DivisionByZero, InvalidOperation) as exc:
            raise SizingError(f"{intent.symbol}: invalid entry price {intent.entry_price}") from exc

    @staticmethod
    def round_quantity(quantity: Decimal, precision: int) -> Decimal:
        """Truncate to ``precision`` decimals so the step is never exceeded."""
        return quantity.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_DOWN)
