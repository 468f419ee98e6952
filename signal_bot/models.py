"""Domain models shared by parser, executor, tracker and coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation


@dataclass(frozen=True, slots=True)
class TradeIntent:
    symbol: str
    entry_price: Decimal
    take_profit_price: Decimal
    leverage: int = 3
    margin_usdt: Decimal = Decimal("5")
    side: str = "LONG"

    @property
    def notional(self) -> Decimal:
        return self.margin_usdt * self.leverage


@dataclass(frozen=True, slots=True)
class InstrumentFilter:
    symbol: str
    step_size: str | None

    @property
    def precision(self) -> int:
        """Decimal places allowed by the lot-size step ("0.00100000" -> 3, "1" -> 0)."""
        if self.step_size is None:
            raise ValueError(f"no LOT_SIZE step for {self.symbol}")
        try:
            step = Decimal(str(self.step_size))
        except InvalidOperation as exc:
            raise ValueError(f"invalid step size {self.step_size!r}") from exc
        if not step.is_finite() or step <= 0:
            raise ValueError(f"invalid step size {self.step_size!r}")
        exponent = step.normalize().as_tuple().exponent
        return max(0, -int(exponent))


@dataclass(frozen=True, slots=True)
class SizedOrder:
    intent: TradeIntent
    quantity: Decimal

    @property
    def symbol(self) -> str:
        return self.intent.symbol


@dataclass(slots=True)
class Position:
    symbol: str
    entry_order_id: str
    take_profit_order_id: str | None
    quantity: Decimal
    entry_price: Decimal
    take_profit_price: Decimal
    leverage: int
    margin_usdt: Decimal
    opened_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def has_take_profit(self) -> bool:
        return self.take_profit_order_id is not None


@dataclass(frozen=True, slots=True)
class ClosureEvent:
    position: Position
    closed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def symbol(self) -> str:
        return self.position.symbol

    @property
    def entry_price(self) -> Decimal:
        return self.position.entry_price

    @property
    def exit_price(self) -> Decimal:
        # Fill price is not queried; the take-profit level is reported as the exit.
        return self.position.take_profit_price

    @property
    def quantity(self) -> Decimal:
        return self.position.quantity


@dataclass(frozen=True, slots=True)
class IncomingMessage:
    chat_id: str
    text: str


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of a best-effort call that never aborts the caller."""

    step: str
    ok: bool
    error: str | None = None
