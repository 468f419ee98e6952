"""Domain exceptions raised by the signal bot core.

Parse rejections are not exceptions: ``SignalParser.parse`` returns ``None``
for messages that are not signals or that fail validation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signal_bot.models import Position


class BotError(Exception):
    """Base error carrying a human readable message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ExchangeError(BotError):
    """Binance API error with the exchange error code (0 when unknown)."""

    def __init__(self, message: str, code: int = 0) -> None:
        self.code = code
        super().__init__(message)


class InstrumentNotFound(BotError):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"Symbol {symbol} not found")


class SizingError(BotError):
    """Quantity could not be computed or rounded to zero."""


class ExecutionError(BotError):
    """A step of the order sequence failed.

    ``step`` is one of ``leverage``, ``margin_mode``, ``entry_order`` or
    ``tp_order``; ``cause`` is the underlying exchange error.
    """

    def __init__(self, step: str, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"{step} failed: {cause}")


class PartialExecutionError(ExecutionError):
    """Entry order filled but the take-profit order was not placed.

    The carried position has ``take_profit_order_id=None`` and is left open on
    the exchange for the operator to handle.
    """

    def __init__(self, position: Position, cause: Exception) -> None:
        self.position = position
        super().__init__("tp_order", cause)


class TrackingError(BotError):
    """Position query failed; the next poll retries."""


class NotificationError(BotError):
    """Outbound chat message could not be delivered."""
