"""Outbound status messages to the configured Telegram chat."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from signal_bot.errors import NotificationError
from signal_bot.models import ClosureEvent, Position, StepResult


def format_trade_executed(position: Position) -> str:
    return (
        "✅ Trade Executed!\n\n"
        f"Symbol: {position.symbol}\n"
        "Side: LONG\n"
        f"Entry: {position.entry_price}\n"
        f"Take Profit: {position.take_profit_price}\n"
        f"Leverage: {position.leverage}x\n"
        f"Margin: ${position.margin_usdt}\n\n"
        "⚠️ NO STOP LOSS - Only TP active"
    )


def format_partial_execution(position: Position, error: str) -> str:
    return (
        "⚠️ Entry filled but TAKE PROFIT NOT PLACED!\n\n"
        f"Symbol: {position.symbol}\n"
        f"Entry order: {position.entry_order_id}\n"
        f"Quantity: {position.quantity}\n"
        f"Intended TP: {position.take_profit_price}\n"
        f"Error: {error}\n\n"
        "Position is open with no TP order. Manage it manually."
    )


def format_trade_closed(event: ClosureEvent) -> str:
    return (
        f"✅ Trade Closed: {event.symbol}\n"
        f"Entry: {event.entry_price}\n"
        f"Exit: {event.exit_price}\n"
        f"Quantity: {event.quantity}"
    )


def format_error(error: str) -> str:
    return f"❌ Error: {error}"


class TelegramNotifier:
    """Fire-and-forget sender; failures are logged and returned, never raised."""

    def __init__(self, send: Callable[[str], Awaitable[Any]], logger: Any | None = None) -> None:
        self._send = send
        self.logger = logger

    async def notify(self, text: str) -> StepResult:
        try:
            await self._send(text)
        except Exception as exc:  # noqa: BLE001
            error = NotificationError(f"send failed: {exc}")
            if self.logger is not None and hasattr(self.logger, "warning"):
                self.logger.warning("TelegramNotifier: {}", error)
            return StepResult(step="notify", ok=False, error=error.message)
        return StepResult(step="notify", ok=True)
