"""Detects when the tracked exchange position has been closed."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from signal_bot.errors import TrackingError
from signal_bot.models import ClosureEvent, Position


class PositionTracker:
    def __init__(self, exchange_client, logger: Any | None = None) -> None:
        self.exchange_client = exchange_client
        self.logger = logger

    async def check_closed(self, position: Position) -> ClosureEvent | None:
        """Return a closure event once the position amount is exactly zero.

        A shrunk but nonzero amount still counts as open. Query failures are
        logged and reported as "still open" so the next poll retries.
        """
        try:
            amount = await self.exchange_client.get_position_amount(position.symbol)
        except Exception as exc:  # noqa: BLE001
            error = TrackingError(f"position query failed symbol={position.symbol}: {exc}")
            self._error("PositionTracker: {}", error)
            return None

        if amount != 0:
            return None

        self._info(
            "PositionTracker: position closed symbol={} entry={} tp={} qty={}",
            position.symbol,
            position.entry_price,
            position.take_profit_price,
            position.quantity,
        )
        return ClosureEvent(position=position, closed_at=datetime.now(UTC))

    def _info(self, message: str, *args: object) -> None:
        if self.logger is not None and hasattr(self.logger, "info"):
            self.logger.info(message, *args)

    def _error(self, message: str, *args: object) -> None:
        if self.logger is not None and hasattr(self.logger, "error"):
            self.logger.error(message, *args)
