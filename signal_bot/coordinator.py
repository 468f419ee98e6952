"""Single-position state machine wiring signals to execution and tracking."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum

from signal_bot.errors import BotError, PartialExecutionError
from signal_bot.models import ClosureEvent, IncomingMessage, Position
from signal_bot.notifier import (
    TelegramNotifier,
    format_error,
    format_partial_execution,
    format_trade_closed,
    format_trade_executed,
)
from signal_bot.order_executor import OrderExecutor
from signal_bot.position_tracker import PositionTracker
from signal_bot.signal_parser import SignalParser


class CoordinatorState(str, Enum):
    IDLE = "idle"
    POSITION_OPEN = "position_open"


class Coordinator:
    """Owns the one active-position slot.

    Message handling and polling run under the same lock, so the
    "no active position" check and the slot write are atomic with respect to
    each other.
    """

    def __init__(
        self,
        allowed_chat_id: str,
        parser: SignalParser,
        executor: OrderExecutor,
        tracker: PositionTracker,
        notifier: TelegramNotifier,
        logger,
        poll_interval_sec: float = 10,
        on_position_change: Callable[[Position | None], object] | None = None,
    ) -> None:
        self.allowed_chat_id = str(allowed_chat_id)
        self.parser = parser
        self.executor = executor
        self.tracker = tracker
        self.notifier = notifier
        self.logger = logger
        self.poll_interval_sec = poll_interval_sec
        self.on_position_change = on_position_change
        self._position: Position | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CoordinatorState:
        return CoordinatorState.IDLE if self._position is None else CoordinatorState.POSITION_OPEN

    @property
    def active_position(self) -> Position | None:
        return self._position

    async def restore(self, position: Position) -> None:
        async with self._lock:
            if self._position is not None:
                self.logger.info("Coordinator: restore skipped, position already active symbol={}", self._position.symbol)
                return
            self._set_position(position)
            self.logger.info("Coordinator: restored active position symbol={} qty={}", position.symbol, position.quantity)

    async def handle_message(self, message: IncomingMessage) -> Position | None:
        if str(message.chat_id) != self.allowed_chat_id:
            return None

        async with self._lock:
            if self._position is not None:
                self.logger.info("Coordinator: active position exists symbol={}, ignoring new signal", self._position.symbol)
                return None

            intent = self.parser.parse(message.text)
            if intent is None:
                return None

            self.logger.info("Coordinator: valid signal detected {}", intent)
            try:
                position = await self.executor.execute(intent)
            except PartialExecutionError as exc:
                self._set_position(exc.position)
                self.logger.error("Coordinator: partial execution, tracking entry-only position symbol={}", intent.symbol)
                await self.notifier.notify(format_partial_execution(exc.position, str(exc.cause)))
                return exc.position
            except BotError as exc:
                self.logger.error("Coordinator: error handling signal symbol={} err={}", intent.symbol, exc)
                await self.notifier.notify(format_error(exc.message))
                return None
            except Exception as exc:  # noqa: BLE001
                self.logger.exception("Coordinator: unexpected error handling signal symbol={}", intent.symbol)
                await self.notifier.notify(format_error(str(exc)))
                return None

            self._set_position(position)
            await self.notifier.notify(format_trade_executed(position))
            return position

    async def poll_once(self) -> ClosureEvent | None:
        async with self._lock:
            if self._position is None:
                return None

            event = await self.tracker.check_closed(self._position)
            if event is None:
                return None

            self._set_position(None)
            self.logger.info("Coordinator: position closed symbol={}", event.symbol)
            await self.notifier.notify(format_trade_closed(event))
            return event

    async def run_poll_loop(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception as exc:  # noqa: BLE001
                self.logger.error("Coordinator poll error: {}", exc)
            await asyncio.sleep(self.poll_interval_sec)

    async def run_message_worker(self, message_queue: asyncio.Queue[IncomingMessage]) -> None:
        while True:
            message = await message_queue.get()
            try:
                await self.handle_message(message)
            except Exception as exc:  # noqa: BLE001
                self.logger.error("Coordinator message error: {}", exc)
            finally:
                message_queue.task_done()

    def _set_position(self, position: Position | None) -> None:
        self._position = position
        if self.on_position_change is None:
            return
        try:
            self.on_position_change(position)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Coordinator: failed to persist state: {}", exc)
