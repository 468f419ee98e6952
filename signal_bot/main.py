"""Application entrypoint."""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path

from signal_bot.binance_client import BinanceFuturesClient
from signal_bot.config import AppConfig, load_config
from signal_bot.coordinator import Coordinator
from signal_bot.logger import setup_logger
from signal_bot.models import IncomingMessage, Position
from signal_bot.notifier import TelegramNotifier
from signal_bot.order_executor import OrderExecutor
from signal_bot.position_tracker import PositionTracker
from signal_bot.signal_parser import SignalParser
from signal_bot.state import load_state, save_state
from signal_bot.telegram_listener import TelegramListener


def build_coordinator(
    config: AppConfig,
    exchange_client,
    notifier: TelegramNotifier,
    logger,
    root_dir: Path | None = None,
) -> Coordinator:
    parser = SignalParser(
        default_leverage=config.trading.default_leverage,
        default_margin_usdt=config.trading.default_margin_usdt,
        logger=logger,
    )
    executor = OrderExecutor(
        exchange_client=exchange_client,
        logger=logger,
        margin_type=config.trading.margin_type,
    )
    tracker = PositionTracker(exchange_client=exchange_client, logger=logger)

    def _persist(position: Position | None) -> None:
        save_state(active_position=position, root_dir=root_dir)

    return Coordinator(
        allowed_chat_id=config.telegram.source_chat,
        parser=parser,
        executor=executor,
        tracker=tracker,
        notifier=notifier,
        logger=logger,
        poll_interval_sec=config.trading.poll_interval_sec,
        on_position_change=_persist,
    )


async def run() -> None:
    root_dir = Path.cwd()
    config: AppConfig = load_config(root_dir / "config.yml", env_file=root_dir / ".env")
    logger = setup_logger(root_dir / "logs", level=config.log_level)

    exchange_client = BinanceFuturesClient(
        mode=config.mode,
        api_key=config.binance.api_key,
        api_secret=config.binance.api_secret,
        base_url=config.binance.base_url,
        logger=logger,
    )
    message_queue: asyncio.Queue[IncomingMessage] = asyncio.Queue()

    tg_cfg = config.telegram
    listener = TelegramListener(
        api_id=tg_cfg.api_id,
        api_hash=tg_cfg.api_hash,
        session_name=tg_cfg.session_name,
        source_chat=tg_cfg.source_chat,
        message_queue=message_queue,
        bot_token=tg_cfg.bot_token,
        logger=logger,
    )
    notifier = TelegramNotifier(send=listener.send_message, logger=logger)
    coordinator = build_coordinator(config, exchange_client, notifier, logger, root_dir=root_dir)

    logger.info("Bot started mode={}", config.mode)
    if config.mode == "live":
        logger.warning("LIVE TRADING MODE - trading with REAL MONEY on Binance Futures")
    logger.warning("NO STOP LOSS - only take profit orders are placed")
    logger.info("Monitoring chat: {}", tg_cfg.source_chat)

    if not await exchange_client.test_connection():
        logger.error("Binance connectivity check failed, continuing; orders will fail until it recovers")

    bot_state = load_state(root_dir)
    if bot_state.active_position is not None:
        await exchange_client.restore_position(bot_state.active_position)
        await coordinator.restore(bot_state.active_position)

    worker_task = asyncio.create_task(coordinator.run_message_worker(message_queue), name="signal-worker")
    poll_task = asyncio.create_task(coordinator.run_poll_loop(), name="position-poll")

    listener_task = None
    if tg_cfg.use_telethon:
        listener_task = asyncio.create_task(listener.start(), name="telegram-listener")
        logger.info("Telegram listener starting for source_chat={}", tg_cfg.source_chat)
    else:
        logger.error("Telegram listener disabled: telegram.use_telethon is false.")

    try:
        while True:
            await asyncio.sleep(1)
            if listener_task is not None and listener_task.done():
                if (exc := listener_task.exception()) is not None:
                    logger.error("Telegram listener crashed: {}", exc)
                listener_task = None
    finally:
        await listener.stop()
        tasks = [listener_task, worker_task, poll_task]
        for task in tasks:
            if task is not None:
                task.cancel()
        for task in tasks:
            if task is not None:
                with contextlib.suppress(asyncio.CancelledError):
                    await task


def cli() -> None:
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())


if __name__ == "__main__":
    cli()
