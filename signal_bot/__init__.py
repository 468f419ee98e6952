"""Telegram LONG signal bot for Binance USDT-M futures."""

__version__ = "0.1.0"
