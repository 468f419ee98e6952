"""Configuration loading and validation."""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class BinanceConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    api_key: str = ""
    api_secret: str = ""
    base_url: str = "https://fapi.binance.com"


class TelegramConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    use_telethon: bool = True
    api_id: int
    api_hash: str
    session_name: str = "signal_bot"
    bot_token: str | None = None
    source_chat: str

    @field_validator("source_chat", mode="before")
    @classmethod
    def _chat_as_str(cls, value: object) -> object:
        # YAML reads numeric chat ids as int
        return str(value) if isinstance(value, int) else value


class TradingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_leverage: int = Field(default=3, ge=1, le=125)
    default_margin_usdt: Decimal = Field(default=Decimal("5"), gt=0)
    margin_type: str = Field(default="ISOLATED", pattern=r"^(ISOLATED|CROSSED)$")
    poll_interval_sec: float = Field(default=10, gt=0)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: str = Field(default="paper", pattern=r"^(paper|live)$")
    log_level: str = Field(default="INFO", pattern=r"^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$")
    binance: BinanceConfig = Field(default_factory=BinanceConfig)
    telegram: TelegramConfig
    trading: TradingConfig = Field(default_factory=TradingConfig)


# env var -> (section, key)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "BINANCE_API_KEY": ("binance", "api_key"),
    "BINANCE_API_SECRET": ("binance", "api_secret"),
    "TELEGRAM_API_ID": ("telegram", "api_id"),
    "TELEGRAM_API_HASH": ("telegram", "api_hash"),
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "TELEGRAM_CHAT_ID": ("telegram", "source_chat"),
}


def apply_env_overrides(raw_data: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """Overlay secrets from the environment on top of the YAML values."""
    env = os.environ if environ is None else environ
    data = dict(raw_data)
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(env_name)
        if not value:
            continue
        data[section] = {**(data.get(section) or {}), key: value}
    return data


def load_config(path: str | Path = "config.yml", env_file: str | Path | None = ".env") -> AppConfig:
    """Load configuration from YAML file, apply env overrides and validate schema."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file '{config_path}' not found. Copy config.yml.example to config.yml first."
        )

    if env_file is not None:
        load_dotenv(env_file)

    with config_path.open("r", encoding="utf-8") as fh:
        raw_data = yaml.safe_load(fh) or {}

    try:
        return AppConfig.model_validate(apply_env_overrides(raw_data))
    except ValidationError as exc:
        raise ValueError(f"Invalid config '{config_path}': {exc}") from exc
