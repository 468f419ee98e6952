"""Runtime state persisted between restarts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from signal_bot.models import Position


@dataclass(slots=True)
class BotState:
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    active_position: Position | None = None


def _state_path(root_dir: Path | None = None) -> Path:
    base = root_dir or Path.cwd()
    return base / "data" / "state.yml"


def _parse_datetime(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw)) if raw else datetime.now(UTC)
    except ValueError:
        return datetime.now(UTC)


def _position_from_dict(raw: dict[str, Any]) -> Position:
    tp_order_id = raw.get("take_profit_order_id")
    return Position(
        symbol=str(raw["symbol"]),
        entry_order_id=str(raw["entry_order_id"]),
        take_profit_order_id=str(tp_order_id) if tp_order_id is not None else None,
        quantity=Decimal(str(raw["quantity"])),
        entry_price=Decimal(str(raw["entry_price"])),
        take_profit_price=Decimal(str(raw["take_profit_price"])),
        leverage=int(raw.get("leverage") or 3),
        margin_usdt=Decimal(str(raw.get("margin_usdt") or "5")),
        opened_at=_parse_datetime(raw.get("opened_at")),
    )


def _position_to_dict(position: Position) -> dict[str, Any]:
    return {
        "symbol": position.symbol,
        "entry_order_id": position.entry_order_id,
        "take_profit_order_id": position.take_profit_order_id,
        "quantity": str(position.quantity),
        "entry_price": str(position.entry_price),
        "take_profit_price": str(position.take_profit_price),
        "leverage": position.leverage,
        "margin_usdt": str(position.margin_usdt),
        "opened_at": position.opened_at.isoformat(),
    }


def load_state(root_dir: Path | None = None) -> BotState:
    path = _state_path(root_dir)
    if not path.exists():
        return BotState()

    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    position_raw = raw.get("active_position")
    position = None
    if isinstance(position_raw, dict):
        try:
            position = _position_from_dict(position_raw)
        except (KeyError, ArithmeticError, ValueError):
            position = None

    return BotState(started_at=_parse_datetime(raw.get("started_at")), active_position=position)


def save_state(active_position: Position | None, root_dir: Path | None = None) -> BotState:
    path = _state_path(root_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    current = load_state(root_dir)
    state = BotState(started_at=current.started_at, active_position=active_position)
    payload: dict[str, Any] = {
        "started_at": state.started_at.isoformat(),
        "active_position": _position_to_dict(active_position) if active_position is not None else None,
    }
    path.write_text(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), encoding="utf-8")
    return state
