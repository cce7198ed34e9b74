"""Replay a scripted list of trades through a clearing house."""
from __future__ import annotations

from pathlib import Path
from typing import Any

from ch.clearing_house import ClearingHouse
from ch.config import ClearingHouseConfig, load_yaml
from ch.core.enums import PositionDirection
from ch.core.errors import ConfigError
from ch.logging.formatting import write_json_deterministic
from ch.logging.jsonl import JsonlWriter
from ch.reporting import market_summary, positions_frame


def _parse_direction(value: Any, *, key_path: str) -> PositionDirection:
    try:
        return PositionDirection(str(value).strip().lower())
    except ValueError:
        raise ConfigError(f"Invalid {key_path}: expected 'long' or 'short' (got: {value!r})") from None


def _require(entry: dict[str, Any], key: str, *, key_path: str) -> Any:
    if key not in entry:
        raise ConfigError(f"Invalid {key_path}: missing {key!r}")
    return entry[key]


def load_scenario(path: str | Path) -> dict[str, Any]:
    scenario = load_yaml(path)
    if not isinstance(scenario.get("users"), list):
        raise ConfigError("Invalid scenario: users must be a list")
    if not isinstance(scenario.get("trades"), list):
        raise ConfigError("Invalid scenario: trades must be a list")
    return scenario


def replay(scenario: dict[str, Any], config: ClearingHouseConfig, run_dir: Path) -> ClearingHouse:
    """Run every trade in ``scenario`` and write trades.jsonl and summary.json to ``run_dir``."""
    writer = JsonlWriter(run_dir / "trades.jsonl")
    try:
        clearing_house = ClearingHouse(config, trade_writer=writer)
        for i, user_entry in enumerate(scenario["users"]):
            authority = str(_require(user_entry, "authority", key_path=f"users[{i}]"))
            clearing_house.add_user(authority)
            collateral = user_entry.get("collateral", 0)
            if collateral:
                clearing_house.deposit_collateral(authority, collateral)

        for i, trade in enumerate(scenario["trades"]):
            key_path = f"trades[{i}]"
            action = _require(trade, "action", key_path=key_path)
            authority = str(_require(trade, "user", key_path=key_path))
            market_index = _require(trade, "market", key_path=key_path)
            now = _require(trade, "ts", key_path=key_path)
            if action == "open":
                clearing_house.open_position(
                    authority,
                    market_index,
                    _parse_direction(_require(trade, "direction", key_path=key_path), key_path=f"{key_path}.direction"),
                    _require(trade, "quote", key_path=key_path),
                    now,
                )
            elif action == "close":
                clearing_house.close_position(authority, market_index, now)
            else:
                raise ConfigError(f"Invalid {key_path}.action: expected 'open' or 'close' (got: {action!r})")
    finally:
        writer.close()

    markets = market_summary(clearing_house.markets.values())
    positions = positions_frame(clearing_house.users.values(), clearing_house.markets)
    write_json_deterministic(
        run_dir / "summary.json",
        {
            "total_trades": len(clearing_house.trade_history),
            "collateral": {
                authority: user.collateral for authority, user in clearing_house.users.items()
            },
            "markets": markets.to_dict(orient="records"),
            "positions": positions.to_dict(orient="records"),
        },
    )
    return clearing_house
