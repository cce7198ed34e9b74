"""Trade record logging and run-directory utilities."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import yaml

from ch.core.enums import PositionDirection
from ch.logging.jsonl import read_jsonl

TRADE_ACTIONS = ("open", "increase", "reduce", "close", "flip")


@dataclass(frozen=True)
class TradeRecord:
    ts: int
    user: str
    market_index: int
    action: str
    direction: Optional[PositionDirection]
    base_asset_amount: int
    quote_asset_amount: int
    pnl: int
    collateral_after: int
    mark_price_before: int
    mark_price_after: int
    market_base_asset_amount: int
    market_open_interest: int

    def __post_init__(self) -> None:
        if self.action not in TRADE_ACTIONS:
            raise ValueError(f"action must be one of {TRADE_ACTIONS}, got {self.action!r}")


def make_run_id(prefix: str = "run") -> str:
    """Return e.g. run_20260117_130501 (UTC)."""
    now = dt.datetime.now(dt.timezone.utc)
    return f"{prefix}_{now:%Y%m%d_%H%M%S}"


def prepare_run_dir(base_dir: Path, run_id: str) -> Path:
    """Create <base_dir>/<run_id>/ and return path."""
    run_dir = base_dir / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def write_config_used(run_dir: Path, config: dict[str, Any]) -> None:
    """Write config_used.yaml."""
    path = run_dir / "config_used.yaml"
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config, handle, sort_keys=False)


def read_trade_log(path: Path) -> pd.DataFrame:
    """Load a trades.jsonl file into a DataFrame, keeping amounts as exact ints."""
    records = read_jsonl(path)
    columns = list(TradeRecord.__dataclass_fields__)
    frame = pd.DataFrame(records, columns=columns, dtype=object)
    frame["ts"] = frame["ts"].astype("int64")
    frame["market_index"] = frame["market_index"].astype("int64")
    frame["user"] = frame["user"].astype(str)
    frame["action"] = frame["action"].astype(str)
    return frame
