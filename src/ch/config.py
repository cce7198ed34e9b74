"""Configuration loading, override merging and validation."""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ch.core.errors import ConfigError
from ch.core.types import AMM
from ch.math.constants import AMM_RESERVE_PRECISION, PEG_PRECISION

DEFAULT_CONFIG_PATH = Path("configs/clearing_house.yaml")

DEFAULT_AMM: dict[str, int] = {
    "base_asset_reserve": 1_000_000 * AMM_RESERVE_PRECISION,
    "quote_asset_reserve": 1_000_000 * AMM_RESERVE_PRECISION,
    "peg_multiplier": 1 * PEG_PRECISION,
    "funding_period": 3600,
    "minimum_quote_asset_trade_size": 0,
    "minimum_base_asset_trade_size": 0,
}

DEFAULT_CONFIG: dict[str, Any] = {
    "max_positions": 5,
    "markets": [0],
    "amm": dict(DEFAULT_AMM),
}


@dataclass(frozen=True)
class ClearingHouseConfig:
    max_positions: int
    markets: tuple[int, ...]
    amm: dict[str, int]

    def build_amm(self) -> AMM:
        base_asset_reserve = self.amm["base_asset_reserve"]
        quote_asset_reserve = self.amm["quote_asset_reserve"]
        return AMM(
            base_asset_reserve=base_asset_reserve,
            quote_asset_reserve=quote_asset_reserve,
            sqrt_k=math.isqrt(base_asset_reserve * quote_asset_reserve),
            peg_multiplier=self.amm["peg_multiplier"],
            funding_period=self.amm["funding_period"],
            minimum_quote_asset_trade_size=self.amm["minimum_quote_asset_trade_size"],
            minimum_base_asset_trade_size=self.amm["minimum_base_asset_trade_size"],
        )


def load_yaml(path: str | Path) -> dict[str, Any]:
    yaml_path = Path(path)
    if not yaml_path.exists():
        raise ConfigError(f"Config path not found: {yaml_path}")

    try:
        with yaml_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config at {yaml_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid YAML mapping at {yaml_path}: expected a mapping")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config_with_overrides(base_path: str | Path, override_paths: list[str] | None) -> dict[str, Any]:
    config = load_yaml(base_path)
    for override_path in override_paths or []:
        config = deep_merge(config, load_yaml(override_path))
    return config


def _positive_int(value: Any, *, key_path: str, allow_zero: bool = False) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Invalid config: {key_path} must be an int (got: {value!r})")
    if value < 0 or (value == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ConfigError(f"Invalid config: {key_path} must be {bound} (got: {value!r})")
    return value


def _normalize_markets(value: Any) -> tuple[int, ...]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"Invalid config: markets must be a non-empty list of ints (got: {value!r})")

    normalized: list[int] = []
    for item in value:
        market_index = _positive_int(item, key_path="markets[]", allow_zero=True)
        if market_index in normalized:
            raise ConfigError(f"Invalid config: duplicate market index {market_index}")
        normalized.append(market_index)
    return tuple(normalized)


def resolve_config(raw: dict[str, Any] | None = None) -> ClearingHouseConfig:
    """Merge ``raw`` over the defaults and validate it."""
    resolved = deep_merge(DEFAULT_CONFIG, raw or {})

    amm_cfg = resolved.get("amm")
    if not isinstance(amm_cfg, dict):
        raise ConfigError(f"Invalid config: amm must be a mapping (got: {amm_cfg!r})")
    unknown = sorted(set(amm_cfg) - set(DEFAULT_AMM))
    if unknown:
        raise ConfigError(f"Invalid config: unknown amm keys {unknown}")

    amm: dict[str, int] = {}
    for key, value in amm_cfg.items():
        allow_zero = key.startswith("minimum_")
        amm[key] = _positive_int(value, key_path=f"amm.{key}", allow_zero=allow_zero)

    return ClearingHouseConfig(
        max_positions=_positive_int(resolved.get("max_positions"), key_path="max_positions"),
        markets=_normalize_markets(resolved.get("markets")),
        amm=amm,
    )
