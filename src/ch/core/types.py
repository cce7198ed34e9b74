"""Core state types for markets, positions and users.

All amounts are integers in fixed precision units; see ``ch.math.constants``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional

from ch.core.errors import ConfigError


@dataclass
class AMM:
    base_asset_reserve: int
    quote_asset_reserve: int
    sqrt_k: int
    peg_multiplier: int
    cumulative_funding_rate_long: int = 0
    cumulative_funding_rate_short: int = 0
    last_funding_rate_ts: int = 0
    funding_period: int = 3600
    last_mark_price_twap: int = 0
    last_mark_price_twap_ts: int = 0
    minimum_quote_asset_trade_size: int = 0
    minimum_base_asset_trade_size: int = 0

    def __post_init__(self) -> None:
        if self.base_asset_reserve <= 0 or self.quote_asset_reserve <= 0:
            raise ValueError("AMM reserves must be > 0")
        if self.sqrt_k <= 0:
            raise ValueError("sqrt_k must be > 0")
        if self.peg_multiplier <= 0:
            raise ValueError("peg_multiplier must be > 0")


@dataclass
class Market:
    amm: AMM
    market_index: int = 0
    base_asset_amount: int = 0
    base_asset_amount_long: int = 0
    base_asset_amount_short: int = 0
    open_interest: int = 0


@dataclass
class MarketPosition:
    market_index: Optional[int] = None
    base_asset_amount: int = 0
    quote_asset_amount: int = 0
    last_cumulative_funding_rate: int = 0
    last_funding_rate_ts: int = 0
    open_orders: int = 0

    def is_available(self) -> bool:
        return self.base_asset_amount == 0 and self.open_orders == 0

    def is_for(self, market_index: int) -> bool:
        if self.market_index is None or self.market_index != market_index:
            return False
        return self.is_open_position() or self.open_orders > 0

    def is_open_position(self) -> bool:
        return self.base_asset_amount != 0

    def is_long(self) -> bool:
        return self.base_asset_amount > 0


class UserPositions:
    """Fixed-capacity, slot-indexed collection of one user's market positions."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity <= 0:
            raise ConfigError(f"Invalid capacity: expected a positive int (got: {capacity!r})")
        self._slots: list[MarketPosition] = [MarketPosition() for _ in range(capacity)]

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> MarketPosition:
        return self._slots[index]

    def __setitem__(self, index: int, position: MarketPosition) -> None:
        self._slots[index] = position

    def __iter__(self) -> Iterator[MarketPosition]:
        return iter(self._slots)


@dataclass
class User:
    authority: str
    collateral: int = 0
    positions: UserPositions = field(default_factory=UserPositions)
