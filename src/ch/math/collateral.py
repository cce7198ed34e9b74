"""Apply realized PnL to a user's collateral."""
from __future__ import annotations

from ch.math.casting import I128, checked_add


def calculate_updated_collateral(collateral: int, pnl: int) -> int:
    return checked_add(collateral, pnl, I128)
