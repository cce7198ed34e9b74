"""Realized PnL for a position unwound through the AMM."""
from __future__ import annotations

from ch.core.enums import SwapDirection
from ch.math.casting import I128, cast_to_i128, checked_sub


def calculate_pnl(exit_value: int, entry_value: int, swap_direction_to_close: SwapDirection) -> int:
    """
    Signed PnL of closing a position.

    A long closes by adding base to the AMM and profits when the exit value
    exceeds its cost basis; a short closes by removing base and profits when
    the exit value is below it.
    """
    exit_value = cast_to_i128(exit_value)
    entry_value = cast_to_i128(entry_value)
    if swap_direction_to_close == SwapDirection.ADD:
        return checked_sub(exit_value, entry_value, I128)
    return checked_sub(entry_value, exit_value, I128)
