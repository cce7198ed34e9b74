"""Pure constant-product curve math for the virtual AMM.

Every function is stateless; the AMM passed in is read, never mutated.
Reserves are in ``AMM_RESERVE_PRECISION`` units, quote amounts in
``QUOTE_PRECISION`` units and prices in ``MARK_PRICE_PRECISION`` units.
"""
from __future__ import annotations

from typing import Optional

from ch.core.enums import SwapDirection
from ch.core.types import AMM
from ch.math.casting import I64, U128, checked_add, checked_div, checked_mul, checked_sub
from ch.math.constants import (
    AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO,
    PRICE_TO_PEG_PRECISION_RATIO,
)


def calculate_swap_output(
    swap_amount: int,
    input_asset_amount: int,
    direction: SwapDirection,
    invariant_sqrt: int,
) -> tuple[int, int]:
    """Return ``(new_input_reserve, new_output_reserve)`` after the swap."""
    invariant = checked_mul(invariant_sqrt, invariant_sqrt, U128)
    if direction == SwapDirection.ADD:
        new_input_amount = checked_add(input_asset_amount, swap_amount, U128)
    else:
        new_input_amount = checked_sub(input_asset_amount, swap_amount, U128)
    new_output_amount = checked_div(invariant, new_input_amount, U128)
    return new_input_amount, new_output_amount


def asset_to_reserve_amount(quote_asset_amount: int, peg_multiplier: int) -> int:
    return checked_div(
        checked_mul(quote_asset_amount, AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO, U128),
        peg_multiplier,
        U128,
    )


def reserve_to_asset_amount(quote_asset_reserve: int, peg_multiplier: int) -> int:
    return checked_div(
        checked_mul(quote_asset_reserve, peg_multiplier, U128),
        AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO,
        U128,
    )


def calculate_price(quote_asset_reserve: int, base_asset_reserve: int, peg_multiplier: int) -> int:
    peg_quote_asset_amount = checked_mul(quote_asset_reserve, peg_multiplier, U128)
    return checked_div(
        checked_mul(peg_quote_asset_amount, PRICE_TO_PEG_PRECISION_RATIO, U128),
        base_asset_reserve,
        U128,
    )


def calculate_mark_price(amm: AMM) -> int:
    return calculate_price(amm.quote_asset_reserve, amm.base_asset_reserve, amm.peg_multiplier)


def calculate_new_mark_twap(amm: AMM, now: int, precomputed_mark_price: Optional[int] = None) -> int:
    """Time-weighted mark price, weighting the last twap by the unelapsed funding period."""
    since_last = max(1, checked_sub(now, amm.last_mark_price_twap_ts, I64))
    from_start = max(0, checked_sub(amm.funding_period, since_last, I64))
    current_price = (
        calculate_mark_price(amm) if precomputed_mark_price is None else precomputed_mark_price
    )
    weighted = checked_add(
        checked_mul(current_price, since_last, U128),
        checked_mul(amm.last_mark_price_twap, from_start, U128),
        U128,
    )
    return checked_div(weighted, checked_add(since_last, from_start, U128), U128)


def calculate_base_asset_value(base_asset_amount: int, amm: AMM) -> int:
    """Quote value received (long) or owed (short) for unwinding ``base_asset_amount``."""
    if base_asset_amount == 0:
        return 0

    direction = SwapDirection.ADD if base_asset_amount > 0 else SwapDirection.REMOVE
    _, new_quote_asset_reserve = calculate_swap_output(
        abs(base_asset_amount),
        amm.base_asset_reserve,
        direction,
        amm.sqrt_k,
    )
    if direction == SwapDirection.ADD:
        quote_reserve_change = checked_sub(amm.quote_asset_reserve, new_quote_asset_reserve, U128)
    else:
        quote_reserve_change = checked_sub(new_quote_asset_reserve, amm.quote_asset_reserve, U128)
    return reserve_to_asset_amount(quote_reserve_change, amm.peg_multiplier)
