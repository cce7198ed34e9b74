"""Virtual AMM swaps used by the position controllers.

Each swap validates the trade before it moves reserves or the mark twap, so a
rejected swap leaves the AMM untouched.
"""
from __future__ import annotations

from typing import Optional

from ch.core.enums import SwapDirection
from ch.core.errors import TradeSizeTooSmall
from ch.core.types import AMM
from ch.math.amm import (
    asset_to_reserve_amount,
    calculate_new_mark_twap,
    calculate_swap_output,
    reserve_to_asset_amount,
)
from ch.math.casting import I128, U128, cast_to_i128, cast_to_u128, checked_sub


def swap_quote_asset(
    amm: AMM,
    quote_asset_amount: int,
    direction: SwapDirection,
    now: int,
    precomputed_mark_price: Optional[int] = None,
) -> int:
    """
    Swap quote into (ADD) or out of (REMOVE) the AMM.
    Returns the signed base delta taken by the trader: positive when base leaves the AMM.
    """
    cast_to_u128(quote_asset_amount)
    mark_twap = calculate_new_mark_twap(amm, now, precomputed_mark_price)

    quote_asset_reserve_amount = asset_to_reserve_amount(quote_asset_amount, amm.peg_multiplier)
    if quote_asset_reserve_amount < amm.minimum_quote_asset_trade_size:
        raise TradeSizeTooSmall(
            f"quote reserve amount {quote_asset_reserve_amount} below minimum "
            f"{amm.minimum_quote_asset_trade_size}"
        )

    initial_base_asset_reserve = amm.base_asset_reserve
    new_quote_asset_reserve, new_base_asset_reserve = calculate_swap_output(
        quote_asset_reserve_amount,
        amm.quote_asset_reserve,
        direction,
        amm.sqrt_k,
    )
    base_asset_amount = checked_sub(
        cast_to_i128(initial_base_asset_reserve),
        cast_to_i128(new_base_asset_reserve),
        I128,
    )

    amm.last_mark_price_twap = mark_twap
    amm.last_mark_price_twap_ts = now
    amm.base_asset_reserve = new_base_asset_reserve
    amm.quote_asset_reserve = new_quote_asset_reserve
    return base_asset_amount


def swap_base_asset(
    amm: AMM,
    base_asset_swap_amount: int,
    direction: SwapDirection,
    now: int,
) -> int:
    """
    Swap base into (ADD) or out of (REMOVE) the AMM.
    Returns the unsigned quote amount the base moved.
    """
    cast_to_u128(base_asset_swap_amount)
    mark_twap = calculate_new_mark_twap(amm, now, None)

    initial_quote_asset_reserve = amm.quote_asset_reserve
    new_base_asset_reserve, new_quote_asset_reserve = calculate_swap_output(
        base_asset_swap_amount,
        amm.base_asset_reserve,
        direction,
        amm.sqrt_k,
    )
    if initial_quote_asset_reserve > new_quote_asset_reserve:
        quote_asset_reserve_change = checked_sub(initial_quote_asset_reserve, new_quote_asset_reserve, U128)
    else:
        quote_asset_reserve_change = checked_sub(new_quote_asset_reserve, initial_quote_asset_reserve, U128)

    if quote_asset_reserve_change < amm.minimum_base_asset_trade_size:
        raise TradeSizeTooSmall(
            f"quote reserve change {quote_asset_reserve_change} below minimum "
            f"{amm.minimum_base_asset_trade_size}"
        )
    quote_asset_amount = reserve_to_asset_amount(quote_asset_reserve_change, amm.peg_multiplier)

    amm.last_mark_price_twap = mark_twap
    amm.last_mark_price_twap_ts = now
    amm.base_asset_reserve = new_base_asset_reserve
    amm.quote_asset_reserve = new_quote_asset_reserve
    return quote_asset_amount
