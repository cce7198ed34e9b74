"""Position slot management and the increase / reduce / close engines.

Every engine mutates the market, its AMM, the position and (for reduce and
close) the user in a single all-or-nothing step: if any checked operation or
AMM swap raises, all of them are restored before the error propagates.
"""
from __future__ import annotations

from typing import Optional

from ch.controller import amm as amm_controller
from ch.core.atomic import all_or_nothing
from ch.core.enums import PositionDirection, SwapDirection
from ch.core.errors import MaxPositionsReached, NoPositionInMarket
from ch.core.types import Market, MarketPosition, User, UserPositions
from ch.math.casting import (
    I128,
    U128,
    cast_to_i128,
    cast_to_u128,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
)
from ch.math.collateral import calculate_updated_collateral
from ch.math.pnl import calculate_pnl

# Quote-denominated calls address the quote leg of the curve, base-denominated
# calls the base leg, so the same trade direction maps to opposite swaps.
_QUOTE_LEG_SWAP_DIRECTION = {
    PositionDirection.LONG: SwapDirection.ADD,
    PositionDirection.SHORT: SwapDirection.REMOVE,
}
_BASE_LEG_SWAP_DIRECTION = {
    PositionDirection.LONG: SwapDirection.REMOVE,
    PositionDirection.SHORT: SwapDirection.ADD,
}


def allocate_slot(positions: UserPositions, market_index: int) -> int:
    """Claim the first available slot for ``market_index`` and return its index."""
    for index, market_position in enumerate(positions):
        if market_position.is_available():
            positions[index] = MarketPosition(market_index=market_index)
            return index
    raise MaxPositionsReached(
        f"No available position slot for market {market_index} "
        f"(capacity={positions.capacity})"
    )


def find_slot(positions: UserPositions, market_index: int) -> int:
    for index, market_position in enumerate(positions):
        if market_position.is_for(market_index):
            return index
    raise NoPositionInMarket(f"User has no position in market {market_index}")


def _signed_base_asset_amount(direction: PositionDirection, base_asset_amount: int) -> int:
    base_asset_amount = cast_to_i128(base_asset_amount)
    if direction == PositionDirection.LONG:
        return base_asset_amount
    return -base_asset_amount


def _record_position_open(
    direction: PositionDirection,
    market: Market,
    market_position: MarketPosition,
) -> None:
    if direction == PositionDirection.LONG:
        market_position.last_cumulative_funding_rate = market.amm.cumulative_funding_rate_long
    else:
        market_position.last_cumulative_funding_rate = market.amm.cumulative_funding_rate_short
    market_position.last_funding_rate_ts = market.amm.last_funding_rate_ts
    market.open_interest = checked_add(market.open_interest, 1, U128)


def _apply_base_asset_delta(
    market: Market,
    market_position: MarketPosition,
    base_asset_delta: int,
) -> None:
    market_position.base_asset_amount = checked_add(
        market_position.base_asset_amount, base_asset_delta, I128
    )
    market.base_asset_amount = checked_add(market.base_asset_amount, base_asset_delta, I128)

    # bucket follows the sign of the position after the trade, not the trade direction
    if market_position.base_asset_amount > 0:
        market.base_asset_amount_long = checked_add(
            market.base_asset_amount_long, base_asset_delta, I128
        )
    else:
        market.base_asset_amount_short = checked_add(
            market.base_asset_amount_short, base_asset_delta, I128
        )


def _release_cost_basis(market_position: MarketPosition, base_asset_amount_before: int) -> int:
    """Remove the cost basis of the closed fraction and return it."""
    base_asset_amount_change = cast_to_i128(
        abs(checked_sub(base_asset_amount_before, market_position.base_asset_amount, I128))
    )
    initial_quote_asset_amount_closed = checked_div(
        checked_mul(market_position.quote_asset_amount, base_asset_amount_change, U128),
        cast_to_i128(abs(base_asset_amount_before)),
        U128,
    )
    market_position.quote_asset_amount = checked_sub(
        market_position.quote_asset_amount, initial_quote_asset_amount_closed, U128
    )
    return initial_quote_asset_amount_closed


def _reduce_position(
    market: Market,
    market_position: MarketPosition,
    base_asset_delta: int,
) -> int:
    base_asset_amount_before = market_position.base_asset_amount
    _apply_base_asset_delta(market, market_position, base_asset_delta)
    if market_position.base_asset_amount == 0:
        market.open_interest = checked_sub(market.open_interest, 1, U128)
    return _release_cost_basis(market_position, base_asset_amount_before)


def increase(
    direction: PositionDirection,
    quote_asset_amount: int,
    market: Market,
    market_position: MarketPosition,
    now: int,
) -> int:
    """Grow a position by spending ``quote_asset_amount``; returns the signed base acquired."""
    cast_to_u128(quote_asset_amount)
    if quote_asset_amount == 0:
        return 0

    with all_or_nothing(market, market.amm, market_position):
        if market_position.base_asset_amount == 0:
            _record_position_open(direction, market, market_position)

        market_position.quote_asset_amount = checked_add(
            market_position.quote_asset_amount, quote_asset_amount, U128
        )
        base_asset_acquired = amm_controller.swap_quote_asset(
            market.amm,
            quote_asset_amount,
            _QUOTE_LEG_SWAP_DIRECTION[direction],
            now,
            None,
        )
        _apply_base_asset_delta(market, market_position, base_asset_acquired)

    return base_asset_acquired


def increase_with_base_asset_amount(
    direction: PositionDirection,
    base_asset_amount: int,
    market: Market,
    market_position: MarketPosition,
    now: int,
) -> None:
    """Grow a position by exactly ``base_asset_amount``, paying what the AMM quotes."""
    cast_to_u128(base_asset_amount)
    if base_asset_amount == 0:
        return

    with all_or_nothing(market, market.amm, market_position):
        if market_position.base_asset_amount == 0:
            _record_position_open(direction, market, market_position)

        quote_asset_swapped = amm_controller.swap_base_asset(
            market.amm,
            base_asset_amount,
            _BASE_LEG_SWAP_DIRECTION[direction],
            now,
        )
        market_position.quote_asset_amount = checked_add(
            market_position.quote_asset_amount, quote_asset_swapped, U128
        )
        _apply_base_asset_delta(
            market,
            market_position,
            _signed_base_asset_amount(direction, base_asset_amount),
        )


def reduce(
    direction: PositionDirection,
    quote_asset_swap_amount: int,
    user: User,
    market: Market,
    market_position: MarketPosition,
    now: int,
    precomputed_mark_price: Optional[int] = None,
) -> int:
    """
    Shrink a position with a quote-denominated trade in ``direction``.

    Realizes PnL on the closed fraction into ``user.collateral`` and returns the
    signed base delta. The amount is not clamped to the current exposure.
    """
    cast_to_u128(quote_asset_swap_amount)

    with all_or_nothing(user, market, market.amm, market_position):
        base_asset_swapped = amm_controller.swap_quote_asset(
            market.amm,
            quote_asset_swap_amount,
            _QUOTE_LEG_SWAP_DIRECTION[direction],
            now,
            precomputed_mark_price,
        )
        initial_quote_asset_amount_closed = _reduce_position(
            market, market_position, base_asset_swapped
        )

        if market_position.base_asset_amount > 0:
            pnl = checked_sub(
                cast_to_i128(quote_asset_swap_amount),
                cast_to_i128(initial_quote_asset_amount_closed),
                I128,
            )
        else:
            pnl = checked_sub(
                cast_to_i128(initial_quote_asset_amount_closed),
                cast_to_i128(quote_asset_swap_amount),
                I128,
            )
        user.collateral = calculate_updated_collateral(user.collateral, pnl)

    return base_asset_swapped


def reduce_with_base_asset_amount(
    direction: PositionDirection,
    base_asset_amount: int,
    user: User,
    market: Market,
    market_position: MarketPosition,
    now: int,
) -> None:
    """Shrink a position by exactly ``base_asset_amount`` traded in ``direction``."""
    cast_to_u128(base_asset_amount)

    with all_or_nothing(user, market, market.amm, market_position):
        quote_asset_swapped = amm_controller.swap_base_asset(
            market.amm,
            base_asset_amount,
            _BASE_LEG_SWAP_DIRECTION[direction],
            now,
        )
        initial_quote_asset_amount_closed = _reduce_position(
            market,
            market_position,
            _signed_base_asset_amount(direction, base_asset_amount),
        )

        # sign follows the trade direction here, unlike the quote-denominated reduce
        if direction == PositionDirection.SHORT:
            pnl = checked_sub(
                cast_to_i128(quote_asset_swapped),
                cast_to_i128(initial_quote_asset_amount_closed),
                I128,
            )
        else:
            pnl = checked_sub(
                cast_to_i128(initial_quote_asset_amount_closed),
                cast_to_i128(quote_asset_swapped),
                I128,
            )
        user.collateral = calculate_updated_collateral(user.collateral, pnl)


def close(
    user: User,
    market: Market,
    market_position: MarketPosition,
    now: int,
) -> tuple[int, int]:
    """
    Unwind the full base exposure of a position and realize all of its PnL.
    Returns: (base_asset_value, base_asset_amount_before_close)
    """
    if market_position.base_asset_amount == 0:
        return 0, 0

    base_asset_amount = market_position.base_asset_amount
    swap_direction = SwapDirection.ADD if base_asset_amount > 0 else SwapDirection.REMOVE

    with all_or_nothing(user, market, market.amm, market_position):
        base_asset_value = amm_controller.swap_base_asset(
            market.amm,
            abs(base_asset_amount),
            swap_direction,
            now,
        )
        pnl = calculate_pnl(base_asset_value, market_position.quote_asset_amount, swap_direction)
        user.collateral = calculate_updated_collateral(user.collateral, pnl)

        market_position.last_cumulative_funding_rate = 0
        market_position.last_funding_rate_ts = 0
        market_position.quote_asset_amount = 0
        market_position.base_asset_amount = 0

        market.open_interest = checked_sub(market.open_interest, 1, U128)
        market.base_asset_amount = checked_sub(market.base_asset_amount, base_asset_amount, I128)
        if base_asset_amount > 0:
            market.base_asset_amount_long = checked_sub(
                market.base_asset_amount_long, base_asset_amount, I128
            )
        else:
            market.base_asset_amount_short = checked_sub(
                market.base_asset_amount_short, base_asset_amount, I128
            )

    return base_asset_value, base_asset_amount
