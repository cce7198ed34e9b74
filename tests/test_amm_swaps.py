from __future__ import annotations

import copy

import pytest

from ch.controller.amm import swap_base_asset, swap_quote_asset
from ch.core.enums import SwapDirection
from ch.core.errors import ArithmeticOverflow, TradeSizeTooSmall
from ch.math.amm import (
    calculate_base_asset_value,
    calculate_mark_price,
    calculate_new_mark_twap,
    calculate_swap_output,
)
from ch.math.constants import MARK_PRICE_PRECISION, QUOTE_PRECISION
from tests.helpers.ledger import RESERVE, make_amm


def test_balanced_reserves_at_unit_peg_price_one_dollar() -> None:
    assert calculate_mark_price(make_amm()) == MARK_PRICE_PRECISION


def test_calculate_swap_output_keeps_invariant_floor() -> None:
    new_input, new_output = calculate_swap_output(RESERVE // 10, RESERVE, SwapDirection.ADD, RESERVE)
    assert new_input == RESERVE + RESERVE // 10
    assert new_output == (RESERVE * RESERVE) // new_input


def test_swap_quote_add_acquires_positive_base_and_raises_price() -> None:
    amm = make_amm()
    base_acquired = swap_quote_asset(amm, 1000 * QUOTE_PRECISION, SwapDirection.ADD, now=10)

    assert base_acquired > 0
    assert amm.base_asset_reserve == RESERVE - base_acquired
    assert calculate_mark_price(amm) > MARK_PRICE_PRECISION
    assert amm.last_mark_price_twap_ts == 10


def test_swap_quote_remove_yields_negative_base() -> None:
    amm = make_amm()
    base_acquired = swap_quote_asset(amm, 1000 * QUOTE_PRECISION, SwapDirection.REMOVE, now=10)

    assert base_acquired < 0
    assert calculate_mark_price(amm) < MARK_PRICE_PRECISION


def test_swap_base_round_trip_returns_quote_spent() -> None:
    amm = make_amm()
    quote = 2500 * QUOTE_PRECISION
    base_acquired = swap_quote_asset(amm, quote, SwapDirection.ADD, now=1)

    quote_back = swap_base_asset(amm, base_acquired, SwapDirection.ADD, now=2)

    assert abs(quote_back - quote) <= 1
    assert amm.base_asset_reserve == RESERVE


def test_base_asset_value_matches_unwind_without_mutating() -> None:
    amm = make_amm()
    base_acquired = swap_quote_asset(amm, 1000 * QUOTE_PRECISION, SwapDirection.ADD, now=1)
    before = copy.deepcopy(amm)

    value = calculate_base_asset_value(base_acquired, amm)

    assert amm == before
    assert value == swap_base_asset(amm, base_acquired, SwapDirection.ADD, now=2)


def test_trade_below_minimum_leaves_amm_untouched() -> None:
    amm = make_amm(minimum_quote_asset_trade_size=10**20)
    before = copy.deepcopy(amm)

    with pytest.raises(TradeSizeTooSmall):
        swap_quote_asset(amm, QUOTE_PRECISION, SwapDirection.ADD, now=5)

    assert amm == before


def test_removing_more_than_reserve_is_arithmetic_error() -> None:
    amm = make_amm()
    with pytest.raises(ArithmeticOverflow):
        swap_base_asset(amm, RESERVE + 1, SwapDirection.REMOVE, now=1)


def test_mark_twap_weights_precomputed_price_by_elapsed_time() -> None:
    amm = make_amm(funding_period=100, last_mark_price_twap=MARK_PRICE_PRECISION, last_mark_price_twap_ts=0)

    twap = calculate_new_mark_twap(amm, now=25, precomputed_mark_price=2 * MARK_PRICE_PRECISION)

    # 25s at 2.0 and 75s at 1.0
    assert twap == (2 * MARK_PRICE_PRECISION * 25 + MARK_PRICE_PRECISION * 75) // 100


def test_mark_twap_after_full_period_is_current_price() -> None:
    amm = make_amm(funding_period=60, last_mark_price_twap=5, last_mark_price_twap_ts=0)
    assert calculate_new_mark_twap(amm, now=600) == calculate_mark_price(amm)
