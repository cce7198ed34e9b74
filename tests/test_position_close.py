from __future__ import annotations

import copy

import pytest

from ch.controller.position import close, increase
from ch.core.enums import PositionDirection, SwapDirection
from ch.core.errors import ArithmeticOverflow
from ch.core.types import MarketPosition
from ch.math.constants import QUOTE_PRECISION
from tests.helpers.ledger import ScriptedAmm, make_amm, make_market, make_user, open_position


def test_open_long_then_close_at_higher_value(scripted_amm: ScriptedAmm) -> None:
    market = make_market()
    user = make_user(collateral=5000)
    position = MarketPosition(market_index=0)
    scripted_amm.quote_results = [50]
    scripted_amm.base_results = [1200]

    increase(PositionDirection.LONG, 1000, market, position, now=1)
    result = close(user, market, position, now=2)

    assert result == (1200, 50)
    assert scripted_amm.base_calls == [(50, SwapDirection.ADD, 2)]
    assert user.collateral == 5200
    assert market.open_interest == 0
    assert market.base_asset_amount == 0
    assert market.base_asset_amount_long == 0


def test_close_short_buys_back_and_resets_position(scripted_amm: ScriptedAmm) -> None:
    market = make_market()
    user = make_user(collateral=5000)
    position = open_position(market, base=-50, quote=1000)
    position.last_cumulative_funding_rate = 11
    position.last_funding_rate_ts = 22
    scripted_amm.base_results = [800]

    assert close(user, market, position, now=3) == (800, -50)

    assert scripted_amm.base_calls == [(50, SwapDirection.REMOVE, 3)]
    assert user.collateral == 5200
    assert position == MarketPosition(market_index=0)
    assert market.base_asset_amount_short == 0
    assert market.open_interest == 0


def test_close_flat_position_is_noop() -> None:
    market = make_market()
    user = make_user(collateral=10)
    position = MarketPosition(market_index=0)
    market_before = copy.deepcopy(market)

    assert close(user, market, position, now=1) == (0, 0)
    assert market == market_before
    assert user.collateral == 10


def test_close_releases_slot_for_reuse(scripted_amm: ScriptedAmm) -> None:
    market = make_market()
    position = open_position(market, base=5, quote=10)
    scripted_amm.base_results = [10]

    close(make_user(), market, position, now=1)

    assert position.is_available()
    assert position.market_index == 0


@pytest.mark.parametrize("direction", [PositionDirection.LONG, PositionDirection.SHORT])
def test_open_then_close_round_trip_restores_collateral(direction: PositionDirection) -> None:
    market = make_market()
    user = make_user(collateral=10_000 * QUOTE_PRECISION)
    position = MarketPosition(market_index=0)
    amm_before = copy.deepcopy(market.amm)

    increase(direction, 1234 * QUOTE_PRECISION, market, position, now=1)
    close(user, market, position, now=1)

    assert abs(user.collateral - 10_000 * QUOTE_PRECISION) <= 1
    assert market.amm.base_asset_reserve == amm_before.base_asset_reserve
    assert market.open_interest == 0


def test_close_with_inconsistent_open_interest_rolls_back_amm() -> None:
    market = make_market(amm=make_amm())
    user = make_user(collateral=100)
    position = MarketPosition(market_index=0)
    increase(PositionDirection.LONG, 100 * QUOTE_PRECISION, market, position, now=1)
    market.open_interest = 0
    market_before = copy.deepcopy(market)
    position_before = copy.deepcopy(position)

    with pytest.raises(ArithmeticOverflow):
        close(user, market, position, now=2)

    assert market == market_before
    assert position == position_before
    assert user.collateral == 100
