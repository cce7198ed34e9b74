from __future__ import annotations

import numpy as np
import pytest

from ch.clearing_house import ClearingHouse
from ch.config import resolve_config
from ch.core.enums import PositionDirection
from ch.core.types import Market
from ch.math.constants import QUOTE_PRECISION

USERS = ("alice", "bob", "carol", "dave")


def _assert_market_consistent(clearing_house: ClearingHouse, market: Market) -> None:
    positions = [
        position
        for user in clearing_house.users.values()
        for position in user.positions
        if position.is_for(market.market_index)
    ]
    assert market.base_asset_amount == market.base_asset_amount_long + market.base_asset_amount_short
    assert market.base_asset_amount == sum(position.base_asset_amount for position in positions)
    assert market.open_interest >= 0
    assert market.open_interest == sum(1 for position in positions if position.is_open_position())


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_random_trade_sequences_keep_aggregates_consistent(seed: int) -> None:
    rng = np.random.default_rng(seed)
    clearing_house = ClearingHouse(resolve_config({"markets": [0, 1]}))
    for authority in USERS:
        clearing_house.add_user(authority)
        clearing_house.deposit_collateral(authority, 1_000_000 * QUOTE_PRECISION)

    for step in range(200):
        authority = USERS[int(rng.integers(len(USERS)))]
        market_index = int(rng.integers(2))
        if rng.random() < 0.2 and clearing_house.position_for(authority, market_index) is not None:
            clearing_house.close_position(authority, market_index, now=step)
        else:
            direction = PositionDirection.LONG if rng.random() < 0.5 else PositionDirection.SHORT
            quote = int(rng.integers(1, 5_000)) * QUOTE_PRECISION
            clearing_house.open_position(authority, market_index, direction, quote, now=step)

        for market in clearing_house.markets.values():
            _assert_market_consistent(clearing_house, market)


def test_closing_everyone_returns_market_to_flat() -> None:
    rng = np.random.default_rng(11)
    clearing_house = ClearingHouse(resolve_config({"markets": [0]}))
    for authority in USERS:
        clearing_house.add_user(authority)
        direction = PositionDirection.LONG if rng.random() < 0.5 else PositionDirection.SHORT
        clearing_house.open_position(authority, 0, direction, int(rng.integers(1, 900)) * QUOTE_PRECISION, now=1)

    for authority in USERS:
        clearing_house.close_position(authority, 0, now=2)

    market = clearing_house.get_market(0)
    assert market.open_interest == 0
    assert market.base_asset_amount == 0
    assert market.base_asset_amount_long == 0
    assert market.base_asset_amount_short == 0
