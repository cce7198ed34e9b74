from __future__ import annotations

import pytest

from ch.controller.position import allocate_slot, close, find_slot, increase
from ch.core.enums import PositionDirection
from ch.core.errors import ConfigError, MaxPositionsReached, NoPositionInMarket
from ch.core.types import MarketPosition, UserPositions
from tests.helpers.ledger import ScriptedAmm, make_market, make_user


def test_allocate_slot_takes_first_available_and_zeroes_fields() -> None:
    positions = UserPositions(3)
    positions[0] = MarketPosition(market_index=7, base_asset_amount=10, quote_asset_amount=100)
    positions[1] = MarketPosition(
        market_index=2,
        base_asset_amount=0,
        quote_asset_amount=55,
        last_cumulative_funding_rate=9,
        last_funding_rate_ts=3,
    )

    index = allocate_slot(positions, 4)

    assert index == 1
    assert positions[1] == MarketPosition(market_index=4)


def test_allocate_slot_skips_flat_slot_with_open_orders() -> None:
    positions = UserPositions(2)
    positions[0] = MarketPosition(market_index=1, open_orders=2)

    assert allocate_slot(positions, 3) == 1


def test_allocate_slot_fails_when_all_slots_hold_positions() -> None:
    positions = UserPositions(2)
    positions[0] = MarketPosition(market_index=0, base_asset_amount=1)
    positions[1] = MarketPosition(market_index=1, base_asset_amount=-1)

    with pytest.raises(MaxPositionsReached):
        allocate_slot(positions, 2)


def test_find_slot_locates_allocated_market() -> None:
    positions = UserPositions(3)
    first = allocate_slot(positions, 5)
    positions[first].base_asset_amount = 10
    second = allocate_slot(positions, 6)
    positions[second].base_asset_amount = -3

    assert (first, second) == (0, 1)
    assert find_slot(positions, 6) == 1
    assert find_slot(positions, 5) == 0


def test_find_slot_miss_raises() -> None:
    positions = UserPositions(3)
    allocate_slot(positions, 1)

    with pytest.raises(NoPositionInMarket):
        find_slot(positions, 2)


def test_never_assigned_slot_does_not_match_market_zero() -> None:
    with pytest.raises(NoPositionInMarket):
        find_slot(UserPositions(2), 0)


def test_capacity_is_fixed() -> None:
    positions = UserPositions(4)
    assert positions.capacity == 4
    assert len(list(positions)) == 4
    with pytest.raises(ConfigError):
        UserPositions(0)


def test_freshly_allocated_flat_slot_is_not_found() -> None:
    positions = UserPositions(2)
    allocate_slot(positions, 3)

    with pytest.raises(NoPositionInMarket):
        find_slot(positions, 3)


def test_flat_slot_with_open_orders_is_still_found() -> None:
    positions = UserPositions(2)
    positions[1] = MarketPosition(market_index=3, open_orders=1)

    assert find_slot(positions, 3) == 1


def test_closed_slot_is_released(scripted_amm: ScriptedAmm) -> None:
    market = make_market()
    user = make_user(collateral=1000)
    slot = allocate_slot(user.positions, 0)
    scripted_amm.quote_results = [90]
    increase(PositionDirection.LONG, 100, market, user.positions[slot], now=1)
    scripted_amm.base_results = [100]
    close(user, market, user.positions[slot], now=2)

    with pytest.raises(NoPositionInMarket):
        find_slot(user.positions, 0)
    assert allocate_slot(user.positions, 1) == slot
