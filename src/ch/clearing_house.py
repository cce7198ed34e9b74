"""Clearing house: routes user trades to the position controllers and logs them."""
from __future__ import annotations

from typing import Optional

from ch.config import ClearingHouseConfig, resolve_config
from ch.controller import position as position_controller
from ch.core.atomic import all_or_nothing
from ch.core.enums import PositionDirection
from ch.core.errors import ConfigError, MarketNotFound, NoPositionInMarket, UserNotFound
from ch.core.types import AMM, Market, MarketPosition, User, UserPositions
from ch.logging.jsonl import JsonlWriter
from ch.logging.trades import TradeRecord
from ch.math.amm import calculate_base_asset_value, calculate_mark_price
from ch.math.casting import I128, U128, cast_to_u128, checked_add, checked_sub
from ch.math.collateral import calculate_updated_collateral


class ClearingHouse:
    def __init__(
        self,
        config: Optional[ClearingHouseConfig] = None,
        *,
        trade_writer: Optional[JsonlWriter] = None,
    ) -> None:
        self.config = config or resolve_config()
        self.markets: dict[int, Market] = {}
        self.users: dict[str, User] = {}
        self.trade_history: list[TradeRecord] = []
        self._trade_writer = trade_writer
        for market_index in self.config.markets:
            self.add_market(market_index)

    def add_market(self, market_index: int, amm: Optional[AMM] = None) -> Market:
        if market_index in self.markets:
            raise ConfigError(f"Market {market_index} already initialized")
        market = Market(amm=amm or self.config.build_amm(), market_index=market_index)
        self.markets[market_index] = market
        return market

    def add_user(self, authority: str) -> User:
        if authority in self.users:
            raise ConfigError(f"User {authority!r} already exists")
        user = User(authority=authority, positions=UserPositions(self.config.max_positions))
        self.users[authority] = user
        return user

    def get_market(self, market_index: int) -> Market:
        try:
            return self.markets[market_index]
        except KeyError:
            raise MarketNotFound(f"Unknown market {market_index}") from None

    def get_user(self, authority: str) -> User:
        try:
            return self.users[authority]
        except KeyError:
            raise UserNotFound(f"Unknown user {authority!r}") from None

    def deposit_collateral(self, authority: str, amount: int) -> int:
        user = self.get_user(authority)
        user.collateral = checked_add(user.collateral, cast_to_u128(amount), I128)
        return user.collateral

    def withdraw_collateral(self, authority: str, amount: int) -> int:
        user = self.get_user(authority)
        user.collateral = calculate_updated_collateral(user.collateral, -cast_to_u128(amount))
        return user.collateral

    def position_for(self, authority: str, market_index: int) -> Optional[MarketPosition]:
        user = self.get_user(authority)
        try:
            return user.positions[position_controller.find_slot(user.positions, market_index)]
        except NoPositionInMarket:
            return None

    def open_position(
        self,
        authority: str,
        market_index: int,
        direction: PositionDirection,
        quote_asset_amount: int,
        now: int,
    ) -> Optional[TradeRecord]:
        """
        Trade ``quote_asset_amount`` of exposure in ``direction``.

        Same direction (or flat) increases the position; the opposite direction
        reduces it, or closes and reopens it the other way once the amount
        covers the current position value. A zero amount is a no-op: no slot
        is claimed, nothing is recorded and None is returned.
        """
        user = self.get_user(authority)
        market = self.get_market(market_index)
        cast_to_u128(quote_asset_amount)
        if quote_asset_amount == 0:
            return None

        slots_before = list(user.positions)
        try:
            slot = position_controller.find_slot(user.positions, market_index)
        except NoPositionInMarket:
            slot = position_controller.allocate_slot(user.positions, market_index)
        market_position = user.positions[slot]

        mark_price_before = calculate_mark_price(market.amm)
        collateral_before = user.collateral
        base_before = market_position.base_asset_amount
        try:
            action = self._route_trade(
                user, market, market_position, direction, quote_asset_amount, now, mark_price_before
            )
        except BaseException:
            # a slot claimed for this trade goes back to what it held before
            user.positions[slot] = slots_before[slot]
            raise

        return self._record_trade(
            now=now,
            user=user,
            market=market,
            action=action,
            direction=direction,
            base_asset_amount=checked_sub(market_position.base_asset_amount, base_before, I128),
            quote_asset_amount=quote_asset_amount,
            pnl=checked_sub(user.collateral, collateral_before, I128),
            mark_price_before=mark_price_before,
        )

    def _route_trade(
        self,
        user: User,
        market: Market,
        market_position: MarketPosition,
        direction: PositionDirection,
        quote_asset_amount: int,
        now: int,
        mark_price_before: int,
    ) -> str:
        base_before = market_position.base_asset_amount
        if base_before == 0 or (base_before > 0) == (direction == PositionDirection.LONG):
            position_controller.increase(direction, quote_asset_amount, market, market_position, now)
            return "open" if base_before == 0 else "increase"

        base_asset_value = calculate_base_asset_value(base_before, market.amm)
        if base_asset_value > quote_asset_amount:
            position_controller.reduce(
                direction,
                quote_asset_amount,
                user,
                market,
                market_position,
                now,
                mark_price_before,
            )
            return "reduce"

        remaining_quote = checked_sub(quote_asset_amount, base_asset_value, U128)
        with all_or_nothing(user, market, market.amm, market_position):
            position_controller.close(user, market, market_position, now)
            position_controller.increase(direction, remaining_quote, market, market_position, now)
        return "flip" if remaining_quote > 0 else "close"

    def close_position(self, authority: str, market_index: int, now: int) -> TradeRecord:
        user = self.get_user(authority)
        market = self.get_market(market_index)
        market_position = user.positions[position_controller.find_slot(user.positions, market_index)]

        mark_price_before = calculate_mark_price(market.amm)
        collateral_before = user.collateral
        base_asset_value, base_asset_amount = position_controller.close(
            user, market, market_position, now
        )

        return self._record_trade(
            now=now,
            user=user,
            market=market,
            action="close",
            direction=None,
            base_asset_amount=-base_asset_amount,
            quote_asset_amount=base_asset_value,
            pnl=checked_sub(user.collateral, collateral_before, I128),
            mark_price_before=mark_price_before,
        )

    def _record_trade(
        self,
        *,
        now: int,
        user: User,
        market: Market,
        action: str,
        direction: Optional[PositionDirection],
        base_asset_amount: int,
        quote_asset_amount: int,
        pnl: int,
        mark_price_before: int,
    ) -> TradeRecord:
        record = TradeRecord(
            ts=now,
            user=user.authority,
            market_index=market.market_index,
            action=action,
            direction=direction,
            base_asset_amount=base_asset_amount,
            quote_asset_amount=quote_asset_amount,
            pnl=pnl,
            collateral_after=user.collateral,
            mark_price_before=mark_price_before,
            mark_price_after=calculate_mark_price(market.amm),
            market_base_asset_amount=market.base_asset_amount,
            market_open_interest=market.open_interest,
        )
        self.trade_history.append(record)
        if self._trade_writer is not None:
            self._trade_writer.write(record)
        return record
