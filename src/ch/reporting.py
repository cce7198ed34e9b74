"""Tabular views of clearing-house state."""
from __future__ import annotations

from typing import Iterable

import pandas as pd

from ch.core.enums import SwapDirection
from ch.core.types import Market, User
from ch.math.amm import calculate_base_asset_value, calculate_mark_price
from ch.math.pnl import calculate_pnl

MARKET_COLUMNS = [
    "market_index",
    "base_asset_amount",
    "base_asset_amount_long",
    "base_asset_amount_short",
    "open_interest",
    "mark_price",
    "mark_price_twap",
]

POSITION_COLUMNS = [
    "user",
    "slot",
    "market_index",
    "base_asset_amount",
    "quote_asset_amount",
    "base_asset_value",
    "unrealized_pnl",
    "last_cumulative_funding_rate",
]


def market_summary(markets: Iterable[Market]) -> pd.DataFrame:
    rows = [
        {
            "market_index": market.market_index,
            "base_asset_amount": market.base_asset_amount,
            "base_asset_amount_long": market.base_asset_amount_long,
            "base_asset_amount_short": market.base_asset_amount_short,
            "open_interest": market.open_interest,
            "mark_price": calculate_mark_price(market.amm),
            "mark_price_twap": market.amm.last_mark_price_twap,
        }
        for market in markets
    ]
    return pd.DataFrame(rows, columns=MARKET_COLUMNS, dtype=object)


def positions_frame(users: Iterable[User], markets: dict[int, Market]) -> pd.DataFrame:
    """One row per open position, marked against its market's AMM."""
    rows = []
    for user in users:
        for slot, position in enumerate(user.positions):
            if not position.is_open_position():
                continue
            market = markets[position.market_index]
            base_asset_value = calculate_base_asset_value(position.base_asset_amount, market.amm)
            direction = SwapDirection.ADD if position.is_long() else SwapDirection.REMOVE
            rows.append(
                {
                    "user": user.authority,
                    "slot": slot,
                    "market_index": position.market_index,
                    "base_asset_amount": position.base_asset_amount,
                    "quote_asset_amount": position.quote_asset_amount,
                    "base_asset_value": base_asset_value,
                    "unrealized_pnl": calculate_pnl(
                        base_asset_value, position.quote_asset_amount, direction
                    ),
                    "last_cumulative_funding_rate": position.last_cumulative_funding_rate,
                }
            )
    return pd.DataFrame(rows, columns=POSITION_COLUMNS, dtype=object)
