"""Centralized domain error taxonomy for the clearing house."""
from __future__ import annotations


class ChBaseError(Exception):
    """Base class for clearing-house domain errors."""


class ConfigError(ChBaseError, ValueError):
    pass


class ClearingHouseError(ChBaseError):
    """Errors raised while mutating positions, markets or collateral.

    ``code`` is stable and safe to persist in trade logs.
    """

    code = "clearing_house_error"


class MaxPositionsReached(ClearingHouseError):
    code = "max_number_of_positions"


class NoPositionInMarket(ClearingHouseError):
    code = "user_has_no_position_in_market"


class ArithmeticOverflow(ClearingHouseError, ArithmeticError):
    code = "math_error"


class CastFailure(ClearingHouseError, ValueError):
    code = "casting_failure"


class TradeSizeTooSmall(ClearingHouseError, ValueError):
    code = "trade_size_too_small"


class MarketNotFound(ClearingHouseError, KeyError):
    code = "market_not_found"


class UserNotFound(ClearingHouseError, KeyError):
    code = "user_not_found"
