"""Stable public API for the ``ch`` package.

Only symbols exported here are part of the compatibility promise for users.
Internal modules and implementation details may change without notice.
Importing ``ch`` stays lightweight; the clearing-house facade and reporting
live in ``ch.clearing_house`` and ``ch.reporting``.
"""

from ch._version import __version__
from ch.controller.position import (
    allocate_slot,
    close,
    find_slot,
    increase,
    increase_with_base_asset_amount,
    reduce,
    reduce_with_base_asset_amount,
)
from ch.core.enums import PositionDirection, SwapDirection

__all__ = [
    "PositionDirection",
    "SwapDirection",
    "allocate_slot",
    "close",
    "find_slot",
    "increase",
    "increase_with_base_asset_amount",
    "reduce",
    "reduce_with_base_asset_amount",
    "__version__",
]
