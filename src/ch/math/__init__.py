"""Fixed-width integer math shared by the position controllers."""
from ch.math.casting import (
    I64,
    I128,
    U64,
    U128,
    IntBounds,
    cast,
    cast_to_i64,
    cast_to_i128,
    cast_to_u128,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
)

__all__ = [
    "I64",
    "I128",
    "U64",
    "U128",
    "IntBounds",
    "cast",
    "cast_to_i64",
    "cast_to_i128",
    "cast_to_u128",
    "checked_add",
    "checked_div",
    "checked_mul",
    "checked_sub",
]
