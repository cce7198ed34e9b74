"""Checked arithmetic and casts over fixed-width integer ranges.

Python ints never overflow, so every ledger field declares the width it is
stored at and each operation verifies the result still fits. Results that
fall outside the range raise instead of wrapping.
"""
from __future__ import annotations

from dataclasses import dataclass

from ch.core.errors import ArithmeticOverflow, CastFailure


@dataclass(frozen=True)
class IntBounds:
    name: str
    min_value: int
    max_value: int

    def contains(self, value: int) -> bool:
        return self.min_value <= value <= self.max_value


U64 = IntBounds("u64", 0, 2**64 - 1)
I64 = IntBounds("i64", -(2**63), 2**63 - 1)
U128 = IntBounds("u128", 0, 2**128 - 1)
I128 = IntBounds("i128", -(2**127), 2**127 - 1)


def _require_int(value: object, *, op: str) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise CastFailure(f"{op}: expected int operand, got {type(value).__name__}")
    return value


def _checked(result: int, bounds: IntBounds, *, op: str, lhs: int, rhs: int) -> int:
    if not bounds.contains(result):
        raise ArithmeticOverflow(f"{op} overflow for {bounds.name}: {lhs} {op} {rhs}")
    return result


def checked_add(lhs: int, rhs: int, bounds: IntBounds = I128) -> int:
    lhs = _require_int(lhs, op="add")
    rhs = _require_int(rhs, op="add")
    return _checked(lhs + rhs, bounds, op="+", lhs=lhs, rhs=rhs)


def checked_sub(lhs: int, rhs: int, bounds: IntBounds = I128) -> int:
    lhs = _require_int(lhs, op="sub")
    rhs = _require_int(rhs, op="sub")
    return _checked(lhs - rhs, bounds, op="-", lhs=lhs, rhs=rhs)


def checked_mul(lhs: int, rhs: int, bounds: IntBounds = I128) -> int:
    lhs = _require_int(lhs, op="mul")
    rhs = _require_int(rhs, op="mul")
    return _checked(lhs * rhs, bounds, op="*", lhs=lhs, rhs=rhs)


def checked_div(lhs: int, rhs: int, bounds: IntBounds = I128) -> int:
    """Integer division truncating toward zero; dividing by zero raises."""
    lhs = _require_int(lhs, op="div")
    rhs = _require_int(rhs, op="div")
    if rhs == 0:
        raise ArithmeticOverflow(f"division by zero for {bounds.name}: {lhs} / 0")
    quotient = abs(lhs) // abs(rhs)
    if (lhs < 0) != (rhs < 0):
        quotient = -quotient
    return _checked(quotient, bounds, op="/", lhs=lhs, rhs=rhs)


def cast(value: int, bounds: IntBounds) -> int:
    """Return ``value`` unchanged if it fits ``bounds``; bools cast to 0/1."""
    if isinstance(value, bool):
        value = int(value)
    if not isinstance(value, int):
        raise CastFailure(f"cannot cast {type(value).__name__} to {bounds.name}")
    if not bounds.contains(value):
        raise CastFailure(f"value {value} does not fit {bounds.name}")
    return value


def cast_to_i128(value: int) -> int:
    return cast(value, I128)


def cast_to_u128(value: int) -> int:
    return cast(value, U128)


def cast_to_i64(value: int) -> int:
    return cast(value, I64)
