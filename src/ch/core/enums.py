"""Enum definitions for the clearing house."""
from enum import Enum


class PositionDirection(str, Enum):
    LONG = "long"
    SHORT = "short"


class SwapDirection(str, Enum):
    ADD = "add"
    REMOVE = "remove"
