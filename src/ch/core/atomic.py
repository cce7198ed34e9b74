"""All-or-nothing mutation of ledger state objects."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator


@contextmanager
def all_or_nothing(*states: Any) -> Iterator[None]:
    """
    Snapshot the fields of each state object and restore them if the block raises.

    Snapshots are shallow: nested state objects (e.g. ``market.amm``) must be
    passed explicitly to be restored.
    """
    snapshots = [(state, dict(vars(state))) for state in states]
    try:
        yield
    except BaseException:
        for state, fields in snapshots:
            vars(state).clear()
            vars(state).update(fields)
        raise
