"""Fixed-point precisions used across the AMM and the ledger."""
from __future__ import annotations

AMM_RESERVE_PRECISION = 10**13
QUOTE_PRECISION = 10**6
PEG_PRECISION = 10**3
MARK_PRICE_PRECISION = 10**10

PRICE_TO_PEG_PRECISION_RATIO = MARK_PRICE_PRECISION // PEG_PRECISION  # 1e7
AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO = (
    AMM_RESERVE_PRECISION * PEG_PRECISION // QUOTE_PRECISION
)  # 1e10
