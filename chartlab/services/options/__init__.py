"""
Options Service

Summaries over caller-supplied option chains.
"""

from chartlab.services.options.chain import (
    find_atm_strike,
    intrinsic_value,
    max_pain,
    put_call_ratio,
    select_strike_window,
    summarize_chain,
)

__all__ = [
    "find_atm_strike",
    "intrinsic_value",
    "max_pain",
    "put_call_ratio",
    "select_strike_window",
    "summarize_chain",
]
