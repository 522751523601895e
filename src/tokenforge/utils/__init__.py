"""Utility helpers."""

from .amounts import lamports_to_sol, sol_to_lamports, to_raw_amount, to_ui_amount
from .time import utc_now

__all__ = [
    "lamports_to_sol",
    "sol_to_lamports",
    "to_raw_amount",
    "to_ui_amount",
    "utc_now",
]
