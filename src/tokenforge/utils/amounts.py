"""Conversions between human-readable token amounts and raw ledger units."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from tokenforge.domain import LAMPORTS_PER_SOL, Lamports, RawAmount


def to_raw_amount(amount: Decimal | int | str, decimals: int) -> RawAmount:
    """Scale a UI amount to raw units, rejecting fractional remainders."""

    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        msg = f"Invalid token amount: {amount!r}"
        raise ValueError(msg) from exc
    if value < 0:
        msg = "Token amount must be non-negative"
        raise ValueError(msg)
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        msg = f"{amount} has more than {decimals} decimal places"
        raise ValueError(msg)
    return int(scaled)


def to_ui_amount(raw: RawAmount, decimals: int) -> Decimal:
    return Decimal(raw).scaleb(-decimals)


def lamports_to_sol(lamports: Lamports) -> Decimal:
    return Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)


def sol_to_lamports(sol: Decimal | int | str) -> Lamports:
    return to_raw_amount(sol, 9)
