"""Shared type aliases for the domain layer."""

from __future__ import annotations

from typing import NewType

PublicKeyStr = NewType("PublicKeyStr", str)
SignatureStr = NewType("SignatureStr", str)
HolderLabel = NewType("HolderLabel", str)
RawAmount = int
Lamports = int

LAMPORTS_PER_SOL = 1_000_000_000
MAX_FEE_BASIS_POINTS = 10_000

__all__ = [
    "HolderLabel",
    "LAMPORTS_PER_SOL",
    "Lamports",
    "MAX_FEE_BASIS_POINTS",
    "PublicKeyStr",
    "RawAmount",
    "SignatureStr",
]
