"""Signing wallet wrapper."""

from __future__ import annotations

from dataclasses import dataclass, field

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .types import PublicKeyStr


@dataclass(frozen=True, slots=True)
class Wallet:
    """Exclusively owned signing key plus its public identifier.

    The keypair is excluded from ``repr`` so wallets can appear in log
    messages and tracebacks without leaking secret material.
    """

    label: str
    keypair: Keypair = field(repr=False, compare=False)

    @classmethod
    def generate(cls, label: str) -> Wallet:
        return cls(label=label, keypair=Keypair())

    @property
    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    @property
    def public_key(self) -> PublicKeyStr:
        return PublicKeyStr(str(self.keypair.pubkey()))

    def __str__(self) -> str:
        return f"{self.label} ({self.public_key})"


__all__ = ["Wallet"]
