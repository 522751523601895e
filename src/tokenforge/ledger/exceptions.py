"""Ledger integration-specific exceptions."""

from __future__ import annotations

from typing import Any


class LedgerError(RuntimeError):
    """Base class for ledger integration failures."""


class TransientTransportError(LedgerError):
    """Raised for timeouts, dropped connections and RPC congestion."""


class ExecutionError(LedgerError):
    """Raised when the ledger reports that an instruction failed to execute."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class ExpiredWindow(LedgerError):
    """Raised when a validity window elapsed before execution was observed."""


class AddressDerivationExhausted(LedgerError):
    """Raised when no bump seed yields an off-curve program address."""
