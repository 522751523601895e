"""Ledger layer public exports."""

from .addresses import associated_token_address, create_program_address, derive_program_address
from .base import (
    AccountInfo,
    ExecutionState,
    ExecutionStatus,
    LedgerClient,
    ReferencePoint,
    TokenBalance,
)
from .exceptions import (
    AddressDerivationExhausted,
    ExecutionError,
    ExpiredWindow,
    LedgerError,
    TransientTransportError,
)
from .http import HttpLedgerClient
from .memory import InMemoryLedgerClient, LandingKind, LandingScript

__all__ = [
    "AccountInfo",
    "AddressDerivationExhausted",
    "ExecutionError",
    "ExecutionState",
    "ExecutionStatus",
    "ExpiredWindow",
    "HttpLedgerClient",
    "InMemoryLedgerClient",
    "LandingKind",
    "LandingScript",
    "LedgerClient",
    "LedgerError",
    "ReferencePoint",
    "TokenBalance",
    "TransientTransportError",
    "associated_token_address",
    "create_program_address",
    "derive_program_address",
]
