"""Ledger client contract and the value types it exchanges."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from solders.hash import Hash
from solders.pubkey import Pubkey


@dataclass(frozen=True, slots=True)
class ReferencePoint:
    """Recent blockhash together with the last height at which it is accepted."""

    blockhash: Hash
    expiry_height: int


class ExecutionState(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ExecutionStatus:
    """Observed state of a submitted signature."""

    state: ExecutionState
    error: Any = None
    confirmation: str | None = None

    @classmethod
    def pending(cls) -> ExecutionStatus:
        return cls(state=ExecutionState.PENDING)

    @classmethod
    def success(cls, confirmation: str | None = None) -> ExecutionStatus:
        return cls(state=ExecutionState.SUCCESS, confirmation=confirmation)

    @classmethod
    def failure(cls, error: Any) -> ExecutionStatus:
        return cls(state=ExecutionState.ERROR, error=error)

    @property
    def resolved(self) -> bool:
        return self.state is not ExecutionState.PENDING


@dataclass(frozen=True, slots=True)
class TokenBalance:
    amount: int
    decimals: int

    @property
    def ui_amount(self) -> Decimal:
        return Decimal(self.amount).scaleb(-self.decimals)


@dataclass(frozen=True, slots=True)
class AccountInfo:
    lamports: int
    owner: Pubkey
    data: bytes
    executable: bool = False


@runtime_checkable
class LedgerClient(Protocol):
    """Minimal asynchronous view of a ledger RPC node."""

    async def get_latest_reference_point(self) -> ReferencePoint: ...

    async def send_serialized(self, payload: bytes) -> str: ...

    async def get_execution_status(self, signature: str) -> ExecutionStatus: ...

    async def get_current_height(self) -> int: ...

    async def get_epoch(self) -> int: ...

    async def get_balance(self, address: Pubkey) -> int: ...

    async def get_token_account_balance(self, address: Pubkey) -> TokenBalance: ...

    async def get_account_info(self, address: Pubkey) -> AccountInfo | None: ...

    async def get_minimum_rent_exempt_balance(self, space: int) -> int: ...

    async def request_airdrop(self, address: Pubkey, lamports: int) -> str: ...

    async def get_version(self) -> str: ...


__all__ = [
    "AccountInfo",
    "ExecutionState",
    "ExecutionStatus",
    "LedgerClient",
    "ReferencePoint",
    "TokenBalance",
]
