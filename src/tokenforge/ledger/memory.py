"""In-process ledger used for unit testing and dry runs."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from .base import AccountInfo, ExecutionStatus, ReferencePoint, TokenBalance
from .exceptions import ExecutionError, ExpiredWindow, LedgerError

_LAMPORTS_PER_BYTE_YEAR = 3_480
_EXEMPTION_YEARS = 2
_ACCOUNT_STORAGE_OVERHEAD = 128


class LandingKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    DROPPED = "dropped"


@dataclass(frozen=True, slots=True)
class LandingScript:
    """How the next submitted transaction behaves once it reaches the ledger."""

    kind: LandingKind = LandingKind.SUCCESS
    after_polls: int = 0
    error: Any = None

    @classmethod
    def lands(cls, after_polls: int = 0) -> LandingScript:
        return cls(kind=LandingKind.SUCCESS, after_polls=after_polls)

    @classmethod
    def fails(cls, error: Any, after_polls: int = 0) -> LandingScript:
        return cls(kind=LandingKind.ERROR, after_polls=after_polls, error=error)

    @classmethod
    def dropped(cls) -> LandingScript:
        return cls(kind=LandingKind.DROPPED)


@dataclass(slots=True)
class SubmittedTransaction:
    signature: str
    payload: bytes
    blockhash: Hash
    expiry_height: int
    script: LandingScript
    polls: int = 0


@dataclass
class InMemoryLedgerClient:
    """Deterministic ledger double honouring the LedgerClient contract.

    Height advances by ``height_step`` on every height query so validity
    windows elapse without wall-clock time. Failures and landing behaviour
    are scripted per call.
    """

    height: int = 1_000
    height_step: int = 1
    window: int = 150
    epoch: int = 0
    default_script: LandingScript = field(default_factory=LandingScript)
    balances: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    token_balances: dict[str, TokenBalance] = field(default_factory=dict)
    accounts: dict[str, AccountInfo] = field(default_factory=dict)
    submissions: list[SubmittedTransaction] = field(default_factory=list)
    airdrop_times: list[float] = field(default_factory=list)
    _scripts: deque[LandingScript] = field(default_factory=deque)
    _send_failures: deque[Exception] = field(default_factory=deque)
    _status_failures: deque[Exception] = field(default_factory=deque)
    _blockhashes: dict[Hash, int] = field(default_factory=dict)
    _by_signature: dict[str, SubmittedTransaction] = field(default_factory=dict)

    def queue_landing(self, *scripts: LandingScript) -> None:
        self._scripts.extend(scripts)

    def fail_next_send(self, *errors: Exception) -> None:
        self._send_failures.extend(errors)

    def fail_next_status(self, *errors: Exception) -> None:
        self._status_failures.extend(errors)

    async def get_latest_reference_point(self) -> ReferencePoint:
        blockhash = Hash.new_unique()
        expiry = self.height + self.window
        self._blockhashes[blockhash] = expiry
        return ReferencePoint(blockhash=blockhash, expiry_height=expiry)

    async def send_serialized(self, payload: bytes) -> str:
        if self._send_failures:
            raise self._send_failures.popleft()
        tx = Transaction.from_bytes(payload)
        if any(sig == Signature.default() for sig in tx.signatures):
            raise ExecutionError("Transaction is missing required signatures", payload="MissingSignature")
        blockhash = tx.message.recent_blockhash
        expiry = self._blockhashes.get(blockhash)
        if expiry is None or self.height > expiry:
            raise ExpiredWindow("Blockhash not found")
        signature = str(tx.signatures[0])
        if signature in self._by_signature:
            return signature
        script = self._scripts.popleft() if self._scripts else self.default_script
        submitted = SubmittedTransaction(
            signature=signature,
            payload=payload,
            blockhash=blockhash,
            expiry_height=expiry,
            script=script,
        )
        self.submissions.append(submitted)
        self._by_signature[signature] = submitted
        return signature

    async def get_execution_status(self, signature: str) -> ExecutionStatus:
        if self._status_failures:
            raise self._status_failures.popleft()
        submitted = self._by_signature.get(signature)
        if submitted is None:
            return ExecutionStatus.pending()
        submitted.polls += 1
        script = submitted.script
        if script.kind is LandingKind.DROPPED or submitted.polls <= script.after_polls:
            return ExecutionStatus.pending()
        if script.kind is LandingKind.ERROR:
            return ExecutionStatus.failure(script.error)
        return ExecutionStatus.success("confirmed")

    async def get_current_height(self) -> int:
        self.height += self.height_step
        return self.height

    async def get_epoch(self) -> int:
        return self.epoch

    async def get_balance(self, address: Pubkey) -> int:
        return self.balances[str(address)]

    async def get_token_account_balance(self, address: Pubkey) -> TokenBalance:
        try:
            return self.token_balances[str(address)]
        except KeyError as exc:
            msg = f"Account {address} is not a token account"
            raise LedgerError(msg) from exc

    async def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        return self.accounts.get(str(address))

    async def get_minimum_rent_exempt_balance(self, space: int) -> int:
        return (space + _ACCOUNT_STORAGE_OVERHEAD) * _LAMPORTS_PER_BYTE_YEAR * _EXEMPTION_YEARS

    async def request_airdrop(self, address: Pubkey, lamports: int) -> str:
        self.airdrop_times.append(asyncio.get_running_loop().time())
        self.balances[str(address)] += lamports
        return str(Signature.new_unique())

    async def get_version(self) -> str:
        return "in-memory"


__all__ = ["InMemoryLedgerClient", "LandingKind", "LandingScript", "SubmittedTransaction"]
