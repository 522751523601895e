"""Value objects moving through the build, sign, submit and confirm pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from tokenforge.authority import Signer
from tokenforge.domain import TransactionStatus
from tokenforge.ledger import ReferencePoint

from .exceptions import InvalidTransactionStateError


@dataclass(frozen=True, slots=True)
class StageInstruction:
    """A ledger instruction plus the authorities that must sign for it."""

    instruction: Instruction
    signers: tuple[Signer, ...] = ()
    description: str = ""


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """One submission attempt.

    A new instance is built for every attempt after expiry; the serialized
    bytes of an expired attempt are never sent again.
    """

    instructions: tuple[StageInstruction, ...]
    fee_payer: Pubkey
    fee_payer_label: str
    reference: ReferencePoint
    message: Message
    ephemeral_signers: tuple[Keypair, ...] = field(default=(), repr=False)
    status: TransactionStatus = TransactionStatus.BUILT
    transaction: Transaction | None = field(default=None, repr=False)
    signature: str | None = None
    error: Any = None

    @property
    def required_signers(self) -> frozenset[Signer]:
        signers: set[Signer] = {self.fee_payer_label}
        for item in self.instructions:
            signers.update(item.signers)
        return frozenset(signers)

    @property
    def blockhash(self) -> Hash:
        return self.reference.blockhash

    @property
    def expiry_height(self) -> int:
        return self.reference.expiry_height

    @property
    def serialized(self) -> bytes | None:
        return bytes(self.transaction) if self.transaction is not None else None

    @property
    def description(self) -> str:
        return "; ".join(item.description for item in self.instructions if item.description)

    def require_signature(self) -> str:
        if self.signature is None:
            msg = f"Transaction is {self.status} and carries no signature"
            raise InvalidTransactionStateError(msg)
        return self.signature

    def advance(self, status: TransactionStatus, **changes: Any) -> PendingTransaction:
        return replace(self, status=status, **changes)


__all__ = ["PendingTransaction", "StageInstruction"]
