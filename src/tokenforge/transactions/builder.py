"""Assemble, sign and submit ledger transactions."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from tokenforge.authority import AuthorityRegistry, SignerUnavailable
from tokenforge.domain import TransactionStatus, Wallet
from tokenforge.ledger import LedgerClient

from .exceptions import InvalidTransactionStateError
from .models import PendingTransaction, StageInstruction

logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Turns stage instructions into a signed unit bound to a fresh validity window."""

    def __init__(self, ledger: LedgerClient) -> None:
        self._ledger = ledger

    async def build(
        self,
        instructions: Sequence[StageInstruction],
        fee_payer: Wallet,
        *,
        ephemeral_signers: Sequence[Keypair] = (),
    ) -> PendingTransaction:
        if not instructions:
            raise ValueError("A transaction needs at least one instruction")
        reference = await self._ledger.get_latest_reference_point()
        message = Message.new_with_blockhash(
            [item.instruction for item in instructions],
            fee_payer.pubkey,
            reference.blockhash,
        )
        return PendingTransaction(
            instructions=tuple(instructions),
            fee_payer=fee_payer.pubkey,
            fee_payer_label=fee_payer.label,
            reference=reference,
            message=message,
            ephemeral_signers=tuple(ephemeral_signers),
        )

    def sign(self, tx: PendingTransaction, registry: AuthorityRegistry) -> PendingTransaction:
        if tx.status is not TransactionStatus.BUILT:
            msg = f"Only built transactions can be signed, not {tx.status}"
            raise InvalidTransactionStateError(msg)
        header = tx.message.header
        required: list[Pubkey] = list(tx.message.account_keys[: header.num_required_signatures])
        keypairs: dict[Pubkey, Keypair] = {}
        for signer in sorted(tx.required_signers, key=str):
            wallet = registry.resolve(signer)
            if wallet.pubkey not in required:
                msg = f"{signer} resolved to {wallet.public_key}, which the transaction does not name as a signer"
                raise SignerUnavailable(msg)
            keypairs[wallet.pubkey] = wallet.keypair
        for keypair in tx.ephemeral_signers:
            keypairs[keypair.pubkey()] = keypair
        missing = [str(key) for key in required if key not in keypairs]
        if missing:
            msg = f"No signer available for {', '.join(missing)}"
            raise SignerUnavailable(msg)
        signed = Transaction([keypairs[key] for key in required], tx.message, tx.blockhash)
        return tx.advance(
            TransactionStatus.SIGNED,
            transaction=signed,
            signature=str(signed.signatures[0]),
        )

    async def submit(self, tx: PendingTransaction) -> PendingTransaction:
        if tx.status is not TransactionStatus.SIGNED or tx.transaction is None:
            msg = f"Only signed transactions can be submitted, not {tx.status}"
            raise InvalidTransactionStateError(msg)
        signature = await self._ledger.send_serialized(bytes(tx.transaction))
        logger.info("Submitted %s (valid through height %d)", signature, tx.expiry_height)
        return tx.advance(TransactionStatus.SUBMITTED, signature=signature)


__all__ = ["TransactionBuilder"]
