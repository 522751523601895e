from __future__ import annotations

import asyncio

import pytest
from solders.pubkey import Pubkey

from tokenforge.authority import PAYER_LABEL, AuthorityRegistry, SignerUnavailable
from tokenforge.domain import AuthorityRole, TransactionStatus, Wallet
from tokenforge.ledger import InMemoryLedgerClient, LandingScript
from tokenforge.transactions import (
    ConfirmationTracker,
    InvalidTransactionStateError,
    PendingTransaction,
    StageInstruction,
    TransactionBuilder,
    WaitAbandoned,
)
from tokenforge.transactions import instructions as ix


async def _no_sleep(_: float) -> None:
    return None


def _mint_instruction(registry: AuthorityRegistry) -> StageInstruction:
    authority = registry.require(AuthorityRole.MINT)
    return StageInstruction(
        ix.mint_to(Pubkey.new_unique(), Pubkey.new_unique(), authority.pubkey, 10, 6),
        (AuthorityRole.MINT,),
        "mint 10",
    )


def _payment(registry: AuthorityRegistry) -> StageInstruction:
    return StageInstruction(
        ix.transfer_lamports(registry.payer.pubkey, Pubkey.new_unique(), 1_000),
        (PAYER_LABEL,),
        "pay 1000 lamports",
    )


async def _submitted(ledger: InMemoryLedgerClient, registry: AuthorityRegistry) -> PendingTransaction:
    builder = TransactionBuilder(ledger)
    tx = await builder.build([_payment(registry)], registry.payer)
    return await builder.submit(builder.sign(tx, registry))


def test_sign_collects_every_role_signature(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    builder = TransactionBuilder(ledger)

    tx = asyncio.run(builder.build([_mint_instruction(registry)], registry.payer))
    assert tx.status is TransactionStatus.BUILT
    assert tx.required_signers == {PAYER_LABEL, AuthorityRole.MINT}

    signed = builder.sign(tx, registry)
    assert signed.status is TransactionStatus.SIGNED
    assert signed.transaction is not None
    assert signed.transaction.verify_and_hash_message() is not None
    assert signed.signature == str(signed.transaction.signatures[0])


def test_sign_refuses_revoked_role(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    builder = TransactionBuilder(ledger)
    tx = asyncio.run(builder.build([_mint_instruction(registry)], registry.payer))

    with pytest.raises(SignerUnavailable, match="revoked"):
        builder.sign(tx, registry.with_revoked(AuthorityRole.MINT))


def test_sign_refuses_key_the_message_does_not_name(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    builder = TransactionBuilder(ledger)
    tx = asyncio.run(builder.build([_mint_instruction(registry)], registry.payer))
    impostor = registry.bind(AuthorityRole.MINT, Wallet.generate("impostor"))

    with pytest.raises(SignerUnavailable):
        builder.sign(tx, impostor)


def test_status_guards(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    builder = TransactionBuilder(ledger)
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)
    tx = asyncio.run(builder.build([_payment(registry)], registry.payer))

    with pytest.raises(InvalidTransactionStateError):
        asyncio.run(builder.submit(tx))
    with pytest.raises(InvalidTransactionStateError):
        asyncio.run(tracker.await_outcome(tx, 0))
    with pytest.raises(InvalidTransactionStateError, match="no signature"):
        tx.require_signature()

    signed = builder.sign(tx, registry)
    with pytest.raises(InvalidTransactionStateError):
        builder.sign(signed, registry)
    with pytest.raises(ValueError):
        asyncio.run(builder.build([], registry.payer))


def test_tracker_confirms_after_polling(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    ledger.queue_landing(LandingScript.lands(after_polls=2))
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)

    async def _flow() -> PendingTransaction:
        tx = await _submitted(ledger, registry)
        return await tracker.await_outcome(tx, 0)

    result = asyncio.run(_flow())
    assert result.status is TransactionStatus.CONFIRMED
    assert ledger.submissions[0].polls == 3


def test_tracker_reports_ledger_failure(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    error = {"InstructionError": [0, {"Custom": 1}]}
    ledger.queue_landing(LandingScript.fails(error))
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)

    async def _flow() -> PendingTransaction:
        return await tracker.await_outcome(await _submitted(ledger, registry), 0)

    result = asyncio.run(_flow())
    assert result.status is TransactionStatus.FAILED
    assert result.error == error


def test_tracker_expires_dropped_submission(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient(window=3)
    ledger.queue_landing(LandingScript.dropped())
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)

    async def _flow() -> PendingTransaction:
        return await tracker.await_outcome(await _submitted(ledger, registry), 0)

    result = asyncio.run(_flow())
    assert result.status is TransactionStatus.EXPIRED
    assert ledger.height > result.expiry_height


def test_tracker_rechecks_before_declaring_expiry(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient(window=2)
    ledger.queue_landing(LandingScript.lands(after_polls=3))
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)

    async def _flow() -> PendingTransaction:
        return await tracker.await_outcome(await _submitted(ledger, registry), 0)

    result = asyncio.run(_flow())
    assert result.status is TransactionStatus.CONFIRMED


def test_tracker_stops_when_cancelled(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)

    async def _flow() -> None:
        tx = await _submitted(ledger, registry)
        cancel = asyncio.Event()
        cancel.set()
        await tracker.await_outcome(tx, 0, cancel)

    with pytest.raises(WaitAbandoned) as excinfo:
        asyncio.run(_flow())
    assert excinfo.value.signature == ledger.submissions[0].signature


def test_resubmitting_same_bytes_is_deduplicated(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()

    async def _flow() -> tuple[str, str]:
        builder = TransactionBuilder(ledger)
        signed = builder.sign(await builder.build([_payment(registry)], registry.payer), registry)
        first = await builder.submit(signed)
        second = await builder.submit(signed)
        assert first.signature is not None and second.signature is not None
        return first.signature, second.signature

    first, second = asyncio.run(_flow())
    assert first == second
    assert len(ledger.submissions) == 1


@pytest.mark.asyncio
async def test_reconcile_reports_unknown_signature_as_pending() -> None:
    ledger = InMemoryLedgerClient()
    tracker = ConfirmationTracker(ledger, sleep=_no_sleep)

    status = await tracker.reconcile("never-submitted")

    assert not status.resolved
