"""Retry-governed round trip from instructions to an observed outcome."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from solders.keypair import Keypair

from tokenforge.authority import AuthorityRegistry
from tokenforge.domain import TransactionStatus, Wallet
from tokenforge.ledger import ExecutionError, ExecutionStatus, ExpiredWindow, LedgerClient

from .builder import TransactionBuilder
from .models import PendingTransaction, StageInstruction
from .retry import RetryExecutor, SleepFn
from .tracker import ConfirmationTracker

SubmittedHook = Callable[[PendingTransaction], Awaitable[None]]

logger = logging.getLogger(__name__)


class TransactionRunner:
    """Build, sign, submit and confirm inside a :class:`RetryExecutor`.

    Expired attempts are rebuilt against a fresh validity window. When a
    transient error interrupts an attempt after signing, the next attempt
    first reconciles the earlier signature and keeps waiting on it while its
    window is open, so one operation never executes twice.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        retry: RetryExecutor | None = None,
        poll_interval: float = 2.0,
        sleep: SleepFn = asyncio.sleep,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._ledger = ledger
        self._retry = retry or RetryExecutor(sleep=sleep)
        self._poll_interval = poll_interval
        self._cancel_event = cancel_event
        self._builder = TransactionBuilder(ledger)
        self._tracker = ConfirmationTracker(ledger, sleep=sleep)

    @property
    def tracker(self) -> ConfirmationTracker:
        return self._tracker

    async def execute(
        self,
        instructions: Sequence[StageInstruction],
        fee_payer: Wallet,
        registry: AuthorityRegistry,
        *,
        ephemeral_signers: Sequence[Keypair] = (),
        on_submitted: SubmittedHook | None = None,
        label: str = "transaction",
    ) -> PendingTransaction:
        previous: PendingTransaction | None = None

        async def attempt() -> PendingTransaction:
            nonlocal previous
            if previous is not None:
                resumed = await self._continue(previous, on_submitted)
                if resumed is not None:
                    return self._settle(label, resumed)
                previous = None
            tx = await self._builder.build(instructions, fee_payer, ephemeral_signers=ephemeral_signers)
            tx = self._builder.sign(tx, registry)
            previous = tx
            try:
                tx = await self._builder.submit(tx)
            except ExpiredWindow:
                previous = None
                raise
            previous = tx
            if on_submitted is not None:
                await on_submitted(tx)
            result = await self._tracker.await_outcome(tx, self._poll_interval, self._cancel_event)
            return self._settle(label, result)

        return await self._retry.run(attempt)

    async def reconcile(self, signature: str) -> ExecutionStatus:
        return await self._tracker.reconcile(signature)

    async def _continue(
        self,
        previous: PendingTransaction,
        on_submitted: SubmittedHook | None,
    ) -> PendingTransaction | None:
        """Return the earlier attempt's outcome, or None if it can no longer execute."""

        status = await self._tracker.reconcile(previous.require_signature())
        if status.resolved:
            return self._tracker.resolve(previous, status)
        height = await self._ledger.get_current_height()
        if height > previous.expiry_height:
            return None
        logger.info("Resuming wait on %s instead of rebuilding", previous.signature)
        if previous.status is TransactionStatus.SIGNED:
            # Same bytes and signature; a second copy is deduplicated by the ledger.
            try:
                previous = await self._builder.submit(previous)
            except ExpiredWindow:
                return None
            if on_submitted is not None:
                await on_submitted(previous)
        return await self._tracker.await_outcome(previous, self._poll_interval, self._cancel_event)

    def _settle(self, label: str, result: PendingTransaction) -> PendingTransaction:
        if result.status is TransactionStatus.CONFIRMED:
            return result
        if result.status is TransactionStatus.EXPIRED:
            msg = f"{label} transaction {result.signature} expired before execution was observed"
            raise ExpiredWindow(msg)
        msg = f"{label} transaction {result.signature} failed on ledger"
        raise ExecutionError(msg, payload=result.error)


__all__ = ["SubmittedHook", "TransactionRunner"]
