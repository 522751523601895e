"""Observe submitted transactions until they resolve or their window closes."""

from __future__ import annotations

import asyncio
import logging

from tokenforge.domain import TransactionStatus
from tokenforge.ledger import ExecutionState, ExecutionStatus, LedgerClient

from .exceptions import InvalidTransactionStateError, WaitAbandoned
from .models import PendingTransaction
from .retry import SleepFn

logger = logging.getLogger(__name__)


class ConfirmationTracker:
    def __init__(self, ledger: LedgerClient, *, sleep: SleepFn = asyncio.sleep) -> None:
        self._ledger = ledger
        self._sleep = sleep

    async def await_outcome(
        self,
        tx: PendingTransaction,
        poll_interval: float,
        cancel_event: asyncio.Event | None = None,
    ) -> PendingTransaction:
        """Poll until the submission is confirmed, failed or expired.

        Expiry is only declared once the ledger height has passed the
        window and a final status check still shows nothing, so a
        transaction landing in the last block is not misreported.
        """

        if tx.status is not TransactionStatus.SUBMITTED or tx.signature is None:
            msg = f"Only submitted transactions can be awaited, not {tx.status}"
            raise InvalidTransactionStateError(msg)
        signature = tx.signature
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise WaitAbandoned(f"Stopped waiting for {signature}", signature=signature)
            status = await self._ledger.get_execution_status(signature)
            if status.resolved:
                return self.resolve(tx, status)
            height = await self._ledger.get_current_height()
            if height > tx.expiry_height:
                status = await self._ledger.get_execution_status(signature)
                if status.resolved:
                    return self.resolve(tx, status)
                logger.warning("%s expired at height %d (window ended at %d)", signature, height, tx.expiry_height)
                return tx.advance(TransactionStatus.EXPIRED)
            await self._sleep(poll_interval)

    async def reconcile(self, signature: str) -> ExecutionStatus:
        """Single status query for a submission whose outcome was never observed."""

        return await self._ledger.get_execution_status(signature)

    def resolve(self, tx: PendingTransaction, status: ExecutionStatus) -> PendingTransaction:
        if status.state is ExecutionState.ERROR:
            logger.error("%s failed on ledger: %s", tx.signature, status.error)
            return tx.advance(TransactionStatus.FAILED, error=status.error)
        logger.info("%s confirmed", tx.signature)
        return tx.advance(TransactionStatus.CONFIRMED)


__all__ = ["ConfirmationTracker"]
