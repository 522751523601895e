"""Transaction assembly and tracking exceptions."""

from __future__ import annotations


class TransactionError(RuntimeError):
    """Base class for transaction pipeline failures."""


class InvalidTransactionStateError(TransactionError):
    """Raised when an operation is attempted from the wrong transaction status."""


class WaitAbandoned(TransactionError):
    """Raised when the caller cancels a confirmation wait between polls.

    The submission itself is not undone and may still execute.
    """

    def __init__(self, message: str, signature: str | None = None) -> None:
        super().__init__(message)
        self.signature = signature
