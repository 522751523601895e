"""Transaction pipeline exports."""

from .builder import TransactionBuilder
from .exceptions import InvalidTransactionStateError, TransactionError, WaitAbandoned
from .models import PendingTransaction, StageInstruction
from .retry import RetryExecutor, RetryPolicy, SleepFn
from .runner import SubmittedHook, TransactionRunner
from .tracker import ConfirmationTracker

__all__ = [
    "ConfirmationTracker",
    "InvalidTransactionStateError",
    "PendingTransaction",
    "RetryExecutor",
    "RetryPolicy",
    "SleepFn",
    "StageInstruction",
    "SubmittedHook",
    "TransactionBuilder",
    "TransactionError",
    "TransactionRunner",
    "WaitAbandoned",
]
