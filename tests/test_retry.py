from __future__ import annotations

import asyncio
import random

import pytest

from tokenforge.ledger import ExecutionError, ExpiredWindow, TransientTransportError
from tokenforge.transactions import RetryExecutor, RetryPolicy


class _Recorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_backoff_sequence_then_success() -> None:
    sleeper = _Recorder()
    executor = RetryExecutor(RetryPolicy(max_attempts=5, initial_delay=1.0, multiplier=2.0), sleep=sleeper)
    calls = 0

    async def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 4:
            raise TransientTransportError("timeout")
        return "done"

    assert asyncio.run(executor.run(flaky)) == "done"
    assert calls == 4
    assert sleeper.delays == [1.0, 2.0, 4.0]


def test_exhaustion_reraises_last_error_with_note() -> None:
    sleeper = _Recorder()
    executor = RetryExecutor(RetryPolicy(max_attempts=3, initial_delay=0.5), sleep=sleeper)
    calls = 0

    async def always_expired() -> None:
        nonlocal calls
        calls += 1
        raise ExpiredWindow(f"attempt {calls}")

    with pytest.raises(ExpiredWindow, match="attempt 3") as excinfo:
        asyncio.run(executor.run(always_expired))
    assert calls == 3
    assert sleeper.delays == [0.5, 1.0]
    assert "gave up after 3 attempts" in excinfo.value.__notes__


def test_fatal_errors_are_not_retried() -> None:
    sleeper = _Recorder()
    executor = RetryExecutor(sleep=sleeper)
    calls = 0

    async def rejected() -> None:
        nonlocal calls
        calls += 1
        raise ExecutionError("custom program error", payload={"InstructionError": [0, {"Custom": 1}]})

    with pytest.raises(ExecutionError):
        asyncio.run(executor.run(rejected))
    assert calls == 1
    assert sleeper.delays == []


def test_jitter_is_added_within_bound() -> None:
    sleeper = _Recorder()
    policy = RetryPolicy(max_attempts=2, initial_delay=1.0, jitter=0.5)
    executor = RetryExecutor(policy, sleep=sleeper, rng=random.Random(7))
    calls = 0

    async def once() -> int:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise TransientTransportError("reset")
        return calls

    assert asyncio.run(executor.run(once)) == 2
    assert 1.0 <= sleeper.delays[0] <= 1.5


def test_policy_override_per_call() -> None:
    sleeper = _Recorder()
    executor = RetryExecutor(RetryPolicy(max_attempts=5), sleep=sleeper)

    async def failing() -> None:
        raise TransientTransportError("busy")

    with pytest.raises(TransientTransportError):
        asyncio.run(executor.run(failing, RetryPolicy(max_attempts=1)))
    assert sleeper.delays == []


def test_policy_validation() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(multiplier=0.5)
    assert list(RetryPolicy(max_attempts=3, initial_delay=2.0, multiplier=3.0).delays()) == [2.0, 6.0]
