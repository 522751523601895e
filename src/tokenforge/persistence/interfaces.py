"""Persistence abstractions for the lifecycle record."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import LifecycleRecord


@runtime_checkable
class LifecycleStateStore(Protocol):
    """Load and atomically replace the single persisted lifecycle record."""

    async def exists(self) -> bool: ...

    async def load(self) -> LifecycleRecord: ...

    async def save_atomic(self, record: LifecycleRecord) -> None: ...
