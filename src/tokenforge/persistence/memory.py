"""In-memory lifecycle store for unit testing."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ConfigError
from .interfaces import LifecycleStateStore
from .models import LifecycleRecord


@dataclass
class InMemoryStateStore(LifecycleStateStore):
    record: LifecycleRecord | None = None
    saves: list[LifecycleRecord] = field(default_factory=list)

    async def exists(self) -> bool:
        return self.record is not None

    async def load(self) -> LifecycleRecord:
        if self.record is None:
            raise ConfigError("No lifecycle record has been saved")
        return self.record

    async def save_atomic(self, record: LifecycleRecord) -> None:
        self.record = record
        self.saves.append(record)


__all__ = ["InMemoryStateStore"]
