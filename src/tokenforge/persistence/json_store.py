"""JSON file backed lifecycle store."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .errors import ConfigError, StoreWriteError
from .interfaces import LifecycleStateStore
from .models import LifecycleRecord

logger = logging.getLogger(__name__)


class JsonFileStateStore(LifecycleStateStore):
    """Persist the record as indented JSON.

    Writes go to a temporary file in the target directory which is flushed,
    fsynced and then renamed over the previous record, so readers observe
    either the old record or the new one.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def exists(self) -> bool:
        return self._path.exists()

    async def load(self) -> LifecycleRecord:
        return await asyncio.to_thread(self._read)

    async def save_atomic(self, record: LifecycleRecord) -> None:
        await asyncio.to_thread(self._write, record)

    def _read(self) -> LifecycleRecord:
        try:
            payload = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            msg = f"Lifecycle record not found at {self._path}"
            raise ConfigError(msg) from exc
        except OSError as exc:
            msg = f"Unable to read lifecycle record at {self._path}"
            raise ConfigError(msg) from exc
        try:
            return LifecycleRecord.model_validate_json(payload)
        except ValidationError as exc:
            msg = f"Lifecycle record at {self._path} is malformed"
            raise ConfigError(msg) from exc

    def _write(self, record: LifecycleRecord) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        payload = record.model_dump_json(indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=directory)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            with contextlib.suppress(FileNotFoundError):
                tmp_path.unlink()
            msg = f"Unable to write lifecycle record to {self._path}"
            raise StoreWriteError(msg) from exc
        logger.debug("Saved lifecycle record at stage %s to %s", record.stage, self._path)


__all__ = ["JsonFileStateStore"]
