"""Persistence layer exports."""

from .errors import ConfigError, StoreWriteError
from .interfaces import LifecycleStateStore
from .json_store import JsonFileStateStore
from .memory import InMemoryStateStore
from .models import RECORD_VERSION, LifecycleRecord, NetworkConfig, PendingRecord, TokenRecord

__all__ = [
    "RECORD_VERSION",
    "ConfigError",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "LifecycleRecord",
    "LifecycleStateStore",
    "NetworkConfig",
    "PendingRecord",
    "StoreWriteError",
    "TokenRecord",
]
