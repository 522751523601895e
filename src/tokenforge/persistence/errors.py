"""Custom persistence exceptions."""

from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when wallet files or the persisted record are missing or malformed."""


class StoreWriteError(ConfigError):
    """Raised when the lifecycle record could not be replaced on disk."""
