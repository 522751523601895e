"""Exceptions for lifecycle orchestration."""

from __future__ import annotations


class LifecycleError(RuntimeError):
    """Raised when a lifecycle operation fails validation."""


class InvalidTransitionError(LifecycleError):
    """Raised when a stage is re-entered, skipped or approached backwards."""


class ConfirmationDeclined(LifecycleError):
    """Raised when the operator declines an irreversible stage."""
