"""Exceptions raised while resolving signing authorities."""

from __future__ import annotations


class AuthorityError(RuntimeError):
    """Base class for authority registry failures."""


class SignerUnavailable(AuthorityError):
    """Raised when a role is revoked or unbound, or a key does not match."""
