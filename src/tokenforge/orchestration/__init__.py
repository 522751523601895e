"""Lifecycle orchestration exports."""

from .exceptions import ConfirmationDeclined, InvalidTransitionError, LifecycleError
from .funding import DEFAULT_AIRDROP_COOLDOWN, AirdropResult, WalletFunder
from .lifecycle import DEFAULT_HOLDERS, TokenLifecycleOrchestrator
from .preflight import CheckStatus, PreflightCheck, PreflightReport, PreflightRunner
from .stages import (
    IRREVERSIBLE_STAGES,
    OPTIONAL_STAGES,
    STAGE_ORDER,
    can_enter,
    ensure_can_enter,
    has_reached,
)

__all__ = [
    "DEFAULT_AIRDROP_COOLDOWN",
    "DEFAULT_HOLDERS",
    "IRREVERSIBLE_STAGES",
    "OPTIONAL_STAGES",
    "STAGE_ORDER",
    "AirdropResult",
    "CheckStatus",
    "ConfirmationDeclined",
    "InvalidTransitionError",
    "LifecycleError",
    "PreflightCheck",
    "PreflightReport",
    "PreflightRunner",
    "TokenLifecycleOrchestrator",
    "WalletFunder",
    "can_enter",
    "ensure_can_enter",
    "has_reached",
]
