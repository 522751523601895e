"""Ordering rules for the token lifecycle."""

from __future__ import annotations

from tokenforge.domain import LifecycleStage

from .exceptions import InvalidTransitionError

STAGE_ORDER: tuple[LifecycleStage, ...] = (
    LifecycleStage.UNINITIALIZED,
    LifecycleStage.MINT_CREATED,
    LifecycleStage.METADATA_ATTACHED,
    LifecycleStage.ACCOUNTS_PROVISIONED,
    LifecycleStage.SUPPLY_MINTED,
    LifecycleStage.FEE_CONFIGURED,
    LifecycleStage.MINT_AUTHORITY_REVOKED,
    LifecycleStage.METADATA_IMMUTABILIZED,
    LifecycleStage.FINALIZED,
)
OPTIONAL_STAGES = frozenset(
    {
        LifecycleStage.FEE_CONFIGURED,
        LifecycleStage.MINT_AUTHORITY_REVOKED,
        LifecycleStage.METADATA_IMMUTABILIZED,
    }
)
IRREVERSIBLE_STAGES = frozenset(
    {
        LifecycleStage.MINT_AUTHORITY_REVOKED,
        LifecycleStage.METADATA_IMMUTABILIZED,
    }
)

_INDEX = {stage: position for position, stage in enumerate(STAGE_ORDER)}


def has_reached(current: LifecycleStage, stage: LifecycleStage) -> bool:
    return _INDEX[current] >= _INDEX[stage]


def can_enter(current: LifecycleStage, target: LifecycleStage) -> bool:
    """True when ``target`` lies ahead and every stage in between is optional."""

    start, end = _INDEX[current], _INDEX[target]
    if end <= start:
        return False
    return all(stage in OPTIONAL_STAGES for stage in STAGE_ORDER[start + 1 : end])


def ensure_can_enter(current: LifecycleStage, target: LifecycleStage) -> None:
    if can_enter(current, target):
        return
    if _INDEX[target] <= _INDEX[current]:
        msg = f"Cannot enter {target} from {current}; the lifecycle only moves forward"
    else:
        skipped = [
            str(stage)
            for stage in STAGE_ORDER[_INDEX[current] + 1 : _INDEX[target]]
            if stage not in OPTIONAL_STAGES
        ]
        msg = f"Cannot enter {target} from {current}; complete {', '.join(skipped)} first"
    raise InvalidTransitionError(msg)


__all__ = [
    "IRREVERSIBLE_STAGES",
    "OPTIONAL_STAGES",
    "STAGE_ORDER",
    "can_enter",
    "ensure_can_enter",
    "has_reached",
]
