"""Operator confirmation for irreversible lifecycle stages."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

import typer

from tokenforge.domain import LifecycleStage

DEFAULT_CONFIRMATION_PHRASE = "CONFIRM"

_WARNINGS: dict[LifecycleStage, str] = {
    LifecycleStage.MINT_AUTHORITY_REVOKED: (
        "Revoking the mint authority permanently fixes the token supply. No further tokens can ever be minted."
    ),
    LifecycleStage.METADATA_IMMUTABILIZED: (
        "Removing the update authority permanently locks the token name, symbol and URI."
    ),
}


def irreversible_warning(stage: LifecycleStage) -> str:
    return _WARNINGS.get(stage, f"Entering {stage} cannot be undone.")


@runtime_checkable
class ConfirmationGate(Protocol):
    """Decides whether an irreversible stage may proceed."""

    async def confirm_irreversible(self, stage: LifecycleStage) -> bool: ...


class AutoApproveGate:
    """Approves every request. Intended for scripted environments and tests."""

    async def confirm_irreversible(self, stage: LifecycleStage) -> bool:
        return True


class PolicyGate:
    """Approves only the stages listed at construction time."""

    def __init__(self, allowed_stages: Iterable[LifecycleStage]) -> None:
        self._allowed = frozenset(allowed_stages)

    async def confirm_irreversible(self, stage: LifecycleStage) -> bool:
        return stage in self._allowed


class InteractiveConfirmationGate:
    """Two-step operator prompt: a yes/no question followed by a typed phrase."""

    def __init__(
        self,
        *,
        phrase: str = DEFAULT_CONFIRMATION_PHRASE,
        confirm: Callable[[str], bool] | None = None,
        prompt: Callable[[str], str] | None = None,
        echo: Callable[[str], None] | None = None,
    ) -> None:
        self._phrase = phrase
        self._confirm = confirm or (lambda text: typer.confirm(text, default=False))
        self._prompt = prompt or (lambda text: typer.prompt(text, default="", show_default=False))
        self._echo = echo or (lambda text: typer.secho(text, fg=typer.colors.YELLOW, err=True))

    async def confirm_irreversible(self, stage: LifecycleStage) -> bool:
        self._echo(f"WARNING: {irreversible_warning(stage)}")
        if not self._confirm(f"Proceed to {stage}?"):
            return False
        answer = self._prompt(f"Type {self._phrase} to continue")
        return answer.strip() == self._phrase


__all__ = [
    "DEFAULT_CONFIRMATION_PHRASE",
    "AutoApproveGate",
    "ConfirmationGate",
    "InteractiveConfirmationGate",
    "PolicyGate",
    "irreversible_warning",
]
