from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is importable when tests run via `uv run pytest`.
sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from tokenforge.authority import WALLET_LABELS, AuthorityRegistry  # noqa: E402
from tokenforge.domain import Wallet  # noqa: E402


@pytest.fixture
def wallets() -> dict[str, Wallet]:
    return {label: Wallet.generate(label) for label in WALLET_LABELS}


@pytest.fixture
def registry(wallets: dict[str, Wallet]) -> AuthorityRegistry:
    return AuthorityRegistry.from_wallets(wallets)
