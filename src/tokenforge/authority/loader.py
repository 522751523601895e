"""Load wallet keypairs from Solana CLI style JSON files."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from solders.keypair import Keypair

from tokenforge.domain import Wallet
from tokenforge.persistence.errors import ConfigError

from .registry import FEE_COLLECTOR_LABEL, PAYER_LABEL, TREASURY_LABEL

WALLET_LABELS: tuple[str, ...] = (
    PAYER_LABEL,
    "mint-authority",
    "freeze-authority",
    TREASURY_LABEL,
    FEE_COLLECTOR_LABEL,
)
SECRET_KEY_LENGTH = 64

logger = logging.getLogger(__name__)


def wallet_path(wallets_dir: Path, label: str) -> Path:
    return wallets_dir / f"{label}.json"


def load_keypair(path: Path) -> Keypair:
    """Read a 64-byte secret key stored as a JSON array of integers."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        msg = f"Wallet file not found: {path}"
        raise ConfigError(msg) from exc
    except (OSError, json.JSONDecodeError) as exc:
        msg = f"Unable to read wallet file {path}"
        raise ConfigError(msg) from exc
    if not isinstance(raw, list) or len(raw) != SECRET_KEY_LENGTH:
        msg = f"Wallet file {path} must contain a {SECRET_KEY_LENGTH}-element array"
        raise ConfigError(msg)
    try:
        return Keypair.from_bytes(bytes(raw))
    except (TypeError, ValueError) as exc:
        msg = f"Wallet file {path} does not hold a valid secret key"
        raise ConfigError(msg) from exc


def load_wallet(wallets_dir: Path, label: str) -> Wallet:
    wallet = Wallet(label=label, keypair=load_keypair(wallet_path(wallets_dir, label)))
    logger.debug("Loaded wallet %s", wallet)
    return wallet


def load_wallets(
    wallets_dir: Path,
    labels: Iterable[str] = WALLET_LABELS,
    *,
    required: bool = True,
) -> dict[str, Wallet]:
    """Load every labelled wallet under ``wallets_dir``.

    With ``required=False`` missing files are skipped so read-only commands
    can still report on the wallets that exist.
    """

    wallets: dict[str, Wallet] = {}
    for label in labels:
        path = wallet_path(wallets_dir, label)
        if not path.exists() and not required:
            logger.info("Skipping missing wallet file %s", path)
            continue
        wallets[label] = load_wallet(wallets_dir, label)
    return wallets


__all__ = [
    "SECRET_KEY_LENGTH",
    "WALLET_LABELS",
    "load_keypair",
    "load_wallet",
    "load_wallets",
    "wallet_path",
]
