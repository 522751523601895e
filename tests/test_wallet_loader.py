from __future__ import annotations

import json
from pathlib import Path

import pytest
from solders.keypair import Keypair

from tokenforge.authority import WALLET_LABELS, load_keypair, load_wallets, wallet_path
from tokenforge.persistence import ConfigError


def _write_wallet(directory: Path, label: str) -> Keypair:
    keypair = Keypair()
    wallet_path(directory, label).write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
    return keypair


def test_load_wallets_reads_every_label(tmp_path: Path) -> None:
    expected = {label: _write_wallet(tmp_path, label) for label in WALLET_LABELS}

    wallets = load_wallets(tmp_path)

    assert set(wallets) == set(WALLET_LABELS)
    for label, keypair in expected.items():
        assert wallets[label].pubkey == keypair.pubkey()


def test_missing_wallet_is_fatal_unless_optional(tmp_path: Path) -> None:
    _write_wallet(tmp_path, "treasury")

    with pytest.raises(ConfigError, match="not found"):
        load_wallets(tmp_path)

    wallets = load_wallets(tmp_path, required=False)
    assert list(wallets) == ["treasury"]


def test_malformed_wallet_files(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_keypair(broken)

    short = tmp_path / "short.json"
    short.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ConfigError, match="64-element"):
        load_keypair(short)
