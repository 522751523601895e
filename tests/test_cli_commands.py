from __future__ import annotations

import json
from importlib import import_module
from pathlib import Path

import pytest
from solders.keypair import Keypair
from typer.testing import CliRunner

from tokenforge.authority import PAYER_LABEL, WALLET_LABELS, wallet_path
from tokenforge.config import AppSettings
from tokenforge.container import ServiceContainer, build_container
from tokenforge.domain import LAMPORTS_PER_SOL, AuthorityRole, LifecycleStage
from tokenforge.ledger import InMemoryLedgerClient
from tokenforge.persistence import InMemoryStateStore

app_module = import_module("tokenforge.cli.app")
from tokenforge.cli.app import app  # noqa: E402
from tokenforge.cli.deps import reset_container  # noqa: E402

CREATE_ARGS = [
    "create-token",
    "--name",
    "Forge Token",
    "--symbol",
    "frg",
    "--uri",
    "https://example.com/frg.json",
    "--supply",
    "1000000000",
    "--fee-bps",
    "500",
]


def _container(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    *,
    environment: str = "localnet",
    write_wallets: bool = True,
) -> ServiceContainer:
    wallets_dir = tmp_path / "wallets"
    wallets_dir.mkdir()
    if write_wallets:
        for label in WALLET_LABELS:
            wallet_path(wallets_dir, label).write_text(json.dumps(list(bytes(Keypair()))), encoding="utf-8")
    settings = AppSettings(
        environment=environment,
        rpc_endpoint="http://127.0.0.1:8899",
        record_path=tmp_path / "state" / "token.json",
        wallets_dir=wallets_dir,
        retry_initial_delay=0,
        poll_interval=0,
        airdrop_cooldown=0,
    )
    container = build_container(settings, ledger=InMemoryLedgerClient(), store=InMemoryStateStore())
    monkeypatch.setattr(app_module, "get_container", lambda: container)
    return container


def _store(container: ServiceContainer) -> InMemoryStateStore:
    assert isinstance(container.store, InMemoryStateStore)
    return container.store


def _ledger(container: ServiceContainer) -> InMemoryLedgerClient:
    assert isinstance(container.ledger, InMemoryLedgerClient)
    return container.ledger


def test_cli_show_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _container(monkeypatch, tmp_path)
    runner = CliRunner()
    result = runner.invoke(app, ["show-settings"])
    assert result.exit_code == 0
    assert "Environment:\tlocalnet" in result.stdout


def test_cli_status_without_record_fails(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _container(monkeypatch, tmp_path)
    runner = CliRunner()
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
    assert "No lifecycle record" in result.output


def test_cli_create_token_then_status(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, CREATE_ARGS)
    assert result.exit_code == 0, result.output
    assert "Mint created" in result.stdout

    record = _store(container).record
    assert record is not None
    assert record.stage is LifecycleStage.FEE_CONFIGURED
    assert record.token.mint is not None
    assert record.token.mint.supply == 1_000_000_000 * 10**6
    submitted = len(_ledger(container).submissions)

    again = runner.invoke(app, CREATE_ARGS)
    assert again.exit_code == 0
    assert len(_ledger(container).submissions) == submitted

    status = runner.invoke(app, ["status"])
    assert status.exit_code == 0
    assert "FRG" in status.stdout


def test_cli_transfer_applies_fee(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()
    assert runner.invoke(app, CREATE_ARGS).exit_code == 0

    result = runner.invoke(app, ["transfer", "fee-collector", "10000"])

    assert result.exit_code == 0, result.output
    record = _store(container).record
    assert record is not None
    account = record.token.accounts["fee-collector"]
    assert account.balance == 9_500 * 10**6
    assert account.withheld == 500 * 10**6


def test_cli_revoke_requires_confirmation(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()
    assert runner.invoke(app, CREATE_ARGS).exit_code == 0
    submitted = len(_ledger(container).submissions)

    declined = runner.invoke(app, ["revoke-minting"], input="n\n")
    assert declined.exit_code == 1
    assert "declined" in declined.output
    assert len(_ledger(container).submissions) == submitted

    wrong_phrase = runner.invoke(app, ["revoke-minting"], input="y\nconfirm\n")
    assert wrong_phrase.exit_code == 1

    confirmed = runner.invoke(app, ["revoke-minting"], input="y\nCONFIRM\n")
    assert confirmed.exit_code == 0, confirmed.output
    record = _store(container).record
    assert record is not None
    assert record.stage is LifecycleStage.MINT_AUTHORITY_REVOKED
    assert record.authorities[AuthorityRole.MINT] is None


def test_cli_lock_and_finalize(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()
    assert runner.invoke(app, CREATE_ARGS).exit_code == 0

    assert runner.invoke(app, ["lock-metadata", "--yes"]).exit_code == 0
    result = runner.invoke(app, ["finalize"])

    assert result.exit_code == 0, result.output
    record = _store(container).record
    assert record is not None
    assert record.stage is LifecycleStage.FINALIZED
    assert record.token.metadata is not None and not record.token.metadata.is_mutable


def test_cli_fund_wallets(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, ["fund-wallets", "--amount", "2", "--label", PAYER_LABEL])

    assert result.exit_code == 0, result.output
    registry = container.load_registry()
    balances = _ledger(container).balances
    assert balances[str(registry.payer.pubkey)] == 2 * LAMPORTS_PER_SOL


def test_cli_fund_wallets_refused_on_mainnet(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path, environment="mainnet-beta")
    runner = CliRunner()

    result = runner.invoke(app, ["fund-wallets"])

    assert result.exit_code == 1
    assert _ledger(container).airdrop_times == []


def test_cli_missing_wallets_fail_cleanly(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _container(monkeypatch, tmp_path, write_wallets=False)
    runner = CliRunner()

    result = runner.invoke(app, CREATE_ARGS)

    assert result.exit_code == 1
    assert "Wallet file not found" in result.output


def test_cli_rejects_invalid_plan(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()

    result = runner.invoke(app, [*CREATE_ARGS[:-2], "--decimals", "2", "--max-fee", "0.001"])

    assert result.exit_code == 1
    assert _ledger(container).submissions == []


def test_cli_builds_container_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TOKENFORGE_ENV", "localnet")
    monkeypatch.setenv("TOKENFORGE_RPC_ENDPOINT", "http://127.0.0.1:8899")
    monkeypatch.setenv("TOKENFORGE_WALLETS_DIR", str(tmp_path / "keys"))
    reset_container()
    runner = CliRunner()

    try:
        result = runner.invoke(app, ["show-settings"])
    finally:
        reset_container()

    assert result.exit_code == 0, result.output
    assert "Environment:\tlocalnet" in result.stdout
    assert str(tmp_path / "keys") in result.stdout


def test_cli_changed_fee_is_scheduled(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    container = _container(monkeypatch, tmp_path)
    runner = CliRunner()
    assert runner.invoke(app, CREATE_ARGS[:-2]).exit_code == 0

    result = runner.invoke(app, ["configure-fee", "300"])

    assert result.exit_code == 0, result.output
    assert "takes effect at epoch 2" in result.stdout
    record = _store(container).record
    assert record is not None and record.token.mint is not None
    assert record.token.mint.newer_transfer_fee is not None
    assert record.token.mint.newer_transfer_fee.fee_basis_points == 300
