from __future__ import annotations

import asyncio
import json
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from tokenforge.authority import PAYER_LABEL, TREASURY_LABEL, WALLET_LABELS, AuthorityRegistry, wallet_path
from tokenforge.domain import LAMPORTS_PER_SOL, TokenPlan, Wallet
from tokenforge.ledger import InMemoryLedgerClient, LedgerError
from tokenforge.orchestration import CheckStatus, LifecycleError, PreflightRunner, WalletFunder


class _Recorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class _RateLimitedLedger(InMemoryLedgerClient):
    async def request_airdrop(self, address: Pubkey, lamports: int) -> str:
        if len(self.airdrop_times) >= 1:
            raise LedgerError("429 Too Many Requests")
        return await super().request_airdrop(address, lamports)


def test_airdrops_are_spaced_by_cooldown(wallets: dict[str, Wallet]) -> None:
    ledger = InMemoryLedgerClient()
    sleeper = _Recorder()
    funder = WalletFunder(ledger, cooldown_seconds=1.5, sleep=sleeper)
    selected = list(wallets.values())[:3]

    async def _flow() -> dict[str, int]:
        results = await funder.airdrop(selected, LAMPORTS_PER_SOL)
        assert all(result.ok for result in results)
        return await funder.balances(selected)

    balances = asyncio.run(_flow())
    assert sleeper.delays == [1.5, 1.5]
    assert balances == {wallet.label: LAMPORTS_PER_SOL for wallet in selected}


def test_airdrop_failure_is_reported_per_wallet(wallets: dict[str, Wallet]) -> None:
    ledger = _RateLimitedLedger()
    funder = WalletFunder(ledger, cooldown_seconds=0, sleep=_Recorder())
    selected = [wallets[PAYER_LABEL], wallets[TREASURY_LABEL]]

    results = asyncio.run(funder.airdrop(selected, LAMPORTS_PER_SOL))

    assert [result.ok for result in results] == [True, False]
    assert results[1].error is not None and "429" in results[1].error
    with pytest.raises(ValueError):
        asyncio.run(funder.airdrop(selected, 0))


def test_transfer_sol_between_wallets(registry: AuthorityRegistry) -> None:
    ledger = InMemoryLedgerClient()
    funder = WalletFunder(ledger, sleep=_Recorder())

    signature = asyncio.run(funder.transfer_sol(registry, PAYER_LABEL, TREASURY_LABEL, 10_000))

    assert ledger.submissions[0].signature == signature
    with pytest.raises(LifecycleError, match="neither"):
        asyncio.run(funder.transfer_sol(registry, PAYER_LABEL, "not-a-key", 10_000))
    assert len(ledger.submissions) == 1


def _plan(uri: str = "https://meta.test/frg.json") -> TokenPlan:
    return TokenPlan(name="Forge", symbol="FRG", uri=uri, initial_supply=Decimal("1000000"), fee_basis_points=50)


def _write_wallets(directory: Path) -> dict[str, Keypair]:
    keypairs = {}
    for label in WALLET_LABELS:
        keypair = Keypair()
        wallet_path(directory, label).write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")
        keypairs[label] = keypair
    return keypairs


def _metadata_client(status_code: int = 200, body: str = '{"name": "Forge"}') -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_preflight_passes_with_funded_payer(tmp_path: Path) -> None:
    ledger = InMemoryLedgerClient()
    keypairs = _write_wallets(tmp_path)
    ledger.balances[str(keypairs[PAYER_LABEL].pubkey())] = LAMPORTS_PER_SOL
    runner = PreflightRunner(ledger, client=_metadata_client())

    report = asyncio.run(runner.run(_plan(), wallets_dir=tmp_path, wallet_labels=WALLET_LABELS))

    assert report.ok
    names = [check.name for check in report.checks]
    assert names[0] == "ledger"
    assert f"wallet:{PAYER_LABEL}" in names
    assert {"token", "metadata", "cost"} <= set(names)
    assert report.estimated_cost > 0
    assert len(report.warnings) == 2


def test_preflight_flags_unfunded_payer_and_bad_metadata(tmp_path: Path) -> None:
    ledger = InMemoryLedgerClient()
    _write_wallets(tmp_path)
    runner = PreflightRunner(ledger, client=_metadata_client(404))

    report = asyncio.run(runner.run(_plan(), wallets_dir=tmp_path, wallet_labels=WALLET_LABELS))

    assert not report.ok
    failures = {check.name for check in report.checks if check.status is CheckStatus.FAIL}
    assert failures == {f"wallet:{PAYER_LABEL}", "metadata"}


def test_preflight_rejects_non_json_metadata_and_missing_wallets(tmp_path: Path) -> None:
    runner = PreflightRunner(InMemoryLedgerClient(), client=_metadata_client(body="<html></html>"))

    report = asyncio.run(runner.run(_plan(), wallets_dir=tmp_path, wallet_labels=(TREASURY_LABEL,)))

    failures = {check.name: check.detail for check in report.checks if check.status is CheckStatus.FAIL}
    assert "valid JSON" in failures["metadata"]
    assert "not found" in failures[f"wallet:{TREASURY_LABEL}"]
