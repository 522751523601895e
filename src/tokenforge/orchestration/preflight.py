"""Pre-deployment checks run before touching a production ledger."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

import httpx

from tokenforge.authority import PAYER_LABEL, irreversible_warning, load_wallet, wallet_path
from tokenforge.domain import LAMPORTS_PER_SOL, LifecycleStage, MintExtension, TokenPlan
from tokenforge.ledger import LedgerClient, LedgerError
from tokenforge.persistence import ConfigError
from tokenforge.transactions import instructions as ix
from tokenforge.utils import lamports_to_sol

SIGNATURE_FEE_LAMPORTS = 5_000
TOKEN_ACCOUNT_SPACE = 170
DEFAULT_MIN_PAYER_BALANCE = LAMPORTS_PER_SOL // 10

logger = logging.getLogger(__name__)


class CheckStatus(StrEnum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class PreflightCheck:
    name: str
    status: CheckStatus
    detail: str


@dataclass(slots=True)
class PreflightReport:
    checks: list[PreflightCheck] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    estimated_cost: int = 0

    @property
    def ok(self) -> bool:
        return all(check.status is not CheckStatus.FAIL for check in self.checks)

    def record(self, name: str, status: CheckStatus, detail: str) -> None:
        self.checks.append(PreflightCheck(name=name, status=status, detail=detail))


class PreflightRunner:
    """Verifies connectivity, wallets, the token plan and the metadata URI."""

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        min_payer_balance: int = DEFAULT_MIN_PAYER_BALANCE,
    ) -> None:
        self._ledger = ledger
        self._client = client
        self._timeout = timeout
        self._min_payer_balance = min_payer_balance

    async def run(
        self,
        plan: TokenPlan,
        *,
        wallets_dir: Path,
        wallet_labels: Sequence[str],
    ) -> PreflightReport:
        report = PreflightReport()
        await self._check_connectivity(report)
        await self._check_wallets(report, wallets_dir, wallet_labels)
        self._check_plan(report, plan)
        await self._check_metadata_uri(report, plan.uri)
        await self._estimate_cost(report, plan)
        report.warnings.extend(
            irreversible_warning(stage)
            for stage in (LifecycleStage.MINT_AUTHORITY_REVOKED, LifecycleStage.METADATA_IMMUTABILIZED)
        )
        return report

    async def _check_connectivity(self, report: PreflightReport) -> None:
        try:
            version = await self._ledger.get_version()
        except LedgerError as exc:
            report.record("ledger", CheckStatus.FAIL, f"unreachable: {exc}")
            return
        report.record("ledger", CheckStatus.PASS, f"connected (version {version})")

    async def _check_wallets(self, report: PreflightReport, wallets_dir: Path, labels: Sequence[str]) -> None:
        for label in labels:
            try:
                wallet = load_wallet(wallets_dir, label)
            except ConfigError as exc:
                report.record(f"wallet:{label}", CheckStatus.FAIL, str(exc))
                continue
            try:
                balance = await self._ledger.get_balance(wallet.pubkey)
            except LedgerError as exc:
                report.record(f"wallet:{label}", CheckStatus.FAIL, f"balance lookup failed: {exc}")
                continue
            detail = f"{wallet_path(wallets_dir, label).name}: {lamports_to_sol(balance)} SOL"
            if label == PAYER_LABEL and balance < self._min_payer_balance:
                minimum = lamports_to_sol(self._min_payer_balance)
                report.record(f"wallet:{label}", CheckStatus.FAIL, f"{detail} (below {minimum} SOL)")
                continue
            report.record(f"wallet:{label}", CheckStatus.PASS, detail)

    def _check_plan(self, report: PreflightReport, plan: TokenPlan) -> None:
        max_fee = plan.raw_max_fee
        report.record(
            "token",
            CheckStatus.PASS,
            f"{plan.name} ({plan.symbol}), {plan.decimals} decimals, supply {plan.initial_supply} "
            f"({plan.raw_supply} raw), fee {plan.fee_basis_points} bps (cap {max_fee or 'none'})",
        )

    async def _check_metadata_uri(self, report: PreflightReport, uri: str) -> None:
        try:
            async with self._client_scope() as client:
                response = await client.get(uri)
                response.raise_for_status()
                response.json()
        except httpx.HTTPStatusError as exc:
            report.record("metadata", CheckStatus.FAIL, f"{uri} returned status {exc.response.status_code}")
            return
        except httpx.HTTPError as exc:
            report.record("metadata", CheckStatus.FAIL, f"{uri} is not reachable: {exc}")
            return
        except json.JSONDecodeError:
            report.record("metadata", CheckStatus.FAIL, f"{uri} did not return valid JSON")
            return
        report.record("metadata", CheckStatus.PASS, f"{uri} serves valid JSON")

    async def _estimate_cost(self, report: PreflightReport, plan: TokenPlan) -> None:
        extensions = {MintExtension.METADATA_POINTER, MintExtension.TRANSFER_FEE_CONFIG}
        space = ix.mint_space(extensions)
        try:
            mint_rent = await self._ledger.get_minimum_rent_exempt_balance(
                space + ix.metadata_space(plan.name, plan.symbol, plan.uri)
            )
            account_rent = await self._ledger.get_minimum_rent_exempt_balance(TOKEN_ACCOUNT_SPACE)
        except LedgerError as exc:
            report.record("cost", CheckStatus.WARN, f"unable to estimate rent: {exc}")
            return
        # create, metadata, accounts, supply, fee, two revocations
        fees = SIGNATURE_FEE_LAMPORTS * 8
        report.estimated_cost = mint_rent + 2 * account_rent + fees
        report.record("cost", CheckStatus.PASS, f"~{lamports_to_sol(report.estimated_cost)} SOL")

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            yield client


__all__ = ["CheckStatus", "PreflightCheck", "PreflightReport", "PreflightRunner"]
