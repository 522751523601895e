"""Service container wiring application components."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tokenforge.authority import (
    AuthorityRegistry,
    ConfirmationGate,
    InteractiveConfirmationGate,
    load_wallets,
)
from tokenforge.config import AppSettings
from tokenforge.ledger import HttpLedgerClient, LedgerClient
from tokenforge.orchestration import PreflightRunner, TokenLifecycleOrchestrator, WalletFunder
from tokenforge.persistence import JsonFileStateStore, LifecycleStateStore, NetworkConfig
from tokenforge.transactions import RetryExecutor, RetryPolicy, TransactionRunner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    """Aggregates services sharing one ledger connection and configuration."""

    settings: AppSettings
    ledger: LedgerClient
    store: LifecycleStateStore
    retry: RetryExecutor
    gate: ConfirmationGate
    funder: WalletFunder
    preflight: PreflightRunner

    @property
    def network(self) -> NetworkConfig:
        return NetworkConfig(
            environment=self.settings.environment,
            endpoint=self.settings.rpc_endpoint,
            commitment=self.settings.commitment,
        )

    def load_registry(self, *, required: bool = True) -> AuthorityRegistry:
        """Read wallet files once and bind roles to them."""

        wallets = load_wallets(self.settings.wallets_dir, required=required)
        logger.debug("Loaded %d wallets from %s", len(wallets), self.settings.wallets_dir)
        return AuthorityRegistry.from_wallets(wallets)

    async def open_orchestrator(
        self,
        registry: AuthorityRegistry | None = None,
        *,
        gate: ConfirmationGate | None = None,
    ) -> TokenLifecycleOrchestrator:
        return await TokenLifecycleOrchestrator.open(
            ledger=self.ledger,
            store=self.store,
            registry=registry or self.load_registry(),
            network=self.network,
            gate=gate or self.gate,
            retry=self.retry,
            poll_interval=self.settings.poll_interval,
        )


def build_container(
    settings: AppSettings | None = None,
    *,
    ledger: LedgerClient | None = None,
    store: LifecycleStateStore | None = None,
    gate: ConfirmationGate | None = None,
) -> ServiceContainer:
    """Construct the primary service container."""

    resolved_settings = settings or AppSettings.from_env()
    resolved_ledger = ledger or HttpLedgerClient(
        resolved_settings.rpc_endpoint,
        commitment=resolved_settings.commitment,
        timeout=resolved_settings.request_timeout,
    )
    retry = RetryExecutor(
        RetryPolicy(
            max_attempts=resolved_settings.retry_max_attempts,
            initial_delay=resolved_settings.retry_initial_delay,
            multiplier=resolved_settings.retry_multiplier,
        )
    )
    runner = TransactionRunner(
        resolved_ledger,
        retry=retry,
        poll_interval=resolved_settings.poll_interval,
    )
    funder = WalletFunder(
        resolved_ledger,
        cooldown_seconds=resolved_settings.airdrop_cooldown,
        runner=runner,
    )
    preflight = PreflightRunner(resolved_ledger, timeout=resolved_settings.request_timeout)

    return ServiceContainer(
        settings=resolved_settings,
        ledger=resolved_ledger,
        store=store or JsonFileStateStore(resolved_settings.record_path.expanduser()),
        retry=retry,
        gate=gate or InteractiveConfirmationGate(phrase=resolved_settings.confirmation_phrase),
        funder=funder,
        preflight=preflight,
    )


__all__ = ["ServiceContainer", "build_container"]
