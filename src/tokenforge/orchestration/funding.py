"""Wallet funding: balance lookups, faucet airdrops and SOL transfers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from solders.pubkey import Pubkey

from tokenforge.authority import AuthorityRegistry
from tokenforge.domain import Lamports, Wallet
from tokenforge.ledger import LedgerClient, LedgerError
from tokenforge.transactions import SleepFn, StageInstruction, TransactionRunner
from tokenforge.transactions import instructions as ix

from .exceptions import LifecycleError

DEFAULT_AIRDROP_COOLDOWN = 2.0

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AirdropResult:
    label: str
    lamports: Lamports
    signature: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.signature is not None


class WalletFunder:
    """Funds holder wallets, spacing faucet calls by a fixed cooldown."""

    def __init__(
        self,
        ledger: LedgerClient,
        *,
        cooldown_seconds: float = DEFAULT_AIRDROP_COOLDOWN,
        sleep: SleepFn = asyncio.sleep,
        runner: TransactionRunner | None = None,
    ) -> None:
        self._ledger = ledger
        self._cooldown = cooldown_seconds
        self._sleep = sleep
        self._runner = runner or TransactionRunner(ledger, sleep=sleep)

    async def balances(self, wallets: Iterable[Wallet]) -> dict[str, Lamports]:
        return {wallet.label: await self._ledger.get_balance(wallet.pubkey) for wallet in wallets}

    async def airdrop(self, wallets: Sequence[Wallet], lamports: Lamports) -> list[AirdropResult]:
        """Request ``lamports`` for each wallet in turn.

        Faucets rate-limit aggressively, so a failure for one wallet is
        reported in its result and the remaining wallets are still tried.
        """

        if lamports <= 0:
            raise ValueError("Airdrop amount must be positive")
        results: list[AirdropResult] = []
        for index, wallet in enumerate(wallets):
            if index:
                await self._sleep(self._cooldown)
            try:
                signature = await self._ledger.request_airdrop(wallet.pubkey, lamports)
            except LedgerError as exc:
                logger.warning("Airdrop to %s failed: %s", wallet, exc)
                results.append(AirdropResult(label=wallet.label, lamports=lamports, error=str(exc)))
                continue
            logger.info("Airdropped %d lamports to %s (%s)", lamports, wallet, signature)
            results.append(AirdropResult(label=wallet.label, lamports=lamports, signature=signature))
        return results

    async def transfer_sol(
        self,
        registry: AuthorityRegistry,
        source: str,
        destination: str,
        lamports: Lamports,
    ) -> str:
        """Move native balance from a loaded wallet to a label or public key."""

        if lamports <= 0:
            raise ValueError("Transfer amount must be positive")
        sender = registry.wallet_for(source)
        recipient = registry.holders.get(destination)
        if recipient is not None:
            target = recipient.pubkey
        else:
            try:
                target = Pubkey.from_string(destination)
            except ValueError as exc:
                msg = f"'{destination}' is neither a loaded wallet nor a valid public key"
                raise LifecycleError(msg) from exc
        instruction = StageInstruction(
            ix.transfer_lamports(sender.pubkey, target, lamports),
            (source,),
            f"transfer {lamports} lamports to {destination}",
        )
        result = await self._runner.execute([instruction], sender, registry, label="transfer_sol")
        return result.require_signature()


__all__ = ["DEFAULT_AIRDROP_COOLDOWN", "AirdropResult", "WalletFunder"]
