"""Typer CLI wiring tokenforge services."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.logging import RichHandler
from solders.pubkey import Pubkey

from tokenforge.authority import (
    TREASURY_LABEL,
    WALLET_LABELS,
    AuthorityError,
    AutoApproveGate,
    ConfirmationGate,
)
from tokenforge.domain import LifecycleStage, TokenPlan
from tokenforge.ledger import LedgerError, TokenBalance
from tokenforge.orchestration import (
    DEFAULT_HOLDERS,
    IRREVERSIBLE_STAGES,
    STAGE_ORDER,
    LifecycleError,
    TokenLifecycleOrchestrator,
    has_reached,
)
from tokenforge.persistence import ConfigError
from tokenforge.transactions import TransactionError
from tokenforge.utils import lamports_to_sol, sol_to_lamports, to_raw_amount, to_ui_amount

from .deps import get_container
from .display import console, render_balances, render_preflight, render_status

T = TypeVar("T")

app = typer.Typer(help="Provision and lock down a Token-2022 token")

_HANDLED_ERRORS = (
    AuthorityError,
    ConfigError,
    LedgerError,
    LifecycleError,
    TransactionError,
    ValueError,
)


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Load .env files and configure logging."""

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )


def _fail(message: str) -> typer.Exit:
    typer.secho(message, err=True, fg=typer.colors.RED)
    return typer.Exit(code=1)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive ``coro`` and turn domain failures into exit code 1."""

    try:
        return asyncio.run(coro)
    except ValidationError as exc:
        raise _fail(f"Invalid input: {exc}") from exc
    except _HANDLED_ERRORS as exc:
        message = f"Error: {exc}"
        for note in getattr(exc, "__notes__", ()):
            message += f"\n  {note}"
        raise _fail(message) from exc


def _gate(assume_yes: bool) -> ConfirmationGate | None:
    return AutoApproveGate() if assume_yes else None


async def _orchestrator(assume_yes: bool = False) -> TokenLifecycleOrchestrator:
    container = get_container()
    orchestrator = await container.open_orchestrator(gate=_gate(assume_yes))
    await orchestrator.resume()
    return orchestrator


@app.command("show-settings")
def show_settings() -> None:
    """Print the resolved application settings."""

    container = get_container()
    settings = container.settings
    typer.echo("Environment:\t" + settings.environment)
    typer.echo("RPC Endpoint:\t" + settings.rpc_endpoint)
    typer.echo("Commitment:\t" + settings.commitment.value)
    typer.echo("Record Path:\t" + str(settings.record_path))
    typer.echo("Wallets Dir:\t" + str(settings.wallets_dir))
    typer.echo(
        f"Retry:\t\t{settings.retry_max_attempts} attempts, "
        f"{settings.retry_initial_delay}s x{settings.retry_multiplier}"
    )


@app.command("status")
def status() -> None:
    """Show the persisted lifecycle record."""

    container = get_container()
    record = _run(container.store.load())
    render_status(record)


@app.command("balances")
def balances() -> None:
    """Show SOL and token balances of every loaded wallet."""

    container = get_container()

    async def _run_balances() -> None:
        registry = container.load_registry(required=False)
        if not registry.holders:
            raise ConfigError(f"No wallet files found in {container.settings.wallets_dir}")
        lamports = await container.funder.balances(registry.holders.values())
        wallets = {label: (wallet.public_key, lamports[label]) for label, wallet in registry.holders.items()}
        tokens: dict[str, TokenBalance] = {}
        if await container.store.exists():
            record = await container.store.load()
            for label, account in record.token.accounts.items():
                address = Pubkey.from_string(account.address)
                tokens[label] = await container.ledger.get_token_account_balance(address)
        render_balances(wallets, tokens)

    _run(_run_balances())


@app.command("fund-wallets")
def fund_wallets(
    amount: str = typer.Option("1", help="SOL to request per wallet"),
    label: list[str] | None = typer.Option(None, "--label", help="Limit to these wallet labels"),
) -> None:
    """Request faucet airdrops for the loaded wallets (devnet and testnet only)."""

    container = get_container()
    if container.settings.is_mainnet:
        raise _fail("Airdrops are not available on mainnet")

    async def _fund() -> list[str]:
        registry = container.load_registry(required=False)
        selected = [registry.wallet_for(name) for name in label] if label else list(registry.holders.values())
        if not selected:
            raise ConfigError(f"No wallet files found in {container.settings.wallets_dir}")
        results = await container.funder.airdrop(selected, sol_to_lamports(amount))
        failed = []
        for result in results:
            if result.ok:
                typer.echo(f"{result.label}: +{lamports_to_sol(result.lamports)} SOL ({result.signature})")
            else:
                typer.echo(f"{result.label}: airdrop failed ({result.error})", err=True)
                failed.append(result.label)
        return failed

    failed = _run(_fund())
    if failed:
        raise typer.Exit(code=1)


@app.command("create-token")
def create_token(
    name: str = typer.Option(..., help="Token name"),
    symbol: str = typer.Option(..., help="Token symbol"),
    uri: str = typer.Option(..., help="Metadata JSON URI"),
    supply: str = typer.Option(..., help="Initial supply in whole tokens"),
    decimals: int = typer.Option(6, min=0, max=255),
    fee_bps: int = typer.Option(0, min=0, max=10_000, help="Transfer fee in basis points"),
    max_fee: str = typer.Option("0", help="Fee cap in whole tokens (0 = uncapped)"),
    holder: str = typer.Option(TREASURY_LABEL, help="Wallet receiving the initial supply"),
    freeze: bool = typer.Option(True, "--freeze/--no-freeze", help="Keep a freeze authority"),
) -> None:
    """Create the mint, attach metadata, provision accounts and mint the supply.

    Stages already completed by an earlier run are skipped.
    """

    try:
        plan = TokenPlan(
            name=name,
            symbol=symbol,
            uri=uri,
            decimals=decimals,
            initial_supply=supply,
            fee_basis_points=fee_bps,
            max_fee=max_fee,
            freeze_authority=freeze,
        )
    except ValidationError as exc:
        raise _fail(f"Invalid token plan: {exc}") from exc

    async def _create() -> TokenLifecycleOrchestrator:
        orchestrator = await _orchestrator()
        if not has_reached(orchestrator.stage, LifecycleStage.MINT_CREATED):
            mint = await orchestrator.create_mint(
                plan.decimals,
                freeze_authority=plan.freeze_authority,
                fee_basis_points=plan.fee_basis_points,
                max_fee=plan.raw_max_fee,
            )
            typer.echo(f"Mint created: {mint.address}")
        if not has_reached(orchestrator.stage, LifecycleStage.METADATA_ATTACHED):
            await orchestrator.attach_metadata(plan.name, plan.symbol, plan.uri)
            typer.echo(f"Metadata attached: {plan.name} ({plan.symbol})")
        if not has_reached(orchestrator.stage, LifecycleStage.ACCOUNTS_PROVISIONED):
            holders = dict.fromkeys([holder, *DEFAULT_HOLDERS])
            accounts = await orchestrator.provision_accounts(holders)
            for account in accounts:
                typer.echo(f"Account for {account.label}: {account.address}")
        if not has_reached(orchestrator.stage, LifecycleStage.SUPPLY_MINTED):
            await orchestrator.mint_supply(holder, plan.raw_supply)
            typer.echo(f"Minted {plan.initial_supply} {plan.symbol} to {holder}")
        if plan.fee_basis_points and not has_reached(orchestrator.stage, LifecycleStage.FEE_CONFIGURED):
            await orchestrator.configure_fee(plan.fee_basis_points, plan.raw_max_fee)
            typer.echo(f"Transfer fee set to {plan.fee_basis_points} bps")
        return orchestrator

    orchestrator = _run(_create())
    render_status(orchestrator.record)


@app.command("configure-fee")
def configure_fee(
    fee_bps: int = typer.Argument(..., min=0, max=10_000, help="Transfer fee in basis points"),
    max_fee: str = typer.Option("0", help="Fee cap in whole tokens (0 = uncapped)"),
) -> None:
    """Set the transfer fee schedule (once per mint)."""

    async def _configure() -> None:
        orchestrator = await _orchestrator()
        mint = orchestrator.mint
        if mint is None:
            raise LifecycleError("No mint has been created yet")
        config = await orchestrator.configure_fee(fee_bps, to_raw_amount(max_fee, mint.decimals))
        typer.echo(f"Transfer fee set to {config.fee_basis_points} bps (max {config.max_fee} raw)")
        updated = orchestrator.mint
        if updated is not None and updated.newer_fee_epoch is not None:
            typer.echo(f"The new fee takes effect at epoch {updated.newer_fee_epoch}")

    _run(_configure())


@app.command("transfer")
def transfer(
    destination: str = typer.Argument(..., help="Wallet label or public key of the recipient"),
    amount: str = typer.Argument(..., help="Amount in whole tokens"),
    source: str = typer.Option(TREASURY_LABEL, help="Wallet label sending the tokens"),
) -> None:
    """Transfer tokens between holders, applying the transfer fee."""

    async def _transfer() -> None:
        orchestrator = await _orchestrator()
        mint = orchestrator.mint
        if mint is None:
            raise LifecycleError("No mint has been created yet")
        credited = await orchestrator.transfer(source, destination, to_raw_amount(amount, mint.decimals))
        typer.echo(
            f"Sent {amount} to {credited.label}; balance {to_ui_amount(credited.balance, mint.decimals)}, "
            f"withheld {to_ui_amount(credited.withheld, mint.decimals)}"
        )

    _run(_transfer())


@app.command("transfer-sol")
def transfer_sol(
    source: str = typer.Argument(..., help="Wallet label paying the SOL"),
    destination: str = typer.Argument(..., help="Wallet label or public key"),
    amount: str = typer.Argument(..., help="Amount in SOL"),
) -> None:
    """Move SOL between wallets."""

    container = get_container()

    async def _send() -> str:
        registry = container.load_registry(required=False)
        return await container.funder.transfer_sol(registry, source, destination, sol_to_lamports(amount))

    signature = _run(_send())
    typer.echo(f"Sent {amount} SOL from {source} to {destination} ({signature})")


@app.command("revoke-minting")
def revoke_minting(
    yes: bool = typer.Option(False, "--yes", help="Skip the interactive confirmation"),
) -> None:
    """Permanently revoke the mint authority."""

    async def _revoke() -> None:
        orchestrator = await _orchestrator(assume_yes=yes)
        mint = await orchestrator.revoke_mint_authority()
        typer.echo(f"Mint authority revoked; supply fixed at {to_ui_amount(mint.supply, mint.decimals)}")

    _run(_revoke())


@app.command("lock-metadata")
def lock_metadata(
    yes: bool = typer.Option(False, "--yes", help="Skip the interactive confirmation"),
) -> None:
    """Permanently remove the metadata update authority."""

    async def _lock() -> None:
        orchestrator = await _orchestrator(assume_yes=yes)
        metadata = await orchestrator.make_metadata_immutable()
        typer.echo(f"Metadata for {metadata.symbol} is now immutable")

    _run(_lock())


@app.command("finalize")
def finalize() -> None:
    """Mark the lifecycle as complete."""

    async def _finalize() -> None:
        orchestrator = await _orchestrator()
        record = await orchestrator.finalize()
        typer.echo(f"Lifecycle finalized at {record.updated_at.isoformat()}")

    _run(_finalize())


@app.command("preflight")
def preflight(
    name: str = typer.Option(..., help="Token name"),
    symbol: str = typer.Option(..., help="Token symbol"),
    uri: str = typer.Option(..., help="Metadata JSON URI"),
    supply: str = typer.Option(..., help="Initial supply in whole tokens"),
    decimals: int = typer.Option(6, min=0, max=255),
    fee_bps: int = typer.Option(0, min=0, max=10_000),
    yes: bool = typer.Option(False, "--yes", help="Skip the interactive confirmation"),
) -> None:
    """Check connectivity, wallets, token plan and metadata before deploying."""

    container = get_container()
    try:
        plan = TokenPlan(
            name=name,
            symbol=symbol,
            uri=uri,
            decimals=decimals,
            initial_supply=supply,
            fee_basis_points=fee_bps,
        )
    except ValidationError as exc:
        raise _fail(f"Invalid token plan: {exc}") from exc

    async def _check() -> bool:
        report = await container.preflight.run(
            plan,
            wallets_dir=container.settings.wallets_dir,
            wallet_labels=WALLET_LABELS,
        )
        render_preflight(report)
        if not report.ok:
            return False
        gate = _gate(yes) or container.gate
        for stage in [stage for stage in STAGE_ORDER if stage in IRREVERSIBLE_STAGES]:
            if not await gate.confirm_irreversible(stage):
                console.print("[red]Deployment cancelled[/red]")
                return False
        return True

    if not _run(_check()):
        raise typer.Exit(code=1)
    typer.echo(f"Preflight complete for {container.settings.environment}; run create-token to deploy")


__all__ = ["app"]
