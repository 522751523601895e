"""Rich renderers for CLI output."""

from __future__ import annotations

from collections.abc import Mapping

from rich.console import Console
from rich.table import Table

from tokenforge.domain import Lamports
from tokenforge.ledger import TokenBalance
from tokenforge.orchestration import CheckStatus, PreflightReport
from tokenforge.persistence import LifecycleRecord
from tokenforge.utils import lamports_to_sol, to_ui_amount

console = Console()

_STATUS_STYLE = {
    CheckStatus.PASS: "[green]✓[/green]",
    CheckStatus.WARN: "[yellow]![/yellow]",
    CheckStatus.FAIL: "[red]✗[/red]",
}


def render_status(record: LifecycleRecord) -> None:
    summary = Table(title=f"Token lifecycle ({record.network.environment})", show_header=False)
    summary.add_column("Field", style="cyan")
    summary.add_column("Value")
    summary.add_row("Stage", str(record.stage))
    summary.add_row("Endpoint", record.network.endpoint)
    mint = record.token.mint
    if mint is not None:
        summary.add_row("Mint", mint.address)
        summary.add_row("Decimals", str(mint.decimals))
        summary.add_row("Supply", f"{to_ui_amount(mint.supply, mint.decimals)} ({mint.supply} raw)")
        if mint.transfer_fee is not None:
            summary.add_row("Transfer fee", f"{mint.transfer_fee.fee_basis_points} bps (max {mint.transfer_fee.max_fee})")
        if mint.newer_transfer_fee is not None:
            newer = mint.newer_transfer_fee
            summary.add_row(
                "Scheduled fee",
                f"{newer.fee_basis_points} bps (max {newer.max_fee}) from epoch {mint.newer_fee_epoch}",
            )
    metadata = record.token.metadata
    if metadata is not None:
        summary.add_row("Name", metadata.name)
        summary.add_row("Symbol", metadata.symbol)
        summary.add_row("URI", metadata.uri)
        summary.add_row("Metadata", "mutable" if metadata.is_mutable else "[bold]immutable[/bold]")
    for role, key in sorted(record.authorities.items()):
        summary.add_row(f"{role} authority", key or "[bold red]revoked[/bold red]")
    if record.pending is not None:
        pending = record.pending
        summary.add_row(
            "Pending",
            f"[yellow]{pending.operation}[/yellow] {pending.signature} (valid through {pending.expiry_height})",
        )
    console.print(summary)

    if record.token.accounts and mint is not None:
        accounts = Table(title="Token accounts")
        accounts.add_column("Holder", style="cyan")
        accounts.add_column("Address")
        accounts.add_column("Balance", justify="right")
        accounts.add_column("Withheld", justify="right")
        accounts.add_column("Frozen")
        for account in record.token.accounts.values():
            accounts.add_row(
                account.label,
                account.address,
                str(to_ui_amount(account.balance, mint.decimals)),
                str(to_ui_amount(account.withheld, mint.decimals)),
                "yes" if account.frozen else "",
            )
        console.print(accounts)


def render_balances(
    wallets: Mapping[str, tuple[str, Lamports]],
    tokens: Mapping[str, TokenBalance] | None = None,
) -> None:
    table = Table(title="Wallet balances")
    table.add_column("Wallet", style="cyan")
    table.add_column("Address")
    table.add_column("SOL", justify="right")
    table.add_column("Tokens", justify="right")
    for label, (address, lamports) in wallets.items():
        token = (tokens or {}).get(label)
        table.add_row(label, address, str(lamports_to_sol(lamports)), str(token.ui_amount) if token else "-")
    console.print(table)


def render_preflight(report: PreflightReport) -> None:
    table = Table(title="Preflight checks")
    table.add_column("")
    table.add_column("Check", style="cyan")
    table.add_column("Detail")
    for check in report.checks:
        table.add_row(_STATUS_STYLE[check.status], check.name, check.detail)
    console.print(table)
    if report.warnings:
        console.print("[bold yellow]Irreversible actions:[/bold yellow]")
        for warning in report.warnings:
            console.print(f"  • {warning}")


__all__ = ["console", "render_balances", "render_preflight", "render_status"]
