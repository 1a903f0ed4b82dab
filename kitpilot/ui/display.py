"""
Display
=======
Rich rendering of artefacts the user reads: compiler errors, snapshot
history, deployment records, help, model explanations and token usage.

Status lines (success, warnings, errors) go through logging instead; these
helpers only draw.
"""
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kitpilot.core.constants import ERROR_DISPLAY_LINES
from kitpilot.executor.build_executor import error_excerpt
from kitpilot.models.conversation import TokenUsage
from kitpilot.models.deployment import DeploymentRecord
from kitpilot.models.snapshot import Snapshot

HELP_ROWS = [
    ("/revert [hash]", "Revert to a previous snapshot"),
    ("/undo", "Alias for /revert"),
    ("/history", "Show recent snapshots"),
    ("/help", "Show this help"),
    ("/exit", "End chat session (also /quit, /q)"),
]


def display_errors(console: Console, error_text: str, max_lines: int = ERROR_DISPLAY_LINES) -> None:
    """Print the first ``max_lines`` non-empty lines of compiler output."""
    console.print()
    for line in error_excerpt(error_text, max_lines):
        console.print(f"  [dim]┃[/dim] {escape(line)}")
    console.print()


def display_snapshots(console: Console, snapshots: List[Snapshot]) -> None:
    table = Table(title="Snapshots", show_lines=False, pad_edge=True, expand=False)
    table.add_column("Hash", style="cyan")
    table.add_column("Message")
    table.add_column("Time", style="dim")
    for snap in snapshots:
        table.add_row(snap.hash, escape(snap.message), snap.timestamp)
    console.print(table)


def display_deployments(console: Console, records: List[DeploymentRecord]) -> None:
    """One table per chain: contract, address, tx hash and block."""
    for record in records:
        title = f"{escape(record.chain or 'chain')} ({record.chain_id})"
        if record.deployed_at:
            title += f"  {record.deployed_at}"
        table = Table(title=title, show_lines=False, pad_edge=True, expand=False)
        table.add_column("Contract")
        table.add_column("Address", style="cyan")
        table.add_column("Tx", style="dim")
        table.add_column("Block", justify="right")
        for name, contract in sorted(record.contracts.items()):
            table.add_row(escape(name), contract.address, contract.tx_hash, str(contract.block_number))
        console.print(table)


def display_help(console: Console) -> None:
    console.print()
    console.print("  [bold]Commands:[/bold]")
    for command, description in HELP_ROWS:
        console.print(f"  [cyan]{escape(command):<16}[/cyan] {description}")
    console.print()


def display_explanation(console: Console, text: str, dim: bool = False) -> None:
    if not text:
        return
    body = "\n".join(f"  {line}" for line in text.split("\n"))
    console.print()
    console.print(escape(body), style="dim" if dim else None)


def display_usage(console: Console, usage: Optional[TokenUsage]) -> None:
    if usage is None:
        return
    console.print(f"  [dim]Tokens: {usage.input_tokens} in, {usage.output_tokens} out[/dim]")


def display_chat_intro(console: Console, project_name: str) -> None:
    console.print()
    console.print(f"  [bold]AI Chat - [cyan]{escape(project_name)}[/cyan][/bold]")
    console.print("  [dim]Describe changes and they'll be applied automatically.[/dim]")
    console.print("  [dim]Every change is snapshotted; use /revert to undo.[/dim]")
    console.print()
    console.print("  [dim]Commands: /revert  /undo  /history  /help  /exit[/dim]")
    console.print()
