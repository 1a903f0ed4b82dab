"""
kitpilot CLI
============
Typer application exposing the edit engine.

Commands:
    kitpilot chat [--no-anvil]              multi-turn AI editing with snapshots
    kitpilot fix [--auto] [--retries N]     compiler-verified AI repair
    kitpilot deployments [--chain C]        recorded deployments (--json for raw)
    kitpilot ai setup                       configure the model provider
    kitpilot ai customize [REQUEST]         single-shot AI edit
    kitpilot auth login --key KEY           store the account API key
    kitpilot auth logout                    remove the stored API key

Human-readable output goes to stderr (logging + rich); these commands are
thin adapters and all behaviour lives in the agents and services.
"""
import asyncio
import json
import logging
import os
from typing import Optional

import typer
from rich.console import Console

from kitpilot.agents.customize import run_customize
from kitpilot.agents.repair_loop import BuildRepairLoop
from kitpilot.agents.session import ChatSession
from kitpilot.agents.snapshot_store import SnapshotStore
from kitpilot.core import config
from kitpilot.core.constants import CONTRACTS_DIR, DEPLOYMENTS_DIR
from kitpilot.core.credentials import clear_api_key, write_api_key
from kitpilot.core.exceptions import KitpilotError, SetupError
from kitpilot.core.project_detector import DetectedProject, detect_project
from kitpilot.executor.process_runner import SubprocessRunner
from kitpilot.llm.client import AIClient
from kitpilot.llm.providers import ensure_ai_config, run_ai_setup
from kitpilot.models.provider_config import AiProviderConfig
from kitpilot.services.deployments import read_all_deployments
from kitpilot.services.rebuild_pipeline import RebuildPipeline
from kitpilot.ui.display import display_deployments
from kitpilot.ui.prompter import ConsolePrompter, Prompter
from kitpilot.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------
app = typer.Typer(
    name="kitpilot",
    help="kitpilot - iterative AI editing for dApp kit projects",
    no_args_is_help=True,
)
console = Console(stderr=True)

ai_app = typer.Typer(name="ai", help="AI provider setup and single-shot customization.", no_args_is_help=True)
app.add_typer(ai_app, name="ai")

auth_app = typer.Typer(name="auth", help="Manage the stored account API key.", no_args_is_help=True)
app.add_typer(auth_app, name="auth")


@app.callback()
def _global_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Global options applied to every command."""
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    setup_logging(level=level)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def parse_retries(value: Optional[str]) -> int:
    """Clamp a --retries value to 1..cap; anything unparseable or below 1 → default."""
    try:
        parsed = int(value) if value is not None else config.FIX_MAX_RETRIES
    except ValueError:
        return config.FIX_MAX_RETRIES
    if parsed < 1:
        return config.FIX_MAX_RETRIES
    return min(parsed, config.FIX_MAX_RETRIES_CAP)


def _print_fix_hints() -> None:
    console.print()
    console.print("  [dim]What you can try:[/dim]")
    console.print("  [dim]  1. Fix the errors manually, then run[/dim] [cyan]kitpilot fix[/cyan] [dim]again[/dim]")
    console.print("  [dim]  2. Run[/dim] [cyan]kitpilot fix --retries 5[/cyan] [dim]for more AI attempts[/dim]")
    console.print("  [dim]  3. Run[/dim] [cyan]kitpilot ai customize[/cyan] [dim]for open-ended AI changes[/dim]")


def _require_project(need_contracts: bool = False) -> DetectedProject:
    project = detect_project(os.getcwd())
    if project is None:
        raise SetupError("Not inside a project directory. Run this command from your project root.")
    if need_contracts and not os.path.isdir(os.path.join(project.path, CONTRACTS_DIR)):
        raise SetupError("No contracts/ directory found in this project.")
    return project


def _require_provider(prompter: Prompter) -> AiProviderConfig:
    provider = ensure_ai_config(prompter)
    if provider is None:
        raise SetupError("No AI provider configured. Run: kitpilot ai setup")
    return provider


async def _with_client(coro_factory):
    client = AIClient()
    try:
        return await coro_factory(client)
    finally:
        await client.close()


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------
@app.command()
def chat(
    no_anvil: bool = typer.Option(False, "--no-anvil", help="Skip local-chain deployment on rebuilds."),
) -> None:
    """Interactive AI chat: modify your project through conversation."""
    runner = SubprocessRunner()
    prompter = ConsolePrompter(console)
    store = SnapshotStore(runner)
    pipeline = RebuildPipeline(runner)

    async def _run(client: AIClient):
        loop = BuildRepairLoop(runner, client, prompter, console)
        session = ChatSession(store, pipeline, client, prompter, console, loop)
        return await session.run(os.getcwd(), anvil_running=not no_anvil)

    try:
        asyncio.run(_with_client(_run))
    except KitpilotError as e:
        logger.error("Chat failed: %s", e)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# fix
# ---------------------------------------------------------------------------
@app.command()
def fix(
    auto: bool = typer.Option(False, "--auto", help="Apply fixes without confirmation."),
    retries: str = typer.Option(str(config.FIX_MAX_RETRIES), "--retries", help="Max fix attempts (1-10)."),
) -> None:
    """AI-powered build error fixing."""
    prompter = ConsolePrompter(console)
    try:
        project = _require_project(need_contracts=True)
        provider = _require_provider(prompter)
    except SetupError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    contracts_dir = os.path.join(project.path, CONTRACTS_DIR)
    max_retries = parse_retries(retries)

    console.print()
    console.print(f"  [bold]Fixing [cyan]{project.name}[/cyan]...[/bold]")
    console.print()

    runner = SubprocessRunner()

    async def _run(client: AIClient):
        loop = BuildRepairLoop(runner, client, prompter, console)
        return await loop.run(project.path, contracts_dir, provider, max_retries=max_retries, auto=auto)

    result = asyncio.run(_with_client(_run))
    if result.success:
        return
    if result.attempts > 0:
        _print_fix_hints()
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# deployments
# ---------------------------------------------------------------------------
@app.command()
def deployments(
    chain: Optional[str] = typer.Option(None, "--chain", help="Only show chains whose name contains this text."),
    as_json: bool = typer.Option(False, "--json", help="Print the records as JSON on stdout."),
) -> None:
    """Show the contracts recorded in deployments/<chainId>.json."""
    try:
        project = _require_project()
    except SetupError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    records = read_all_deployments(os.path.join(project.path, DEPLOYMENTS_DIR))
    if chain:
        records = [r for r in records if chain.lower() in (r.chain or "").lower()]

    if as_json:
        typer.echo(json.dumps([r.model_dump(by_alias=True, exclude_none=True) for r in records], indent=2))
        return
    if not records:
        console.print("  [dim]No deployments found. Start the local chain and run[/dim] [cyan]kitpilot chat[/cyan]")
        return
    display_deployments(console, records)


# ---------------------------------------------------------------------------
# ai
# ---------------------------------------------------------------------------
@ai_app.command("setup")
def ai_setup() -> None:
    """Configure the AI provider (Claude, GPT, or a custom endpoint)."""
    if run_ai_setup(ConsolePrompter(console)) is None:
        logger.info("Setup cancelled.")
        raise typer.Exit(code=1)


@ai_app.command("customize")
def ai_customize(
    request: Optional[str] = typer.Argument(None, help="What to change; prompted for when omitted."),
) -> None:
    """Modify project code with a single AI request."""
    prompter = ConsolePrompter(console)
    try:
        project = _require_project()
        provider = _require_provider(prompter)
    except SetupError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    if not request:
        request = prompter.ask("What would you like to change?")
    if not request or not request.strip():
        logger.info("Nothing to do.")
        raise typer.Exit(code=1)

    runner = SubprocessRunner()

    async def _run(client: AIClient):
        return await run_customize(project.path, request.strip(), provider, client, prompter, console, runner)

    if not asyncio.run(_with_client(_run)):
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# auth
# ---------------------------------------------------------------------------
@auth_app.command("login")
def auth_login(
    key: str = typer.Option(..., "--key", help="Account API key.", prompt=True, hide_input=True),
) -> None:
    """Store the account API key that enables AI chat."""
    if not key.strip():
        logger.error("API key must not be empty.")
        raise typer.Exit(code=1)
    write_api_key(key.strip())
    console.print("[green]API key stored.[/green]")


@auth_app.command("logout")
def auth_logout() -> None:
    """Remove the stored account API key."""
    clear_api_key()
    console.print("[green]Logged out successfully.[/green]")


if __name__ == "__main__":
    app()
