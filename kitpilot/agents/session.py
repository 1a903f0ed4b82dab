"""
Chat Session
============
The multi-turn edit loop composing the Snapshot Store, the Change-Set
Codec, the Rebuild Pipeline and the Build-Verify-Repair Loop.

Turn Lifecycle:
    1. Re-read project context (files change between turns).
    2. Append the user message and send the FULL history to the model.
       A request failure pops that message again and the turn ends.
    3. Parse the reply. A malformed reply is not an error here: the whole
       reply is shown as prose.
    4. With changes: preview → "Before AI: <request>" snapshot → apply →
       rebuild if any .sol file changed → on compile failure offer
       auto-fix / refine / revert / continue → "AI: <request>" snapshot.
    5. The assistant's raw reply is appended to history.
    6. A change set that cannot be written is logged; the turn still ends
       with its "AI: <request>" snapshot.

Snapshot Ordering:
    start, then a before/after pair per editing turn, then end. Reverts
    append commits; nothing is ever rewound. A snapshot is only committed
    when the tree actually changed.

Commands:
    /exit /quit /q      end the session
    /revert [hash]      revert directly, or pick from recent snapshots
    /undo [hash]        alias for /revert
    /history            list recent snapshots
    /help               usage
"""
import logging
import os
from typing import Callable, List, Optional

from rich.console import Console

from kitpilot.agents.repair_loop import BuildRepairLoop
from kitpilot.agents.snapshot_store import SnapshotStore
from kitpilot.core.constants import (
    AFTER_AI_PREFIX,
    BEFORE_AI_PREFIX,
    CONTRACT_SOURCE_EXT,
    CONTRACTS_DIR,
    EXIT_COMMANDS,
    HELP_COMMAND,
    HISTORY_COMMAND,
    REFINE_ERROR_LENGTH,
    REQUEST_LABEL_LENGTH,
    REVERT_COMMANDS,
    SESSION_END_MESSAGE,
    SESSION_START_MESSAGE,
)
from kitpilot.core.credentials import read_api_key
from kitpilot.core.exceptions import AIRequestError, MalformedResponseError, SnapshotError
from kitpilot.core.project_detector import detect_project
from kitpilot.llm.client import AIClient
from kitpilot.llm.prompts import build_chat_system_prompt
from kitpilot.llm.providers import ensure_ai_config
from kitpilot.models.change_entry import ChangeEntry
from kitpilot.models.conversation import ChatMessage
from kitpilot.models.project_context import ProjectContext
from kitpilot.models.provider_config import AiProviderConfig
from kitpilot.parser.change_set import parse_reply
from kitpilot.services.change_writer import apply_changes, show_diff_preview
from kitpilot.services.project_context import collect_project_context
from kitpilot.services.rebuild_pipeline import RebuildPipeline
from kitpilot.ui.display import (
    display_chat_intro,
    display_errors,
    display_explanation,
    display_help,
    display_snapshots,
    display_usage,
)
from kitpilot.ui.prompter import Prompter

logger = logging.getLogger(__name__)

BUILD_FAILURE_CHOICES = [
    ("fix", "Auto-fix: let AI fix the compilation errors"),
    ("refine", "Refine request: give AI more instructions"),
    ("revert", "Revert: undo this change"),
    ("continue", "Continue anyway: ignore build errors"),
]


def refine_message(build_errors: str, refinement: str) -> str:
    return (
        f"The previous change caused a build error:\n{build_errors[:REFINE_ERROR_LENGTH]}"
        f"\n\nPlease fix: {refinement}"
    )


class ChatSession:
    """
    Interactive chat that edits the project.

    Usage:
        session = ChatSession(store, pipeline, client, prompter, console, repair_loop)
        history = await session.run(os.getcwd(), anvil_running=True)
    """

    def __init__(
        self,
        store: SnapshotStore,
        pipeline: RebuildPipeline,
        client: AIClient,
        prompter: Prompter,
        console: Console,
        repair_loop: BuildRepairLoop,
        collect_context: Callable[[str], ProjectContext] = collect_project_context,
    ) -> None:
        self.store = store
        self.pipeline = pipeline
        self.client = client
        self.prompter = prompter
        self.console = console
        self.repair_loop = repair_loop
        self.collect_context = collect_context

    async def run(self, cwd: str, anvil_running: bool = True) -> List[ChatMessage]:
        """
        Run the session until an exit command or a cancel.

        Returns
        -------
        list[ChatMessage]
            The conversation history; empty when a precondition failed.
        """
        history: List[ChatMessage] = []

        # 1. Preconditions
        project = detect_project(cwd)
        if project is None:
            logger.error("Not inside a project directory. Run this command from your project root.")
            return history

        if not read_api_key():
            logger.error("AI Chat requires an API key. Run: kitpilot auth login --key <your-key>")
            return history

        provider = ensure_ai_config(self.prompter)
        if provider is None:
            return history

        # 2. Snapshot baseline
        root = project.path
        self.store.ensure_repo(root)
        self.store.create_snapshot(root, SESSION_START_MESSAGE)

        display_chat_intro(self.console, project.name)

        # 3. Conversation loop; the end snapshot is taken on every exit path
        try:
            while True:
                text = self.prompter.ask("[cyan]You[/cyan]")
                if text is None:
                    break
                text = text.strip()
                if not text:
                    continue

                if text.startswith("/"):
                    if self._handle_command(text, root, anvil_running):
                        break
                    continue

                await self._turn(root, text, provider, history, anvil_running)
        finally:
            self.store.create_snapshot(root, SESSION_END_MESSAGE)
        logger.info("Chat session ended.")
        return history

    # -----------------------------------------------------------------------
    # Turns
    # -----------------------------------------------------------------------
    async def _turn(
        self,
        root: str,
        request: str,
        provider: AiProviderConfig,
        history: List[ChatMessage],
        anvil_running: bool,
    ) -> None:
        context = self.collect_context(root)
        system_prompt = build_chat_system_prompt(context)
        logger.info("%d contract(s), %d frontend file(s)", len(context.contracts), len(context.frontend))

        history.append(ChatMessage(role="user", content=request))
        try:
            response = await self.client.send(provider, system_prompt, history)
        except AIRequestError as e:
            logger.error("%s", e)
            history.pop()
            return
        history.append(ChatMessage(role="assistant", content=response.content))
        display_usage(self.console, response.usage)

        try:
            changes, explanation = parse_reply(response.content)
        except MalformedResponseError:
            changes, explanation = [], response.content

        if not changes:
            display_explanation(self.console, explanation)
            return

        try:
            show_diff_preview(changes, root, self.console)
        except ValueError as e:
            logger.error("Rejected AI changes: %s", e)
            return

        label = request[:REQUEST_LABEL_LENGTH]
        self.store.create_snapshot(root, f"{BEFORE_AI_PREFIX}{label}")
        restore_point = self.store.get_latest_hash(root)

        try:
            apply_changes(changes, root)
        except OSError as e:
            # Partially written trees are still recorded by the after snapshot
            logger.error("Could not write AI changes: %s", e)
        else:
            logger.info("%d file(s) updated", len(changes))
            display_explanation(self.console, explanation, dim=True)

            if _touches_contracts(changes):
                result = self.pipeline.rebuild_project(root, anvil_running=anvil_running)
                if not result.build_success and result.build_errors:
                    await self._handle_build_failure(
                        root, result.build_errors, provider, history, anvil_running, restore_point
                    )

        self.store.create_snapshot(root, f"{AFTER_AI_PREFIX}{label}")

    async def _handle_build_failure(
        self,
        root: str,
        build_errors: str,
        provider: AiProviderConfig,
        history: List[ChatMessage],
        anvil_running: bool,
        restore_point: Optional[str],
    ) -> None:
        display_errors(self.console, build_errors)

        action = self.prompter.select("Build failed. What would you like to do?", BUILD_FAILURE_CHOICES)
        if action is None:
            return

        if action == "fix":
            await self.repair_loop.run(
                root,
                os.path.join(root, CONTRACTS_DIR),
                provider,
                error_output=build_errors,
                auto=True,
            )
        elif action == "refine":
            await self._refine(root, build_errors, provider, history, anvil_running)
        elif action == "revert":
            if restore_point:
                self._revert(root, restore_point, anvil_running)
            else:
                logger.warning("No previous snapshot to revert to.")
        else:
            logger.info("Continuing with build errors.")

    async def _refine(
        self,
        root: str,
        build_errors: str,
        provider: AiProviderConfig,
        history: List[ChatMessage],
        anvil_running: bool,
    ) -> None:
        refinement = self.prompter.ask("[cyan]Refine[/cyan]")
        if not refinement or not refinement.strip():
            return

        history.append(ChatMessage(role="user", content=refine_message(build_errors, refinement.strip())))
        system_prompt = build_chat_system_prompt(self.collect_context(root))

        logger.info("AI is fixing...")
        try:
            response = await self.client.send(provider, system_prompt, history)
        except AIRequestError as e:
            logger.error("%s", e)
            history.pop()
            return
        history.append(ChatMessage(role="assistant", content=response.content))

        try:
            changes, explanation = parse_reply(response.content)
        except MalformedResponseError:
            changes, explanation = [], response.content

        if not changes:
            display_explanation(self.console, explanation)
            return

        try:
            show_diff_preview(changes, root, self.console)
        except ValueError as e:
            logger.error("Rejected AI changes: %s", e)
            return
        try:
            apply_changes(changes, root)
        except OSError as e:
            logger.error("Could not write AI changes: %s", e)
            return
        logger.info("%d file(s) updated", len(changes))
        self.pipeline.rebuild_project(root, anvil_running=anvil_running)

    # -----------------------------------------------------------------------
    # Commands
    # -----------------------------------------------------------------------
    def _handle_command(self, text: str, root: str, anvil_running: bool) -> bool:
        """Run a slash command; return True when the session should end."""
        parts = text.split()
        command = parts[0].lower()
        args = parts[1:]

        if command in EXIT_COMMANDS:
            return True

        if command in REVERT_COMMANDS:
            target = args[0] if args else self._pick_snapshot(root)
            if target:
                self._revert(root, target, anvil_running)
        elif command == HISTORY_COMMAND:
            snapshots = self.store.list_snapshots(root)
            if not snapshots:
                logger.info("No snapshots yet.")
            else:
                display_snapshots(self.console, snapshots)
        elif command == HELP_COMMAND:
            display_help(self.console)
        else:
            logger.warning("Unknown command: %s. Type /help for available commands.", command)
        return False

    def _pick_snapshot(self, root: str) -> Optional[str]:
        snapshots = self.store.list_snapshots(root)
        if not snapshots:
            logger.info("No snapshots available.")
            return None
        choices = [(s.hash, f"{s.hash}  {s.message}  ({s.timestamp})") for s in snapshots]
        return self.prompter.select("Revert to which snapshot?", choices)

    def _revert(self, root: str, commit_hash: str, anvil_running: bool) -> None:
        try:
            snapshot = self.store.revert_to_snapshot(root, commit_hash)
        except SnapshotError as e:
            logger.error("Revert failed: %s %s", e, e.stderr.strip())
            return
        logger.info("Snapshot %s: %s", snapshot.hash, snapshot.message)
        self.pipeline.rebuild_project(root, anvil_running=anvil_running)


def _touches_contracts(changes: List[ChangeEntry]) -> bool:
    return any(change.path.endswith(CONTRACT_SOURCE_EXT) for change in changes)
