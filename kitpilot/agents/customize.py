"""
Customize
=========
Single-shot AI edit: one request, one reply, one confirmation.

Unlike the chat session the reply must be a bare JSON array, so a reply
that cannot be parsed is an error here (the start of the raw reply is shown
to help diagnose it). When contract sources change, the user is offered a
``forge test`` run to verify the edit.
"""
import logging
import os
from typing import Callable

from rich.console import Console

from kitpilot.core import config
from kitpilot.core.constants import CONTRACT_SOURCE_EXT, CONTRACTS_DIR, RAW_RESPONSE_PREVIEW_LENGTH
from kitpilot.core.exceptions import AIRequestError, MalformedResponseError
from kitpilot.executor.process_runner import ProcessRunner
from kitpilot.llm.client import AIClient
from kitpilot.llm.prompts import build_system_prompt
from kitpilot.models.conversation import ChatMessage
from kitpilot.models.project_context import ProjectContext
from kitpilot.models.provider_config import AiProviderConfig
from kitpilot.parser.change_set import parse_changes
from kitpilot.services.change_writer import apply_changes, show_diff_preview
from kitpilot.services.project_context import collect_project_context
from kitpilot.ui.display import display_usage
from kitpilot.ui.prompter import Prompter

logger = logging.getLogger(__name__)


async def run_customize(
    project_root: str,
    request: str,
    provider: AiProviderConfig,
    client: AIClient,
    prompter: Prompter,
    console: Console,
    runner: ProcessRunner,
    collect_context: Callable[[str], ProjectContext] = collect_project_context,
) -> bool:
    """
    Apply one AI-proposed change set to the project.

    Returns
    -------
    bool
        True when changes were applied.
    """
    context = collect_context(project_root)
    logger.info("%d contract(s), %d frontend file(s)", len(context.contracts), len(context.frontend))

    try:
        response = await client.send(
            provider,
            build_system_prompt(context),
            [ChatMessage(role="user", content=request)],
        )
    except AIRequestError as e:
        logger.error("%s", e)
        return False

    try:
        changes = parse_changes(response.content)
    except MalformedResponseError as e:
        logger.error("%s", e)
        console.print("  [dim]Raw AI response:[/dim]")
        console.print(response.content[:RAW_RESPONSE_PREVIEW_LENGTH], markup=False, style="dim")
        return False

    if not changes:
        logger.info("No file changes suggested by AI.")
        return False

    display_usage(console, response.usage)
    try:
        show_diff_preview(changes, project_root, console)
    except ValueError as e:
        logger.error("Rejected AI changes: %s", e)
        return False

    if not prompter.confirm("Apply these changes?"):
        logger.info("Changes discarded.")
        return False

    try:
        apply_changes(changes, project_root)
    except OSError as e:
        logger.error("Could not write AI changes: %s", e)
        return False
    logger.info("%d file(s) updated", len(changes))

    if any(change.path.endswith(CONTRACT_SOURCE_EXT) for change in changes):
        if prompter.confirm("Run tests to verify?"):
            result = runner.run(config.COMPILER_BINARY, ["test"], cwd=os.path.join(project_root, CONTRACTS_DIR))
            console.print(result.stdout or result.stderr, markup=False)
            if not result.ok:
                logger.warning("Some tests failed; review the changes.")
    return True
