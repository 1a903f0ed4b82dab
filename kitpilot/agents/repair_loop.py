"""
Build-Verify-Repair Loop
========================
Drives the model to fix compiler errors until the build passes or the retry
budget runs out.

Flow:
    1. Preconditions: contracts/ exists and the compiler is invocable.
       A failure here returns attempts=0 WITHOUT consuming any budget.
    2. No error text given → build once; a passing build ends immediately.
    3. Per attempt (up to max_retries):
         - re-read context (contracts + kit.config.ts only; files may have
           been patched by the previous attempt)
         - build the fix prompt with the CURRENT error and, from attempt 2
           on, the PREVIOUS error
         - request + parse, with ONE extra request if the reply is malformed
         - preview → confirm (unless auto) → apply → rebuild
    4. Build passes → success. Build fails → previous = current,
       current = new diagnostics, next attempt.

Failure Handling:
    - Model request error, a second malformed reply, or an EMPTY change
      array counts as a failed attempt; an empty array never ends the loop
      successfully.
    - A declined or cancelled confirmation ends the run with the current
      error attached.
    - A fix that cannot be written to disk ends the run the same way.
"""
import logging
import os
from typing import Callable, List, Optional

from rich.console import Console

from kitpilot.core.config import FIX_MAX_RETRIES
from kitpilot.core.constants import FOUNDRY_INSTALL_HINT, RAW_RESPONSE_PREVIEW_LENGTH
from kitpilot.core.exceptions import AIRequestError, MalformedResponseError
from kitpilot.executor.build_executor import get_compiler_version, run_build_and_capture
from kitpilot.executor.process_runner import ProcessRunner
from kitpilot.llm.client import AIClient
from kitpilot.llm.prompts import FIX_USER_MESSAGE, build_fix_system_prompt
from kitpilot.models.change_entry import ChangeEntry
from kitpilot.models.conversation import ChatMessage
from kitpilot.models.fix_result import RepairResult
from kitpilot.models.project_context import ProjectContext
from kitpilot.models.provider_config import AiProviderConfig
from kitpilot.parser.change_set import parse_changes
from kitpilot.services.change_writer import apply_changes, show_diff_preview
from kitpilot.services.project_context import collect_project_context
from kitpilot.ui.display import display_errors, display_usage
from kitpilot.ui.prompter import Prompter

logger = logging.getLogger(__name__)

MAX_PARSE_ATTEMPTS = 2


class BuildRepairLoop:
    """
    Compiler-verified AI repair.

    Usage:
        loop = BuildRepairLoop(runner, client, prompter, console)
        result = await loop.run(root, os.path.join(root, "contracts"), provider_config)
    """

    def __init__(
        self,
        runner: ProcessRunner,
        client: AIClient,
        prompter: Prompter,
        console: Console,
        collect_context: Callable[[str], ProjectContext] = collect_project_context,
    ) -> None:
        self.runner = runner
        self.client = client
        self.prompter = prompter
        self.console = console
        self.collect_context = collect_context

    async def run(
        self,
        project_root: str,
        contracts_dir: str,
        config: AiProviderConfig,
        error_output: Optional[str] = None,
        max_retries: int = FIX_MAX_RETRIES,
        auto: bool = False,
    ) -> RepairResult:
        # 0. Preconditions
        if not os.path.isdir(contracts_dir):
            logger.error("Contracts directory not found: %s", contracts_dir)
            logger.info("Make sure you are in a project root with a contracts/ directory.")
            return RepairResult(success=False, attempts=0)

        if get_compiler_version(self.runner) is None:
            logger.error("Foundry is not installed. Install it with: %s", FOUNDRY_INSTALL_HINT)
            return RepairResult(success=False, attempts=0)

        # 1. Capture errors if not provided
        if not error_output:
            logger.info("Running build to detect errors...")
            build = run_build_and_capture(self.runner, contracts_dir)
            if build.success:
                logger.info("Build succeeded, nothing to fix")
                return RepairResult(success=True, attempts=0)
            error_output = build.stderr
            display_errors(self.console, error_output)

        # 2. Fix loop
        attempts = 0
        previous_error: Optional[str] = None
        while attempts < max_retries:
            attempts += 1
            logger.info("AI fix attempt %d/%d, reading project...", attempts, max_retries)

            context = self.collect_context(project_root).contracts_only()
            system_prompt = build_fix_system_prompt(
                context,
                error_output,
                previous_error if attempts > 1 else None,
            )

            changes = await self._request_changes(config, system_prompt)
            if changes is None:
                if attempts < max_retries:
                    logger.info("AI response was unusable. Retrying (attempt %d/%d)...", attempts + 1, max_retries)
                    continue
                return RepairResult(success=False, attempts=attempts, remaining_errors=error_output)

            try:
                show_diff_preview(changes, project_root, self.console)
            except ValueError as e:
                logger.error("Rejected AI changes: %s", e)
                continue

            if not auto:
                confirmed = self.prompter.confirm("Apply these fixes?")
                if not confirmed:
                    logger.info("Fixes discarded.")
                    return RepairResult(success=False, attempts=attempts, remaining_errors=error_output)

            try:
                apply_changes(changes, project_root)
            except OSError as e:
                logger.error("Could not write fixes: %s", e)
                return RepairResult(success=False, attempts=attempts, remaining_errors=error_output)
            logger.info("%d file(s) patched", len(changes))

            logger.info("Verifying fix...")
            verify = run_build_and_capture(self.runner, contracts_dir)
            if verify.success:
                logger.info("Build succeeded, all errors fixed")
                return RepairResult(success=True, attempts=attempts)

            logger.warning("Build still failing")
            previous_error = error_output
            error_output = verify.stderr
            display_errors(self.console, error_output)

            if attempts < max_retries:
                logger.info("Retrying with updated errors (attempt %d/%d)...", attempts + 1, max_retries)

        logger.warning("Could not fix all errors after %d attempt(s).", attempts)
        return RepairResult(success=False, attempts=attempts, remaining_errors=error_output)

    async def _request_changes(
        self,
        config: AiProviderConfig,
        system_prompt: str,
    ) -> Optional[List[ChangeEntry]]:
        """
        Ask for a fix and parse it, retrying once on a malformed reply.

        Returns
        -------
        list[ChangeEntry] or None
            None when the request failed, the reply stayed malformed, or the
            model proposed no changes.
        """
        messages = [ChatMessage(role="user", content=FIX_USER_MESSAGE)]

        for parse_attempt in range(1, MAX_PARSE_ATTEMPTS + 1):
            logger.info("AI is analyzing errors..." if parse_attempt == 1 else "Retrying AI request...")
            try:
                response = await self.client.send(config, system_prompt, messages)
            except AIRequestError as e:
                logger.error("%s", e)
                return None

            display_usage(self.console, response.usage)

            try:
                changes = parse_changes(response.content)
            except MalformedResponseError:
                if parse_attempt < MAX_PARSE_ATTEMPTS:
                    logger.warning("AI response was not valid JSON, retrying...")
                    continue
                logger.error("Could not parse AI response after retry.")
                self.console.print("  [dim]Raw response (first %d chars):[/dim]" % RAW_RESPONSE_PREVIEW_LENGTH)
                self.console.print(response.content[:RAW_RESPONSE_PREVIEW_LENGTH], markup=False, style="dim")
                return None

            if not changes:
                logger.warning("AI returned no changes, cannot fix automatically.")
                return None
            return changes

        return None
