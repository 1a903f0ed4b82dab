"""
Build Executor
==============
Runs the Solidity compiler and returns structured results.

BOUNDARY RULES (CRITICAL):
    - Executor ONLY observes compilation.
    - Executor NEVER fixes code.
    - Executor NEVER calls the LLM.
    - Executor NEVER commits changes — that is the Snapshot Store's job.

Diagnostics are read from stderr, falling back to stdout (forge prints some
compiler errors there), then to a generic message so callers always have
text to show and to hand to the model.
"""
import logging
from typing import Optional

from kitpilot.core import config
from kitpilot.core.constants import ERROR_DISPLAY_LINES
from kitpilot.executor.process_runner import ProcessRunner
from kitpilot.models.build_result import BuildResult

logger = logging.getLogger(__name__)

UNKNOWN_BUILD_ERROR = "Unknown build error"


def run_build_and_capture(runner: ProcessRunner, contracts_dir: str) -> BuildResult:
    """
    Run ``forge build`` inside ``contracts_dir``.

    Returns
    -------
    BuildResult
        Always returned; a compiler failure is data, not an exception.
    """
    result = runner.run(config.COMPILER_BINARY, ["build"], cwd=contracts_dir)
    if result.ok:
        logger.debug("Build succeeded in %s", contracts_dir)
        return BuildResult(success=True, stdout=result.stdout, stderr="")

    diagnostics = result.stderr.strip() or result.stdout.strip() or UNKNOWN_BUILD_ERROR
    logger.debug("Build failed in %s (exit=%d)", contracts_dir, result.exit_code)
    return BuildResult(success=False, stdout=result.stdout, stderr=diagnostics)


def get_compiler_version(runner: ProcessRunner) -> Optional[str]:
    """Return the first line of ``forge --version``, or None if not invocable."""
    result = runner.run(config.COMPILER_BINARY, ["--version"])
    if not result.ok:
        return None
    first_line = result.stdout.strip().splitlines()
    return first_line[0] if first_line else config.COMPILER_BINARY


def error_excerpt(error_text: str, max_lines: int = ERROR_DISPLAY_LINES) -> list[str]:
    """Return the first ``max_lines`` non-empty lines of compiler output."""
    return [line for line in error_text.splitlines() if line.strip()][:max_lines]
