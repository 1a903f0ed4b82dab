"""
LLM Prompts
===========
Centralised store for the system prompts sent with every model request.

Prompt Families:
    - Single-shot  : one request, JSON array only, no prose
    - Chat         : multi-turn; prose is allowed AFTER the array, and an
                     empty array answers questions that need no code change
    - Fix          : compiler-error repair; contracts only, current errors and
                     (from the second attempt on) the previous attempt's errors

Output Contract (all families):
    [{ "path": "relative/path", "content": "full file content" }]
    Only files that actually changed; whole files, never patches.
"""
import logging
from typing import List, Optional

from kitpilot.core.constants import PROJECT_MARKER
from kitpilot.models.project_context import ProjectContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# System Prompts
# ---------------------------------------------------------------------------
SINGLE_SHOT_PROMPT = (
    "You are a Web3 smart contract and frontend developer. You are modifying an "
    "existing dApp project built with the dApp Kit.\n"
    "\n"
    "Rules:\n"
    "- Only modify existing files, don't create new ones unless absolutely necessary\n"
    "- Keep all changes compatible with the existing architecture\n"
    "- Use OpenZeppelin v5.x patterns for Solidity\n"
    "- Use wagmi v2 hooks for frontend\n"
    "- Maintain existing code style and patterns\n"
    '- Return changes as a JSON array: [{ "path": "relative/path", "content": "full file content" }]\n'
    "- Only include files that actually changed\n"
    "- Do NOT include explanations outside the JSON — just return the JSON array"
)

CHAT_PROMPT = (
    "You are a Web3 smart contract and frontend developer. You are in a multi-turn "
    "conversation helping modify an existing dApp project built with the dApp Kit.\n"
    "\n"
    "Rules:\n"
    "- Apply changes incrementally — only modify what the user asks for in each turn\n"
    "- Only modify existing files, don't create new ones unless absolutely necessary\n"
    "- Keep all changes compatible with the existing architecture\n"
    "- Use OpenZeppelin v5.x patterns for Solidity\n"
    "- Use wagmi v2 hooks for frontend\n"
    "- Maintain existing code style and patterns\n"
    '- Return changes as a JSON array: [{ "path": "relative/path", "content": "full file content" }]\n'
    "- Only include files that actually changed\n"
    "- If the user asks a question and no code changes are needed, return an empty "
    "array [] followed by your explanation\n"
    "- You may include explanatory text AFTER the JSON array"
)

FIX_PROMPT_HEADER = (
    "You are a Solidity compilation error fixer. Your ONLY job is to fix the "
    "compilation errors shown below. Do NOT refactor, improve, or change any code "
    "beyond what is strictly necessary to fix the errors.\n"
    "\n"
    "COMPILATION ERRORS:\n"
)

FIX_PROMPT_PREVIOUS = (
    "\nIMPORTANT — PREVIOUS FIX ATTEMPT FAILED:\n"
    "Your previous fix was applied but the build still fails with the errors above.\n"
    "Before that fix, the build failed with these errors:\n"
    "{previous_error}\n"
    "If the errors changed, your fix was partially correct but introduced new issues "
    "or missed something. Analyze what went wrong and try a different approach."
)

FIX_PROMPT_RULES = (
    "\nRules:\n"
    "- Fix ONLY the errors above — do not refactor or improve code\n"
    "- Keep all changes minimal and targeted\n"
    "- Use OpenZeppelin v5.x patterns for Solidity\n"
    '- Return changes as a JSON array: [{ "path": "relative/path", "content": "full file content" }]\n'
    "- Only include files that actually changed\n"
    "- Do NOT include explanations outside the JSON — just return the JSON array\n"
    '- The "path" must be relative to the project root (e.g., "contracts/src/Token.sol")'
)

FIX_USER_MESSAGE = "Fix the compilation errors. Return only the JSON array of changed files."


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def _append_context(parts: List[str], context: ProjectContext, include_frontend: bool = True) -> None:
    if context.config:
        parts.append(f"\n--- {PROJECT_MARKER} ---\n{context.config}")

    if context.contracts:
        parts.append("\n--- Contracts ---")
        for c in context.contracts:
            parts.append(f"\n--- {c.path} ---\n{c.content}")

    if include_frontend and context.frontend:
        parts.append("\n--- Frontend ---")
        for f in context.frontend:
            parts.append(f"\n--- {f.path} ---\n{f.content}")


def build_system_prompt(context: ProjectContext) -> str:
    """Single-shot prompt: JSON array only."""
    parts = [SINGLE_SHOT_PROMPT]
    _append_context(parts, context)
    return "\n".join(parts)


def build_chat_system_prompt(context: ProjectContext) -> str:
    """Multi-turn prompt: array optionally followed by prose."""
    parts = [CHAT_PROMPT]
    _append_context(parts, context)
    return "\n".join(parts)


def build_fix_system_prompt(
    context: ProjectContext,
    error_output: str,
    previous_error: Optional[str] = None,
) -> str:
    """
    Build the compiler-error repair prompt.

    Parameters
    ----------
    context : ProjectContext
        Project context; only contracts and kit.config.ts are included.
    error_output : str
        Current compiler diagnostics.
    previous_error : str, optional
        Diagnostics the last applied fix was made against (attempt 2 onward).

    Returns
    -------
    str
        Full system prompt.
    """
    parts = [FIX_PROMPT_HEADER + error_output]
    if previous_error:
        parts.append(FIX_PROMPT_PREVIOUS.format(previous_error=previous_error))
    parts.append(FIX_PROMPT_RULES)
    _append_context(parts, context, include_frontend=False)
    return "\n".join(parts)
