"""
Project Context
===============
Collects the source files handed to the model with each request.

Collection Order (stops adding once the running size exceeds the budget):
    1. kit.config.ts
    2. .sol files under contracts/src, contracts/script, contracts/test
    3. .ts/.tsx files under web/app, web/components, web/hooks, web/lib

Skipped:
    - node_modules, .next and nested lib directories (dependencies)
    - generated frontend files (bindings are regenerated after every rebuild)

Context is re-read on every request so the model always sees the tree as it
is on disk, including the model's own previously applied edits.
"""
import logging
import os
from typing import List, Optional, Sequence

from kitpilot.core import config
from kitpilot.core.constants import CONTRACTS_DIR, PROJECT_MARKER
from kitpilot.core.project_detector import detect_template
from kitpilot.models.project_context import ProjectContext, SourceFile
from kitpilot.utils.ignore_rules import is_generated_path, is_skipped_dir
from kitpilot.utils.path_utils import relative_to_root

logger = logging.getLogger(__name__)

CONTRACT_DIRS = ("src", "script", "test")
FRONTEND_DIRS = ("app", "components", "hooks", "lib")
FRONTEND_EXTENSIONS = (".ts", ".tsx")


def _collect_files(directory: str, extensions: Sequence[str]) -> List[str]:
    """Recursively list files ending in ``extensions``, in sorted order."""
    results: List[str] = []
    if not os.path.isdir(directory):
        return results
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames[:] = sorted(d for d in dirnames if not is_skipped_dir(d))
        for name in sorted(filenames):
            if name.endswith(tuple(extensions)):
                results.append(os.path.join(dirpath, name))
    return results


def _read(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Skipping unreadable file %s: %s", path, e)
        return None


def collect_project_context(project_root: str, max_size: int = config.MAX_CONTEXT_SIZE) -> ProjectContext:
    """
    Read the project's contract and frontend sources within ``max_size`` characters.

    Parameters
    ----------
    project_root : str
        Project root (the directory holding kit.config.ts).
    max_size : int
        Character budget; the file that crosses it is still included.

    Returns
    -------
    ProjectContext
        Paths are project-relative with forward slashes.
    """
    context = ProjectContext()
    total = 0

    config_text = _read(os.path.join(project_root, PROJECT_MARKER))
    if config_text is not None:
        context.config = config_text
        context.template = detect_template(config_text)
        total += len(config_text)

    for sub in CONTRACT_DIRS:
        for path in _collect_files(os.path.join(project_root, CONTRACTS_DIR, sub), (".sol",)):
            if total > max_size:
                break
            content = _read(path)
            if content is None:
                continue
            context.contracts.append(SourceFile(path=relative_to_root(project_root, path), content=content))
            total += len(content)

    web_dir = os.path.join(project_root, "web")
    for sub in FRONTEND_DIRS:
        for path in _collect_files(os.path.join(web_dir, sub), FRONTEND_EXTENSIONS):
            if total > max_size:
                break
            rel = relative_to_root(project_root, path)
            if is_generated_path(rel):
                continue
            content = _read(path)
            if content is None:
                continue
            context.frontend.append(SourceFile(path=rel, content=content))
            total += len(content)

    logger.debug(
        "Collected context: %d contract(s), %d frontend file(s), %d chars",
        len(context.contracts), len(context.frontend), total,
    )
    return context
