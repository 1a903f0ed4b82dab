"""
Project Detector
================
Detects a dApp kit project from repository signals (marker files).

Detection is deterministic — same directory always yields the same result.
No LLM is used. Pure heuristic matching only.

Signals:
    kit.config.ts          — required marker at the project root
    web/next.config.*      — Next.js frontend
    web/vite.config.*      — Vite frontend
    contracts/src/*.sol    — Solidity contracts present
"""
import os
import re
from dataclasses import dataclass, field
from typing import Optional

from kitpilot.core.constants import PROJECT_MARKER, CONTRACTS_DIR, CONTRACT_SOURCE_EXT


# ---------------------------------------------------------------------------
# Frontend signal files (ordered by priority)
# ---------------------------------------------------------------------------
FRONTEND_SIGNALS: list[tuple[str, str]] = [
    ("next.config.js",  "next"),
    ("next.config.mjs", "next"),
    ("next.config.ts",  "next"),
    ("vite.config.js",  "vite"),
    ("vite.config.mjs", "vite"),
    ("vite.config.ts",  "vite"),
]

_COMPONENTS_RE = re.compile(r"components:\s*\[([\s\S]*?)\]")
_DEFAULT_CHAIN_RE = re.compile(r"default:\s*['\"](\w+)['\"]")
_TEMPLATE_RE = re.compile(r"template:\s*['\"]([^'\"]+)['\"]")


@dataclass
class DetectedProject:
    """
    A project found at a working directory.

    Attributes
    ----------
    name : str
        Directory basename.
    path : str
        Absolute project root.
    config_path : str
        Absolute path to kit.config.ts.
    frontend : str
        "next", "vite" or "none".
    has_contracts : bool
        True when contracts/src holds at least one .sol file.
    """
    name: str
    path: str
    config_path: str
    components: list[str] = field(default_factory=list)
    chains: list[str] = field(default_factory=list)
    template: Optional[str] = None
    frontend: str = "none"
    has_contracts: bool = False


def detect_project(cwd: str) -> Optional[DetectedProject]:
    """
    Return the project rooted at ``cwd`` or None if the marker is missing.

    A config file that cannot be parsed still yields a valid project.
    """
    root = os.path.abspath(cwd)
    config_path = os.path.join(root, PROJECT_MARKER)
    if not os.path.isfile(config_path):
        return None

    components: list[str] = []
    chains: list[str] = []

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError:
        content = ""

    match = _COMPONENTS_RE.search(content)
    if match:
        components = [
            s.strip().strip("'\"") for s in match.group(1).split(",") if s.strip().strip("'\"")
        ]

    match = _DEFAULT_CHAIN_RE.search(content)
    if match:
        chains = [match.group(1)]

    template = detect_template(content)

    return DetectedProject(
        name=os.path.basename(root),
        path=root,
        config_path=config_path,
        components=components,
        chains=chains,
        template=template,
        frontend=detect_frontend(root),
        has_contracts=detect_contracts(root),
    )


def detect_template(config_text: str) -> Optional[str]:
    match = _TEMPLATE_RE.search(config_text)
    return match.group(1) if match else None


def detect_frontend(root: str) -> str:
    web_dir = os.path.join(root, "web")
    if not os.path.isdir(web_dir):
        return "none"

    for signal_file, frontend in FRONTEND_SIGNALS:
        if os.path.isfile(os.path.join(web_dir, signal_file)):
            return frontend

    # web/ without a recognisable config: the default template is Next.js
    return "next"


def detect_contracts(root: str) -> bool:
    src_dir = os.path.join(root, CONTRACTS_DIR, "src")
    if not os.path.isdir(src_dir):
        return False
    try:
        return any(name.endswith(CONTRACT_SOURCE_EXT) for name in os.listdir(src_dir))
    except OSError:
        return False
