"""
Change Writer
=============
Previews and applies parsed change sets to the project tree.

BOUNDARY RULES:
    - Paths are always resolved inside the project root; an escaping path is
      rejected before ANY file is written.
    - ``is_new`` is resolved here by probing the filesystem, never taken
      from the model.
    - Content is written verbatim (whole-file replacement). Applying the
      same change set twice leaves the same tree.

Preview:
    - New file      → first 5 lines plus total line count when longer
    - Modified file → +added / -removed / ~changed counts from a positional
                      (same-index) line comparison, then up to 3 changed
                      line pairs truncated to 80 characters
"""
import logging
import os
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from kitpilot.models.change_entry import ChangeEntry
from kitpilot.utils.path_utils import resolve_in_project

logger = logging.getLogger(__name__)

NEW_FILE_PREVIEW_LINES = 5
CHANGED_PAIRS_SHOWN = 3
PREVIEW_LINE_WIDTH = 80


def _read_existing(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError):
        return None


def show_diff_preview(entries: List[ChangeEntry], project_root: str, console: Console) -> None:
    """Render a per-file summary of ``entries`` against the current tree."""
    count = len(entries)
    console.print()
    console.print(f"  [bold]Changes ({count} file{'' if count == 1 else 's'}):[/bold]")
    console.print()

    for entry in entries:
        existing = _read_existing(resolve_in_project(project_root, entry.path))
        entry.is_new = existing is None
        path = escape(entry.path)

        if existing is None:
            console.print(f"  [green]+[/green] [bold]{path}[/bold] [dim](new file)[/dim]")
            lines = entry.content.split("\n")
            for line in lines[:NEW_FILE_PREVIEW_LINES]:
                console.print(f"    [green]+ {escape(line)}[/green]")
            if len(lines) > NEW_FILE_PREVIEW_LINES:
                console.print(f"    [dim]... ({len(lines)} total lines)[/dim]")
            console.print()
            continue

        console.print(f"  [yellow]~[/yellow] [bold]{path}[/bold] [dim](modified)[/dim]")
        old_lines = existing.split("\n")
        new_lines = entry.content.split("\n")

        added = max(0, len(new_lines) - len(old_lines))
        removed = max(0, len(old_lines) - len(new_lines))
        changed_pairs = [(o, n) for o, n in zip(old_lines, new_lines) if o != n]

        parts = []
        if added:
            parts.append(f"[green]+{added}[/green]")
        if removed:
            parts.append(f"[red]-{removed}[/red]")
        if changed_pairs:
            parts.append(f"[yellow]~{len(changed_pairs)}[/yellow]")
        if parts:
            console.print(f"    {', '.join(parts)} lines")
        else:
            console.print("    [dim]no line changes[/dim]")

        shown = changed_pairs[:CHANGED_PAIRS_SHOWN]
        for old, new in shown:
            console.print(f"    [red]- {escape(old[:PREVIEW_LINE_WIDTH])}[/red]")
            console.print(f"    [green]+ {escape(new[:PREVIEW_LINE_WIDTH])}[/green]")
        if len(changed_pairs) > len(shown):
            console.print(f"    [dim]... and {len(changed_pairs) - len(shown)} more changes[/dim]")
        console.print()


def apply_changes(entries: List[ChangeEntry], project_root: str) -> List[str]:
    """
    Write every entry under ``project_root``.

    Returns
    -------
    list[str]
        Absolute paths written, in entry order.

    Raises
    ------
    ValueError
        If any entry's path escapes the project root (nothing is written).
    OSError
        If a directory or file cannot be written.
    """
    targets = [resolve_in_project(project_root, entry.path) for entry in entries]

    for entry, target in zip(entries, targets):
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(entry.content)
        logger.debug("Wrote %s", entry.path)
    return targets
