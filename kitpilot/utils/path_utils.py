"""
Path Utils
==========
Path normalisation and project-relative conversion helpers.
"""
import os


def to_posix(path: str) -> str:
    return path.replace("\\", "/")


def relative_to_root(project_root: str, abs_path: str) -> str:
    return to_posix(os.path.relpath(abs_path, project_root))


def resolve_in_project(project_root: str, rel_path: str) -> str:
    """
    Resolve ``rel_path`` against ``project_root`` and refuse escapes.

    Raises
    ------
    ValueError
        If the resolved path lies outside the project root.
    """
    root = os.path.realpath(project_root)
    abs_path = os.path.realpath(os.path.join(root, rel_path))
    if abs_path != root and not abs_path.startswith(root + os.sep):
        raise ValueError(f"Path escapes project root: {rel_path}")
    return abs_path
