"""
Ignore Rules
============
Rules for ignoring generated files, dependencies, and local secrets.

Two consumers:
    - The Snapshot Store writes DEFAULT_GITIGNORE when a project has none,
      so build output, dependency caches and .env never enter a snapshot.
    - Project context collection skips SKIP_DIRS and generated sources so
      the model never receives third-party or generated code.
"""

DEFAULT_GITIGNORE = """node_modules/
.next/
out/
cache/
broadcast/
.env
"""

# Directories never descended into while collecting context
SKIP_DIRS = frozenset({"node_modules", ".next", "lib"})

# Path fragments marking generated or vendored frontend files
SKIP_PATH_FRAGMENTS = ("node_modules", ".next", "generated")


def is_skipped_dir(name: str) -> bool:
    return name in SKIP_DIRS


def is_generated_path(path: str) -> bool:
    normalized = path.replace("\\", "/")
    return any(fragment in normalized for fragment in SKIP_PATH_FRAGMENTS)
