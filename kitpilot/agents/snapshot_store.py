"""
Snapshot Store
==============
Atomic, history-preserving checkpoints of the whole project tree over git.

Every snapshot is a commit made under a fixed synthetic identity, so the
store works in repositories without a configured git user. History is only
ever appended to: a revert restores the paths of an older commit and records
the result as a NEW commit, never a reset.

Failure Semantics:
    - Advisory operations (list_snapshots, get_latest_hash) swallow git
      failures and return an empty result.
    - Essential operations (ensure_repo, create_snapshot, revert_to_snapshot)
      raise SnapshotError carrying git's stderr.

Git commands used:
    init, add, commit, diff --cached --quiet, log --format=..., checkout <hash> -- .
"""
import logging
import os
from typing import Dict, List, Optional, Sequence

from kitpilot.core import config
from kitpilot.core.constants import (
    BASELINE_SNAPSHOT_MESSAGE,
    REVERT_PREFIX,
    SNAPSHOT_AUTHOR_EMAIL,
    SNAPSHOT_AUTHOR_NAME,
)
from kitpilot.core.exceptions import SnapshotError
from kitpilot.executor.process_runner import ProcessResult, ProcessRunner
from kitpilot.models.snapshot import Snapshot
from kitpilot.utils.ignore_rules import DEFAULT_GITIGNORE

logger = logging.getLogger(__name__)

LOG_FORMAT = "--format=%h|%H|%s|%aI"

SNAPSHOT_ENV: Dict[str, str] = {
    "GIT_AUTHOR_NAME": SNAPSHOT_AUTHOR_NAME,
    "GIT_AUTHOR_EMAIL": SNAPSHOT_AUTHOR_EMAIL,
    "GIT_COMMITTER_NAME": SNAPSHOT_AUTHOR_NAME,
    "GIT_COMMITTER_EMAIL": SNAPSHOT_AUTHOR_EMAIL,
}


def parse_log_line(line: str) -> Optional[Snapshot]:
    """Parse one ``%h|%H|%s|%aI`` line; the subject may itself contain '|'."""
    parts = line.strip().split("|", 2)
    if len(parts) < 3:
        return None
    short_hash, full_hash, rest = parts
    message, sep, timestamp = rest.rpartition("|")
    if not sep:
        return None
    return Snapshot(hash=short_hash, full_hash=full_hash, message=message, timestamp=timestamp)


class SnapshotStore:
    """
    Snapshot operations for a project rooted at a directory.

    Usage:
        store = SnapshotStore(SubprocessRunner())
        store.ensure_repo(root)
        snap = store.create_snapshot(root, "Before AI: add a cap")
    """

    def __init__(self, runner: ProcessRunner) -> None:
        self.runner = runner

    def _git(self, root: str, args: Sequence[str], env: Optional[Dict[str, str]] = None) -> ProcessResult:
        return self.runner.run(config.GIT_BINARY, list(args), cwd=root, env=env)

    def _git_checked(
        self,
        root: str,
        args: Sequence[str],
        action: str,
        env: Optional[Dict[str, str]] = None,
    ) -> ProcessResult:
        result = self._git(root, args, env=env)
        if not result.ok:
            logger.error("git %s failed in %s: %s", action, root, result.stderr.strip())
            raise SnapshotError(f"git {action} failed", stderr=result.stderr)
        return result

    def _commit(self, root: str, message: str, allow_empty: bool = False) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self._git_checked(root, args, "commit", env=SNAPSHOT_ENV)

    def _head(self, root: str) -> Snapshot:
        result = self._git_checked(root, ["log", LOG_FORMAT, "-1"], "log")
        snapshot = parse_log_line(result.stdout)
        if snapshot is None:
            raise SnapshotError("Could not read the new snapshot", stderr=result.stdout)
        return snapshot

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------
    def ensure_repo(self, root: str) -> None:
        """
        Make ``root`` a git repository with at least one commit.

        Idempotent: an existing repository, .gitignore or history is left as is.
        """
        if not os.path.isdir(os.path.join(root, ".git")):
            logger.info("Initialising snapshot repository in %s", root)
            self._git_checked(root, ["init"], "init")

        gitignore = os.path.join(root, ".gitignore")
        if not os.path.exists(gitignore):
            try:
                with open(gitignore, "w", encoding="utf-8") as f:
                    f.write(DEFAULT_GITIGNORE)
            except OSError as e:
                raise SnapshotError(f"Could not write {gitignore}", stderr=str(e)) from e

        if self.get_latest_hash(root) is None:
            self._git_checked(root, ["add", "."], "add")
            self._commit(root, BASELINE_SNAPSHOT_MESSAGE, allow_empty=True)
            logger.info("Created baseline snapshot")

    def create_snapshot(self, root: str, message: str) -> Optional[Snapshot]:
        """
        Commit the whole tree as a snapshot.

        Returns
        -------
        Snapshot or None
            None when nothing changed since the last snapshot (no commit made).
        """
        self._git_checked(root, ["add", "."], "add")

        staged = self._git(root, ["diff", "--cached", "--quiet"])
        if staged.ok:
            logger.debug("No changes to snapshot for '%s'", message)
            return None
        if staged.exit_code != 1:
            raise SnapshotError("git diff failed", stderr=staged.stderr)

        self._commit(root, message)
        snapshot = self._head(root)
        logger.debug("Snapshot %s: %s", snapshot.hash, snapshot.message)
        return snapshot

    def list_snapshots(self, root: str, count: int = 10) -> List[Snapshot]:
        """Return up to ``count`` snapshots, newest first; [] on any git failure."""
        result = self._git(root, ["log", LOG_FORMAT, "-n", str(count)])
        if not result.ok:
            return []
        snapshots = []
        for line in result.stdout.splitlines():
            snapshot = parse_log_line(line)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    def revert_to_snapshot(self, root: str, commit_hash: str) -> Snapshot:
        """
        Restore the tree to ``commit_hash`` and record it as a new snapshot.

        Files added after the target commit are left in place.
        """
        subject = self._git_checked(root, ["log", "--format=%s", "-1", commit_hash], "log").stdout.strip()
        self._git_checked(root, ["checkout", commit_hash, "--", "."], "checkout")
        self._git_checked(root, ["add", "."], "add")
        self._commit(root, f"{REVERT_PREFIX}{subject}", allow_empty=True)
        snapshot = self._head(root)
        logger.info("Reverted to %s (%s)", commit_hash, subject)
        return snapshot

    def get_latest_hash(self, root: str) -> Optional[str]:
        result = self._git(root, ["log", "--format=%h", "-1"])
        if not result.ok:
            return None
        return result.stdout.strip() or None
