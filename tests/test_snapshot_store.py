"""
Snapshot Store Tests
====================
Command-level tests with a FakeRunner plus end-to-end tests against a real
git repository in tmp_path (skipped when git is unavailable).
"""
import os
import shutil

import pytest

from conftest import FakeRunner, fail, ok
from kitpilot.agents.snapshot_store import SNAPSHOT_ENV, SnapshotStore, parse_log_line
from kitpilot.core.exceptions import SnapshotError
from kitpilot.executor.process_runner import SubprocessRunner
from kitpilot.utils.ignore_rules import DEFAULT_GITIGNORE

HEAD_LINE = "abc1234|abc1234deadbeefabc1234deadbeefabc12345|Before AI: add cap|2025-01-01T10:00:00+00:00\n"

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


# ---------------------------------------------------------------------------
# Log parsing
# ---------------------------------------------------------------------------
def test_parse_log_line():
    snap = parse_log_line(HEAD_LINE)
    assert snap.hash == "abc1234"
    assert snap.full_hash.startswith("abc1234dead")
    assert snap.message == "Before AI: add cap"
    assert snap.timestamp == "2025-01-01T10:00:00+00:00"


def test_parse_log_line_subject_with_pipe():
    snap = parse_log_line("a|b|AI: use a | b|2025-01-01T10:00:00Z")
    assert snap.message == "AI: use a | b"
    assert snap.timestamp == "2025-01-01T10:00:00Z"


def test_parse_log_line_rejects_garbage():
    assert parse_log_line("") is None
    assert parse_log_line("abc") is None


# ---------------------------------------------------------------------------
# FakeRunner: command sequences
# ---------------------------------------------------------------------------
def test_create_snapshot_returns_none_when_nothing_staged():
    runner = FakeRunner().on("git", "diff", "--cached", "--quiet", results=[ok()])
    store = SnapshotStore(runner)

    assert store.create_snapshot("/p", "AI: x") is None
    assert not any(c.startswith("git commit") for c in runner.commands())


def test_create_snapshot_commits_under_synthetic_identity():
    runner = (
        FakeRunner()
        .on("git", "diff", "--cached", "--quiet", results=[fail(code=1)])
        .on("git", "log", results=[ok(HEAD_LINE)])
    )
    store = SnapshotStore(runner)

    snap = store.create_snapshot("/p", "Before AI: add cap")

    assert snap.hash == "abc1234"
    assert snap.message == "Before AI: add cap"
    commit = [c for c in runner.calls if c[1][0] == "commit"][0]
    assert commit[1] == ["commit", "-m", "Before AI: add cap"]
    assert commit[2] == "/p"
    assert commit[3] == SNAPSHOT_ENV


def test_create_snapshot_commit_failure_raises_with_stderr():
    runner = (
        FakeRunner()
        .on("git", "diff", results=[fail(code=1)])
        .on("git", "commit", results=[fail("fatal: index.lock exists")])
    )
    with pytest.raises(SnapshotError) as exc:
        SnapshotStore(runner).create_snapshot("/p", "AI: x")
    assert "index.lock" in exc.value.stderr


def test_create_snapshot_diff_error_raises():
    runner = FakeRunner().on("git", "diff", results=[fail("fatal: not a git repository", code=128)])
    with pytest.raises(SnapshotError):
        SnapshotStore(runner).create_snapshot("/p", "AI: x")


def test_list_snapshots_swallows_failures():
    runner = FakeRunner().on("git", "log", results=[fail("fatal: your current branch has no commits", code=128)])
    assert SnapshotStore(runner).list_snapshots("/p") == []


def test_list_snapshots_passes_count():
    runner = FakeRunner().on("git", "log", results=[ok(HEAD_LINE + HEAD_LINE)])
    snaps = SnapshotStore(runner).list_snapshots("/p", count=2)
    assert len(snaps) == 2
    assert runner.calls[0][1] == ["log", "--format=%h|%H|%s|%aI", "-n", "2"]


def test_get_latest_hash():
    assert SnapshotStore(FakeRunner().on("git", "log", results=[ok("abc1234\n")])).get_latest_hash("/p") == "abc1234"
    assert SnapshotStore(FakeRunner().on("git", "log", results=[ok("")])).get_latest_hash("/p") is None
    assert SnapshotStore(FakeRunner().on("git", "log", results=[fail(code=128)])).get_latest_hash("/p") is None


def test_revert_restores_paths_and_appends_commit():
    runner = (
        FakeRunner()
        .on("git", "log", "--format=%s", results=[ok("Chat session start\n")])
        .on("git", "log", results=[ok(HEAD_LINE)])
    )
    SnapshotStore(runner).revert_to_snapshot("/p", "deadbee")

    assert runner.commands() == [
        "git log --format=%s -1 deadbee",
        "git checkout deadbee -- .",
        "git add .",
        "git commit -m Reverted to: Chat session start --allow-empty",
        "git log --format=%h|%H|%s|%aI -1",
    ]
    assert not any("reset" in c for c in runner.commands())


def test_revert_unknown_hash_raises():
    runner = FakeRunner().on("git", "log", "--format=%s", results=[fail("fatal: bad revision", code=128)])
    with pytest.raises(SnapshotError):
        SnapshotStore(runner).revert_to_snapshot("/p", "nope")


def test_ensure_repo_initialises_fresh_directory(tmp_path):
    runner = FakeRunner().on("git", "log", results=[ok("")])
    SnapshotStore(runner).ensure_repo(str(tmp_path))

    assert runner.commands() == [
        "git init",
        "git log --format=%h -1",
        "git add .",
        "git commit -m Initial project snapshot --allow-empty",
    ]
    assert (tmp_path / ".gitignore").read_text(encoding="utf-8") == DEFAULT_GITIGNORE


def test_ensure_repo_keeps_existing_gitignore_and_history(tmp_path):
    (tmp_path / ".git").mkdir()
    (tmp_path / ".gitignore").write_text("custom\n", encoding="utf-8")
    runner = FakeRunner().on("git", "log", results=[ok("abc1234\n")])

    SnapshotStore(runner).ensure_repo(str(tmp_path))

    assert runner.commands() == ["git log --format=%h -1"]
    assert (tmp_path / ".gitignore").read_text(encoding="utf-8") == "custom\n"


# ---------------------------------------------------------------------------
# Real git
# ---------------------------------------------------------------------------
@pytest.fixture
def repo(tmp_path):
    (tmp_path / "contracts" / "src").mkdir(parents=True)
    (tmp_path / "contracts" / "src" / "Token.sol").write_text("v1\n", encoding="utf-8")
    store = SnapshotStore(SubprocessRunner())
    store.ensure_repo(str(tmp_path))
    return store, tmp_path


@requires_git
def test_real_ensure_repo_is_idempotent(repo):
    store, root = repo
    store.ensure_repo(str(root))
    snaps = store.list_snapshots(str(root))
    assert [s.message for s in snaps] == ["Initial project snapshot"]


@requires_git
def test_real_unmodified_tree_creates_no_snapshot(repo):
    store, root = repo
    head = store.get_latest_hash(str(root))
    assert store.create_snapshot(str(root), "Chat session start") is None
    assert store.get_latest_hash(str(root)) == head


@requires_git
def test_real_edit_then_snapshot_is_listed_first(repo):
    store, root = repo
    before = store.list_snapshots(str(root))[0]
    (root / "contracts" / "src" / "Token.sol").write_text("v2\n", encoding="utf-8")

    snap = store.create_snapshot(str(root), "AI: bump")

    assert snap is not None
    assert snap.full_hash != before.full_hash
    assert store.list_snapshots(str(root))[0].full_hash == snap.full_hash


@requires_git
def test_real_revert_restores_content_and_grows_history(repo):
    store, root = repo
    token = root / "contracts" / "src" / "Token.sol"
    baseline = store.list_snapshots(str(root))[0]
    token.write_text("v2\n", encoding="utf-8")
    store.create_snapshot(str(root), "AI: bump")
    count_before = len(store.list_snapshots(str(root), count=50))

    snap = store.revert_to_snapshot(str(root), baseline.hash)

    assert token.read_text(encoding="utf-8") == "v1\n"
    assert snap.message == "Reverted to: Initial project snapshot"
    assert len(store.list_snapshots(str(root), count=50)) == count_before + 1


@requires_git
def test_real_revert_to_current_state_still_appends(repo):
    store, root = repo
    head = store.list_snapshots(str(root))[0]
    store.revert_to_snapshot(str(root), head.hash)
    assert len(store.list_snapshots(str(root), count=50)) == 2


@requires_git
def test_real_gitignore_excludes_env(repo):
    store, root = repo
    (root / ".env").write_text("SECRET=1\n", encoding="utf-8")
    assert store.create_snapshot(str(root), "AI: secret") is None
    assert os.path.exists(root / ".gitignore")
