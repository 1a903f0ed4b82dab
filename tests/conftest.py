"""
Shared test doubles.

FakeRunner     — records commands and replays scripted ProcessResults.
ScriptedPrompter — replays answers; an exhausted script behaves like a cancel.
"""
import io
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
from rich.console import Console

from kitpilot.executor.process_runner import ProcessResult


class FakeRunner:
    def __init__(self, default: Optional[ProcessResult] = None) -> None:
        self.default = default or ProcessResult()
        self.calls: List[Tuple[str, List[str], Optional[str], Optional[Dict[str, str]]]] = []
        self._rules: List[Tuple[str, List[str], List[ProcessResult]]] = []

    def on(self, cmd: str, *prefix: str, results: Sequence[ProcessResult]) -> "FakeRunner":
        """Replay ``results`` in order for calls matching ``cmd`` + ``prefix``; the last one repeats."""
        self._rules.append((cmd, list(prefix), list(results)))
        return self

    def run(self, cmd, args, cwd=None, env=None) -> ProcessResult:
        args = list(args)
        self.calls.append((cmd, args, cwd, dict(env) if env else None))
        for rule_cmd, prefix, results in self._rules:
            if rule_cmd == cmd and args[:len(prefix)] == prefix:
                return results.pop(0) if len(results) > 1 else results[0]
        return self.default

    def commands(self) -> List[str]:
        return [" ".join([cmd, *args]) for cmd, args, _, _ in self.calls]


class ScriptedPrompter:
    def __init__(self, answers=None, confirms=None, selections=None) -> None:
        self.answers = list(answers or [])
        self.confirms = list(confirms or [])
        self.selections = list(selections or [])
        self.asked: List[str] = []
        self.selects: List[Tuple[str, list]] = []

    def ask(self, message, default=None, password=False):
        self.asked.append(message)
        return self.answers.pop(0) if self.answers else None

    def confirm(self, message, default=True):
        self.asked.append(message)
        return self.confirms.pop(0) if self.confirms else None

    def select(self, message, choices):
        self.selects.append((message, list(choices)))
        return self.selections.pop(0) if self.selections else None


def ok(stdout: str = "") -> ProcessResult:
    return ProcessResult(exit_code=0, stdout=stdout)


def fail(stderr: str = "", stdout: str = "", code: int = 1) -> ProcessResult:
    return ProcessResult(exit_code=code, stdout=stdout, stderr=stderr)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def console_text(console: Console) -> str:
    return console.file.getvalue()
