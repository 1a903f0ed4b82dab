"""
Process Runner
==============
Narrow subprocess capability injected into the Snapshot Store, the
Build-Verify-Repair Loop and the Rebuild Pipeline.

BOUNDARY RULES:
    - The runner ONLY executes and observes.
    - A non-zero exit status is returned, never raised — callers decide
      whether a failure is advisory or essential.
    - A missing binary is reported as exit code 127 with the OS error in
      stderr, the same way a shell reports it.

Tests substitute any object with a matching ``run`` method.
"""
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127


@dataclass
class ProcessResult:
    """
    Structured output from a single subprocess invocation.

    Fields
    ------
    exit_code : int
        Process exit code (0 = success).
    stdout : str
        Captured standard output.
    stderr : str
        Captured standard error.
    """
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProcessRunner(Protocol):
    def run(
        self,
        cmd: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ProcessResult:
        ...


class SubprocessRunner:
    """
    Runs commands with ``subprocess.run``, capturing text output.

    ``env`` entries are layered over the current process environment.
    """

    def __init__(self, timeout_seconds: Optional[float] = None) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        cmd: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ProcessResult:
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        logger.debug("exec %s %s (cwd=%s)", cmd, " ".join(args), cwd or ".")
        try:
            completed = subprocess.run(
                [cmd, *args],
                cwd=cwd,
                env=full_env,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as e:
            return ProcessResult(exit_code=COMMAND_NOT_FOUND, stderr=f"{cmd}: command not found ({e})")
        except subprocess.TimeoutExpired as e:
            logger.warning("%s timed out after %ss", cmd, e.timeout)
            return ProcessResult(
                exit_code=-1,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr) or f"{cmd} timed out after {e.timeout}s",
            )

        return ProcessResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
