"""
Build Result Models
===================
Ephemeral outcomes of compiler runs and rebuild passes.

BuildResult:
    success     — compiler exit status was zero
    stdout      — compiler standard output
    stderr      — diagnostic text (falls back to stdout, then a generic message)

RebuildResult:
    build_success   — contracts compiled (or no contracts to compile)
    deploy_success  — local deployment completed; False when not requested or skipped
    codegen_success — binding generation completed
    build_errors    — compiler diagnostics when build_success is False
"""
from typing import Optional

from pydantic import BaseModel


class BuildResult(BaseModel):
    success: bool
    stdout: str = ""
    stderr: str = ""


class RebuildResult(BaseModel):
    build_success: bool = False
    deploy_success: bool = False
    codegen_success: bool = False
    build_errors: Optional[str] = None
