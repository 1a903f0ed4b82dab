"""
Repair Result Model
===================
Outcome of one Build-Verify-Repair run.

Fields:
    success             — the compiler passed at the end of the run
    attempts            — model fix attempts consumed (0 when the build
                          already passed or a precondition failed)
    remaining_errors    — last compiler error text when success is False
"""
from typing import Optional

from pydantic import BaseModel


class RepairResult(BaseModel):
    success: bool = False
    attempts: int = 0
    remaining_errors: Optional[str] = None
