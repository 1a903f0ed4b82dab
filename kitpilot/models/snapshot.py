"""
Snapshot Model
==============
Pydantic model for one committed state of the whole project tree.

Fields:
    hash        — abbreviated commit id (git %h)
    full_hash   — full commit id (git %H)
    message     — commit subject
    timestamp   — author date, ISO-8601 (git %aI)

Snapshots are immutable once created. They are superseded, never deleted,
by later snapshots; listing returns them newest first.
"""
from pydantic import BaseModel, ConfigDict


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    hash: str
    full_hash: str
    message: str
    timestamp: str
