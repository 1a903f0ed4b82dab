"""
Change Entry Model
==================
One whole-file edit proposed by the model.

Fields:
    path        — path relative to the project root
    content     — complete new file text (never a patch)
    is_new      — resolved by probing the filesystem right before preview or
                  apply; always False straight out of the parser. The model's
                  own claim about new files is never trusted.
"""
from pydantic import BaseModel, StrictStr, field_validator


class ChangeEntry(BaseModel):
    path: StrictStr
    content: StrictStr
    is_new: bool = False

    @field_validator("path")
    @classmethod
    def _path_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("path must not be empty")
        return v.strip()
