"""
Project Context Model
=====================
Source files handed to the model as context for a request.

Fields:
    contracts   — Solidity sources under contracts/{src,script,test}
    frontend    — TypeScript sources under web/{app,components,hooks,lib}
    config      — kit.config.ts text (empty when missing)
    template    — template name, when known
"""
from typing import List, Optional

from pydantic import BaseModel


class SourceFile(BaseModel):
    path: str
    content: str


class ProjectContext(BaseModel):
    contracts: List[SourceFile] = []
    frontend: List[SourceFile] = []
    config: str = ""
    template: Optional[str] = None

    def contracts_only(self) -> "ProjectContext":
        return ProjectContext(contracts=self.contracts, config=self.config, template=self.template)
