"""
Deployment Models
=================
One JSON document per chain id at deployments/<chainId>.json.

The on-disk format uses camelCase keys (chainId, txHash, ...) shared with the
generated frontend, so every model here serialises by alias.
"""
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ParsedContract(BaseModel):
    """A contract creation recovered from forge broadcast records or stdout."""
    contract_name: str
    address: str
    tx_hash: str = ""
    block_number: int = 0


class DeployedContract(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_name: str = Field(alias="contractName")
    address: str
    tx_hash: str = Field(default="", alias="txHash")
    block_number: int = Field(default=0, alias="blockNumber")
    deployed_at: str = Field(default="", alias="deployedAt")


class DeploymentRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: int = Field(alias="chainId")
    chain: Optional[str] = None
    template: Optional[str] = None
    deployed_at: Optional[str] = Field(default=None, alias="deployedAt")
    contracts: Dict[str, DeployedContract] = Field(default_factory=dict)
