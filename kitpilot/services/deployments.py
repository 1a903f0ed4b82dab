"""
Deployments Writer
==================
Serializes deployed contracts into deployments/<chainId>.json.

The record is MERGED on every write: contracts keep their entries from
earlier runs unless redeployed under the same name. Keys are camelCase so the
generated frontend can read the file directly.
"""
import json
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from kitpilot.models.deployment import DeployedContract, DeploymentRecord, ParsedContract

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _load(path: str) -> Optional[DeploymentRecord]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return DeploymentRecord.model_validate(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.debug("No usable deployment record at %s: %s", path, e)
        return None


def write_structured_deployment(
    deployments_dir: str,
    chain_id: int,
    chain: str,
    contracts: List[ParsedContract],
    template: Optional[str] = None,
) -> str:
    """
    Merge ``contracts`` into the record for ``chain_id`` and write it.

    Returns
    -------
    str
        Path of the written record.
    """
    os.makedirs(deployments_dir, exist_ok=True)
    path = os.path.join(deployments_dir, f"{chain_id}.json")

    record = read_deployment(deployments_dir, chain_id) or DeploymentRecord(chain_id=chain_id)
    now = _now_iso()
    record.chain = chain
    record.deployed_at = now
    if template:
        record.template = template

    for contract in contracts:
        record.contracts[contract.contract_name] = DeployedContract(
            contract_name=contract.contract_name,
            address=contract.address,
            tx_hash=contract.tx_hash,
            block_number=contract.block_number,
            deployed_at=now,
        )

    with open(path, "w", encoding="utf-8") as f:
        json.dump(record.model_dump(by_alias=True, exclude_none=True), f, indent=2)
        f.write("\n")

    logger.info("Recorded %d contract(s) in %s", len(contracts), path)
    return path


def read_deployment(deployments_dir: str, chain_id: int) -> Optional[DeploymentRecord]:
    return _load(os.path.join(deployments_dir, f"{chain_id}.json"))


def read_all_deployments(deployments_dir: str) -> List[DeploymentRecord]:
    """Read every valid record in ``deployments_dir``; invalid files are skipped."""
    if not os.path.isdir(deployments_dir):
        return []
    records: List[DeploymentRecord] = []
    for name in sorted(os.listdir(deployments_dir)):
        if not name.endswith(".json"):
            continue
        record = _load(os.path.join(deployments_dir, name))
        if record is not None:
            records.append(record)
    return records
