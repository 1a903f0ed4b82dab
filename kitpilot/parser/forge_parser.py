"""
Forge Deploy Parser
===================
Recovers deployed contracts from a ``forge script --broadcast`` run.

Sources, in order of preference:
    1. broadcast/<ScriptFile>/<chainId>/run-latest.json — structured record
       written by forge; CREATE and CREATE2 transactions are deployments.
    2. Script stdout — pattern matching on "deployed at/to 0x..." lines,
       used when the broadcast record is missing or empty.

Contract:
    - Tolerant: unreadable or malformed input yields [], never raises.
    - Receipt block numbers given as hex strings ("0x1a") are decoded.
"""
import json
import logging
import os
import re
from typing import Any, List

from kitpilot.models.deployment import ParsedContract

logger = logging.getLogger(__name__)

_CREATE_TYPES = ("CREATE", "CREATE2")

_ADDRESS_RE = re.compile(
    r"(?:deployed\s+(?:at|to)[:\s]+|contract\s+(\w+)\s+at\s+)(0x[a-fA-F0-9]{40})",
    re.IGNORECASE,
)
_TX_RE = re.compile(r"transaction[:\s]+\s*(0x[a-fA-F0-9]{64})", re.IGNORECASE)
_BLOCK_RE = re.compile(r"block[:\s]+\s*(\d+)", re.IGNORECASE)


def _block_number(value: Any) -> int:
    if not value:
        return 0
    if isinstance(value, str):
        try:
            return int(value, 16)
        except ValueError:
            return 0
    if isinstance(value, int):
        return value
    return 0


def parse_forge_broadcast(contracts_dir: str, script_name: str, chain_id: int) -> List[ParsedContract]:
    """
    Parse the broadcast record for ``script_name`` (a file name such as
    ``Deploy.s.sol``) on ``chain_id``.
    """
    broadcast_path = os.path.join(contracts_dir, "broadcast", script_name, str(chain_id), "run-latest.json")
    try:
        with open(broadcast_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("No usable broadcast record at %s: %s", broadcast_path, e)
        return []

    if not isinstance(data, dict):
        return []

    contracts: List[ParsedContract] = []
    for tx in data.get("transactions") or []:
        if not isinstance(tx, dict) or tx.get("transactionType") not in _CREATE_TYPES:
            continue
        receipt = tx.get("receipt") or {}
        contracts.append(ParsedContract(
            contract_name=tx.get("contractName") or "Unknown",
            address=tx.get("contractAddress") or "",
            tx_hash=tx.get("hash") or "",
            block_number=_block_number(receipt.get("blockNumber") if isinstance(receipt, dict) else None),
        ))
    return contracts


def parse_forge_stdout(stdout: str) -> List[ParsedContract]:
    """Fallback: match deployed addresses, tx hashes and blocks in script output by position."""
    names: List[str] = []
    addresses: List[str] = []
    for match in _ADDRESS_RE.finditer(stdout or ""):
        names.append(match.group(1) or "Contract")
        addresses.append(match.group(2))

    tx_hashes = [m.group(1) for m in _TX_RE.finditer(stdout or "")]
    blocks = [int(m.group(1)) for m in _BLOCK_RE.finditer(stdout or "")]

    return [
        ParsedContract(
            contract_name=names[i],
            address=address,
            tx_hash=tx_hashes[i] if i < len(tx_hashes) else "",
            block_number=blocks[i] if i < len(blocks) else 0,
        )
        for i, address in enumerate(addresses)
    ]
