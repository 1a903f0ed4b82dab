"""
Credentials
===========
Stores the account API key that gates AI chat.

File: <KITPILOT_HOME>/credentials.json  →  {"apiKey": "..."}
"""
import json
import logging
from pathlib import Path
from typing import Optional

from kitpilot.core import config

logger = logging.getLogger(__name__)


def credentials_path() -> Path:
    return config.KITPILOT_HOME / "credentials.json"


def read_api_key() -> Optional[str]:
    """Return the stored API key, or None if absent or unreadable."""
    path = credentials_path()
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable credentials file %s: %s", path, e)
        return None
    if isinstance(data, dict) and data.get("apiKey"):
        return str(data["apiKey"])
    return None


def write_api_key(api_key: str) -> None:
    path = credentials_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"apiKey": api_key}, indent=2), encoding="utf-8")
    logger.info("API key saved to %s", path)


def clear_api_key() -> None:
    path = credentials_path()
    if path.exists():
        path.unlink()
