"""
Deploy Pre-flight
=================
Checks a forge deploy script's runtime parameters BEFORE deploying.

Deploy scripts read parameters with ``vm.envUint("NAME")`` and friends. A
missing variable makes ``forge script`` fail deep inside execution, so the
script is scanned up front:

    1. Collect every vm.env*("NAME") requirement (first occurrence wins).
    2. Auto-supply well-known local-chain values (DEPLOYER_PRIVATE_KEY is
       anvil account #0).
    3. Accept anything already present in the environment.
    4. Report the rest as missing so deployment is skipped with guidance.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from kitpilot.core.constants import ANVIL_PRIVATE_KEY

logger = logging.getLogger(__name__)

DEFAULT_DEPLOY_SCRIPT = "script/Deploy.s.sol"

_ENV_CALL_RE = re.compile(r"""vm\.env(Uint|Address|String|Bytes32|Bool|Int)\(\s*["']([^"']+)["']\s*\)""")

# Values auto-provided for local test-chain deployments
LOCAL_AUTO_ENV: Dict[str, str] = {
    "DEPLOYER_PRIVATE_KEY": ANVIL_PRIVATE_KEY,
}


@dataclass
class EnvVarRequirement:
    name: str
    type: str


@dataclass
class PreflightResult:
    """
    ok      — every requirement is satisfied
    env     — environment to run forge with (process env + auto-supplied values)
    missing — requirements that are neither auto-supplied nor set
    """
    ok: bool
    env: Dict[str, str] = field(default_factory=dict)
    missing: List[EnvVarRequirement] = field(default_factory=list)


def find_deploy_script(contracts_dir: str) -> str:
    """
    Locate the deploy script relative to ``contracts_dir``.

    A single Deploy*.s.sol wins; with several, Deploy.s.sol is preferred,
    then the first in directory order.
    """
    script_dir = os.path.join(contracts_dir, "script")
    if not os.path.isdir(script_dir):
        return DEFAULT_DEPLOY_SCRIPT

    try:
        deploy_scripts = sorted(
            f for f in os.listdir(script_dir) if f.startswith("Deploy") and f.endswith(".s.sol")
        )
    except OSError:
        return DEFAULT_DEPLOY_SCRIPT

    if len(deploy_scripts) == 1:
        return f"script/{deploy_scripts[0]}"
    if "Deploy.s.sol" in deploy_scripts:
        return DEFAULT_DEPLOY_SCRIPT
    if deploy_scripts:
        return f"script/{deploy_scripts[0]}"
    return DEFAULT_DEPLOY_SCRIPT


def scan_deploy_script_env_vars(contracts_dir: str, script_path: str) -> List[EnvVarRequirement]:
    full_path = os.path.join(contracts_dir, script_path)
    try:
        with open(full_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError:
        return []

    results: List[EnvVarRequirement] = []
    seen: set[str] = set()
    for match in _ENV_CALL_RE.finditer(content):
        var_type, name = match.group(1), match.group(2)
        if name not in seen:
            seen.add(name)
            results.append(EnvVarRequirement(name=name, type=var_type))
    return results


def preflight_deploy(
    contracts_dir: str,
    script_path: str,
    environ: Optional[Mapping[str, str]] = None,
) -> PreflightResult:
    environ = os.environ if environ is None else environ
    env: Dict[str, str] = dict(environ)
    missing: List[EnvVarRequirement] = []

    for req in scan_deploy_script_env_vars(contracts_dir, script_path):
        auto_value = LOCAL_AUTO_ENV.get(req.name)
        if auto_value:
            env[req.name] = auto_value
            continue
        if environ.get(req.name):
            continue
        missing.append(req)

    # The deploy command passes the key explicitly, so it is always supplied
    env.setdefault("DEPLOYER_PRIVATE_KEY", ANVIL_PRIVATE_KEY)

    return PreflightResult(ok=not missing, env=env, missing=missing)


def report_missing_env_vars(missing: List[EnvVarRequirement], project_root: str) -> None:
    """Log actionable guidance for missing deploy parameters."""
    logger.error("Deploy script requires environment variables that are not set:")
    for req in missing:
        logger.error("  ✗ %s (vm.env%s)", req.name, req.type)
    example = missing[0].name if missing else "VAR"
    logger.error(
        "Set them in %s or export them in your shell: export %s=value",
        os.path.join(project_root, ".env"), example,
    )
