"""
Rebuild Pipeline
================
Brings the running project in line with the source tree after an edit.

Pipeline (sequential, one pass):
    1. No contracts/src directory → frontend-only project, nothing to do.
    2. forge build in contracts/; a failure returns immediately with the
       compiler diagnostics (deploy and codegen would only act on stale
       artifacts).
    3. If the local chain is running: locate the deploy script, pre-flight
       its vm.env* parameters, run forge script --broadcast, recover the
       deployed addresses and merge them into deployments/<chainId>.json.
       Missing parameters skip deployment with guidance; a failed
       deployment is logged and is NOT fatal.
    4. Binding generation ALWAYS runs last, even when deployment failed or
       was skipped, so the frontend types track the latest artifacts.

Result:
    RebuildResult(build_success, deploy_success, codegen_success, build_errors)
    deploy_success stays False when deployment was not requested or skipped.
"""
import logging
import os
import shlex
from typing import List

from kitpilot.core import config
from kitpilot.core.constants import CONTRACTS_DIR, DEPLOYMENTS_DIR
from kitpilot.executor.build_executor import run_build_and_capture
from kitpilot.executor.deploy_preflight import (
    find_deploy_script,
    preflight_deploy,
    report_missing_env_vars,
)
from kitpilot.executor.process_runner import ProcessRunner
from kitpilot.models.build_result import RebuildResult
from kitpilot.models.deployment import ParsedContract
from kitpilot.parser.forge_parser import parse_forge_broadcast, parse_forge_stdout
from kitpilot.services.deployments import write_structured_deployment

logger = logging.getLogger(__name__)


def _first_line(text: str, fallback: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return fallback


class RebuildPipeline:
    """
    Compile, deploy to the local chain, and regenerate frontend bindings.

    Usage:
        pipeline = RebuildPipeline(SubprocessRunner())
        result = pipeline.rebuild_project("/path/to/project", anvil_running=True)
    """

    def __init__(
        self,
        runner: ProcessRunner,
        codegen_command: str = config.CODEGEN_COMMAND,
        rpc_url: str = config.ANVIL_RPC_URL,
        chain_id: int = config.LOCAL_CHAIN_ID,
        chain_name: str = config.LOCAL_CHAIN_NAME,
    ) -> None:
        self.runner = runner
        self.codegen_command = codegen_command
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.chain_name = chain_name

    def rebuild_project(self, project_root: str, anvil_running: bool = False) -> RebuildResult:
        contracts_dir = os.path.join(project_root, CONTRACTS_DIR)
        if not os.path.isdir(os.path.join(contracts_dir, "src")):
            # Frontend-only project
            return RebuildResult(build_success=True, deploy_success=True, codegen_success=True)

        result = RebuildResult()

        logger.info("Building contracts...")
        build = run_build_and_capture(self.runner, contracts_dir)
        if not build.success:
            logger.error("Contract compilation failed")
            result.build_errors = build.stderr
            return result
        logger.info("Contracts compiled")
        result.build_success = True

        if anvil_running:
            result.deploy_success = self._deploy(project_root, contracts_dir)

        result.codegen_success = self._codegen(project_root)
        return result

    # -----------------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------------
    def _deploy(self, project_root: str, contracts_dir: str) -> bool:
        script = find_deploy_script(contracts_dir)
        preflight = preflight_deploy(contracts_dir, script)
        if not preflight.ok:
            report_missing_env_vars(preflight.missing, project_root)
            logger.warning("Skipping deploy: missing environment variables")
            return False

        logger.info("Deploying contracts to local chain...")
        deploy = self.runner.run(
            config.COMPILER_BINARY,
            [
                "script", script,
                "--broadcast",
                "--rpc-url", self.rpc_url,
                "--private-key", preflight.env.get("DEPLOYER_PRIVATE_KEY", ""),
            ],
            cwd=contracts_dir,
            env=preflight.env,
        )
        if not deploy.ok:
            logger.warning("Local deployment failed: %s", _first_line(deploy.stderr or deploy.stdout, "Deploy error"))
            return False

        script_name = os.path.basename(script)
        contracts: List[ParsedContract] = parse_forge_broadcast(contracts_dir, script_name, self.chain_id)
        if not contracts:
            contracts = parse_forge_stdout(deploy.stdout)

        if contracts:
            try:
                write_structured_deployment(
                    os.path.join(project_root, DEPLOYMENTS_DIR),
                    chain_id=self.chain_id,
                    chain=self.chain_name,
                    contracts=contracts,
                )
            except OSError as e:
                logger.warning("Could not record deployment: %s", e)
        logger.info("Contracts deployed to local chain")
        return True

    def _codegen(self, project_root: str) -> bool:
        argv = shlex.split(self.codegen_command)
        if not argv:
            logger.warning("Codegen skipped: no codegen command configured")
            return False

        logger.info("Running codegen...")
        codegen = self.runner.run(argv[0], argv[1:], cwd=project_root)
        if not codegen.ok:
            logger.warning("Codegen skipped: %s", _first_line(codegen.stderr or codegen.stdout, "codegen failed"))
            return False
        logger.info("Codegen complete")
        return True
