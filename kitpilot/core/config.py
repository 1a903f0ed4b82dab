"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    KITPILOT_HOME        — Directory for credentials, AI provider config and logs
                           (default: ~/.kitpilot)
    ANVIL_RPC_URL        — JSON-RPC endpoint of the local test chain
    LOCAL_CHAIN_ID       — Chain id used for local deployment records (default: 31337)
    FIX_MAX_RETRIES      — Default number of AI repair attempts (default: 3)
    MAX_CONTEXT_SIZE     — Character budget for project context sent to the model
    AI_MAX_TOKENS        — Completion token budget per model request
    AI_REQUEST_TIMEOUT   — Seconds before a model request is abandoned
    CODEGEN_COMMAND      — Command that regenerates frontend bindings from artifacts
    LOG_LEVEL            — Logging level name (default: INFO)

The .env file is resolved from the current working directory, which is the
project root when the CLI runs. Deploy scripts read their vm.env* parameters
from the same environment, so values placed in the project's .env satisfy the
deploy pre-flight check.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

KITPILOT_HOME = Path(os.getenv("KITPILOT_HOME", str(Path.home() / ".kitpilot"))).expanduser()

# Local chain
ANVIL_RPC_URL = os.getenv("ANVIL_RPC_URL", "http://127.0.0.1:8545")
LOCAL_CHAIN_ID = int(os.getenv("LOCAL_CHAIN_ID", 31337))
LOCAL_CHAIN_NAME = os.getenv("LOCAL_CHAIN_NAME", "localhost")

# Repair loop
FIX_MAX_RETRIES = int(os.getenv("FIX_MAX_RETRIES", 3))
FIX_MAX_RETRIES_CAP = 10

# Model requests
MAX_CONTEXT_SIZE = int(os.getenv("MAX_CONTEXT_SIZE", 100_000))
AI_MAX_TOKENS = int(os.getenv("AI_MAX_TOKENS", 8192))
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", 120))

# Toolchain
COMPILER_BINARY = os.getenv("COMPILER_BINARY", "forge")
GIT_BINARY = os.getenv("GIT_BINARY", "git")
CODEGEN_COMMAND = os.getenv("CODEGEN_COMMAND", "npx wagmi generate")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
