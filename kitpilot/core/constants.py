"""
Constants
Centralised storage for snapshot identity, session labels and chat commands.
"""
# Synthetic git identity used for every snapshot commit
SNAPSHOT_AUTHOR_NAME = "kitpilot"
SNAPSHOT_AUTHOR_EMAIL = "kitpilot@local"

BASELINE_SNAPSHOT_MESSAGE = "Initial project snapshot"
SESSION_START_MESSAGE = "Chat session start"
SESSION_END_MESSAGE = "Chat session end"
BEFORE_AI_PREFIX = "Before AI: "
AFTER_AI_PREFIX = "AI: "
REVERT_PREFIX = "Reverted to: "

# Truncation lengths
REQUEST_LABEL_LENGTH = 60
REFINE_ERROR_LENGTH = 2000
RAW_RESPONSE_PREVIEW_LENGTH = 500
ERROR_DISPLAY_LINES = 30

# Project layout
PROJECT_MARKER = "kit.config.ts"
CONTRACTS_DIR = "contracts"
DEPLOYMENTS_DIR = "deployments"
CONTRACT_SOURCE_EXT = ".sol"

# Chat commands
EXIT_COMMANDS = ("/exit", "/quit", "/q")
REVERT_COMMANDS = ("/revert", "/undo")
HISTORY_COMMAND = "/history"
HELP_COMMAND = "/help"

# Well-known anvil account #0 key, safe only for the local test chain
ANVIL_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

FOUNDRY_INSTALL_HINT = "curl -L https://foundry.paradigm.xyz | bash && foundryup"
