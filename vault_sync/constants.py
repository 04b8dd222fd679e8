"""Module-level constants for the vault sync server."""

from pathlib import Path

# Configuration
CONFIG_ENV_VAR = "VAULT_SYNC_CONFIG"
CONFIG_PATH = Path(__file__).parent.parent / "vault.yaml"

# Document types
NOTE_EXTENSION = ".md"
BOARD_EXTENSION = ".canvas"
DOCUMENT_EXTENSIONS = (NOTE_EXTENSION, BOARD_EXTENSION)

# Naming
DEFAULT_DOCUMENT_STEM = "Untitled"
MAX_CREATE_ATTEMPTS = 64
TEMP_FILE_SUFFIX = ".vstmp"

# Sync
DEFAULT_DEBOUNCE_SECONDS = 1.0
RENAME_POLICIES = ("soft", "hard")
DEFAULT_RENAME_POLICY = "soft"

# Version history
DEFAULT_VERSION_LOG = Path(".vault_sync") / "versions.jsonl"
DEFAULT_VERSION_LIMIT = 10
MAX_VERSION_LIMIT = 100

# Logging
LOG_LEVEL = "INFO"
