"""Vault Sync MCP Server

Debounced, title-driven saving and version history for a note and board vault
via Model Context Protocol.
"""

from vault_sync.config import load_vault_configuration
from vault_sync.core.sync_engine import SyncEngine, SyncSession
from vault_sync.core.version_store import VersionStore
from vault_sync.data_models import ContentType, VaultConfiguration, VaultMetadata, Version
from vault_sync.session import configure_engine, get_engine, get_session
from vault_sync.server import mcp, run_server

# Import tools to register them with the MCP server
from vault_sync import tools  # noqa: F401

__version__ = "0.3.0"
__all__ = [
    "load_vault_configuration",
    "SyncEngine",
    "SyncSession",
    "VersionStore",
    "ContentType",
    "VaultConfiguration",
    "VaultMetadata",
    "Version",
    "configure_engine",
    "get_engine",
    "get_session",
    "mcp",
    "run_server",
]
