"""MCP tool definitions for vault sync operations.

This module imports all tool submodules to register them with the MCP server.
Each tool module uses the @mcp.tool() decorator to auto-register its tools.
"""

# Import all tool modules to register their @mcp.tool() decorated functions
from vault_sync.tools import vault_tools
from vault_sync.tools import document_tools
from vault_sync.tools import version_tools

__all__ = [
    "vault_tools",
    "document_tools",
    "version_tools",
]
