"""FastMCP server initialization and tool registration."""

import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from vault_sync.config import load_vault_configuration
from vault_sync.session import configure_engine

# Initialize logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP("vault_sync")

# Tool modules are imported in __init__.py to register all @mcp.tool() decorators


def run_server(config_path: Optional[Path] = None):
    """Load configuration, build the sync engine and serve over stdio."""
    configuration = load_vault_configuration(config_path)
    logging.getLogger().setLevel(configuration.log_level)
    configure_engine(configuration)
    logger.info("Starting vault sync server for '%s'", configuration.vault.name)
    mcp.run(transport="stdio")
