"""Version history MCP tools."""
from __future__ import annotations

import asyncio
from typing import Any

from mcp.server.fastmcp import Context

from vault_sync.server import mcp
from vault_sync.session import get_engine, get_session
from vault_sync.models import ListVersionsInput, RestoreVersionInput


@mcp.tool()
async def list_vault_versions(
    input: ListVersionsInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """List the most recent versions saved at a path, newest first.

    History is keyed by the exact path at save time: versions recorded
    before an automatic rename remain listed under the old path.

    Args:
        input (ListVersionsInput): Validated input containing:
            - path (str): Document path with extension
            - limit (int): Maximum number of versions (1-100, default 10)

    Returns:
        {
            "path": str,
            "versions": [
                {"version_id": int, "path": str, "body": str, "timestamp": str}
            ]
        }
    """
    versions = await asyncio.to_thread(get_engine().versions.list_recent, input.path, input.limit)
    return {
        "path": input.path,
        "versions": [version.as_payload() for version in versions],
    }


# Restoring re-enters the debounce cycle, so the restore itself becomes a new version.
@mcp.tool()
async def restore_vault_version(
    input: RestoreVersionInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Load a stored version into this client's active document.

    The body replaces the in-memory document and is saved like a normal
    edit after the debounce window, appending a new version.

    Returns:
        Session status payload plus "restored_version" and "body".

    Error Handling:
        - Unknown version id → NotFound
        - No document open in this session → NotFound
    """
    engine = get_engine()
    version = await asyncio.to_thread(engine.versions.get, input.version_id)
    session = get_session(ctx)
    body = engine.restore_version(session, version)
    return {**session.as_payload(), "restored_version": version.version_id, "body": body}
