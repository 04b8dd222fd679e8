"""MCP tools for vault structure and sync session management."""

import asyncio
import logging
from typing import Any

from mcp.server.fastmcp import Context

from vault_sync.server import mcp
from vault_sync.models import CreateFolderInput, DeletePathInput, ListTreeInput, SessionInput
from vault_sync.core.document_store import create_folder, delete_path
from vault_sync.core.vault_tree import scan
from vault_sync.session import get_engine, get_session, get_session_key, release_path

logger = logging.getLogger(__name__)


@mcp.tool()
async def list_vault_tree(
    input: ListTreeInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """List every folder and document in the vault as a tree.

    Args:
        input (ListTreeInput): Validated input (no fields required)

    Returns:
        {
            "name": str,
            "path": "",
            "type": "directory",
            "children": [
                {"name": str, "path": str, "type": "file"},
                {"name": str, "path": str, "type": "directory", "children": [...]}
            ]
        }

    Error Handling:
        - Vault unreadable → ScanError (never reported as an empty vault)
    """
    tree = await asyncio.to_thread(scan, get_engine().vault.path)
    return tree.as_payload()


@mcp.tool()
async def create_vault_folder(
    input: CreateFolderInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Create a folder (parents included).

    Returns:
        {"vault": str, "path": str, "status": "created"}

    Error Handling:
        - Folder or file already exists → NameCollision (not a silent no-op)
    """
    return create_folder(get_engine().vault, input.path)


@mcp.tool()
async def delete_vault_path(
    input: DeletePathInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Delete a document, or a folder and everything inside it.

    Commits already running are allowed to finish first, then every sync
    session whose active document is removed is detached, so nothing writes
    the deleted documents back.

    Returns:
        {"vault": str, "path": str, "type": str, "status": "deleted", "sessions_released": list[str]}

    Error Handling:
        - Path missing → NotFound
        - Vault root → InvalidPath
    """
    target, released = await release_path(input.path)
    result = await asyncio.to_thread(delete_path, get_engine().vault, target)
    result["sessions_released"] = released
    return result


@mcp.tool()
async def session_status(
    input: SessionInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Report this client's active document, sync state and last commit result.

    Returns:
        {
            "session": str,
            "path": str | None,
            "content_type": str | None,
            "state": "idle" | "debouncing" | "committing",
            "dirty": bool,
            "last_result": {...} | None,
            "last_error": str | None
        }
    """
    return get_session(ctx).as_payload()


@mcp.tool()
async def flush_session(
    input: SessionInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Save this client's pending edit now instead of waiting for the debounce window.

    Returns:
        Session status payload plus "result" for the commit that ran (or the
        last known result when nothing was pending).
    """
    session = get_session(ctx)
    result = await get_engine().flush(session)
    logger.debug("Flushed session %s", get_session_key(ctx))
    return {**session.as_payload(), "result": result.as_payload() if result else None}
