"""Document management MCP tools.

This module provides MCP tool wrappers for document operations:
- Read document content
- Save document content (write + version snapshot)
- Rename/move documents and folders
- Create untitled documents
- Open a document in the caller's sync session
- Report editor changes to the caller's sync session

Storage operations delegate to vault_sync.core.document_store; session
operations delegate to the shared SyncEngine.
"""
from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import Context

from vault_sync.server import mcp
from vault_sync.session import follow_rename, get_engine, get_session, settle_path
from vault_sync.models import (
    ReadDocumentInput,
    SaveDocumentInput,
    RenameDocumentInput,
    CreateDocumentInput,
    OpenDocumentInput,
    EditDocumentInput,
)
from vault_sync.core.document_store import (
    read_document,
    save_document,
    rename_document,
)


# ==============================================================================
# READ OPERATIONS
# ==============================================================================

# Returns the stored body with its content type. Errors if the document is missing.
@mcp.tool()
async def read_vault_document(
    input: ReadDocumentInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Read a document's stored body.

    Args:
        input (ReadDocumentInput): Validated input containing:
            - path (str): Document path with extension
                Examples: "Projects/Roadmap.md", "Boards/Plan.canvas"

    Returns:
        {
            "vault": str,
            "path": str,
            "content_type": "note" | "board",
            "body": str,
            "modified": str,
            "size": int
        }

    Error Handling:
        - ValidationError: Empty path, traversal attempt, or missing extension
        - Document not found → NotFound error with the path
    """
    return read_document(get_engine().vault, input.path)


# ==============================================================================
# WRITE OPERATIONS
# ==============================================================================

# Writes the body durably and appends one version; re-saving identical bytes still versions.
@mcp.tool()
async def save_vault_document(
    input: SaveDocumentInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Save a document body immediately (no debounce, no auto-rename).

    Args:
        input (SaveDocumentInput): Validated input containing:
            - path (str): Document path with extension
            - body (str): Complete body to store

    Returns:
        {"vault": str, "path": str, "version_id": int, "status": "saved"}

    Error Handling:
        - ValidationError: Invalid path
        - StorageWriteFailure → Error, nothing is retried automatically
    """
    engine = get_engine()
    return save_document(engine.vault, engine.versions, input.path, input.body)


# Atomic rename after running commits land; open sessions follow the document to its new path.
@mcp.tool()
async def rename_vault_document(
    input: RenameDocumentInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Rename or move a document or folder.

    Args:
        input (RenameDocumentInput): Validated input containing:
            - old_path (str): Current path
            - new_path (str): Desired path (parent folders created)

    Returns:
        {
            "vault": str,
            "old_path": str,
            "new_path": str,
            "status": "renamed",
            "sessions_updated": list[str]
        }

    Error Handling:
        - ValidationError: Invalid or identical paths
        - Old path missing → NotFound
        - New path occupied → NameCollision
    """
    old_path = await settle_path(input.old_path)
    result = rename_document(get_engine().vault, old_path, input.new_path)
    result["sessions_updated"] = follow_rename(result["old_path"], result["new_path"])
    return result


# Creates Untitled-<n>.md / .canvas; the caller opens it explicitly afterwards.
@mcp.tool()
async def create_vault_document(
    input: CreateDocumentInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Create an empty document with a unique default name.

    Args:
        input (CreateDocumentInput): Validated input containing:
            - folder (str, optional): Target folder (omit for the vault root)
            - content_type ("note" | "board"): Kind of document

    Returns:
        {"path": str, "content_type": str, "status": "created"}

    Error Handling:
        - Folder missing → NotFound
        - No free name after repeated attempts → NameCollision
    """
    path = await get_engine().create_document(input.folder, input.content_type)
    return {"path": path, "content_type": input.content_type.value, "status": "created"}


# ==============================================================================
# SYNC SESSION OPERATIONS
# ==============================================================================

@mcp.tool()
async def open_vault_document(
    input: OpenDocumentInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Open a document as the active document of this client's sync session.

    Cancels any pending, not yet committed edit of the previously open document.

    Returns:
        {"session": str, "path": str, "content_type": str, "body": str, ...}

    Error Handling:
        - Document not found → NotFound (the session keeps its previous document)
    """
    session = get_session(ctx)
    body = await get_engine().open_document(session, input.path)
    return {**session.as_payload(), "body": body}


# Debounced: only the last body within the window is saved; a title change renames the file.
@mcp.tool()
async def edit_vault_document(
    input: EditDocumentInput,
    ctx: Context | None = None,
) -> dict[str, Any]:
    """Report the editor's latest body for the active document.

    Returns immediately. After the debounce window the body is saved (and
    versioned) and, when its heading or board title changed, the file is
    renamed to match. Use session_status or flush_session to observe the
    resulting path.

    Returns:
        Session status payload with "state": "debouncing".
    """
    session = get_session(ctx)
    get_engine().on_edit(session, input.body)
    return session.as_payload()
