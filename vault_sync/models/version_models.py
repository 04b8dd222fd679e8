"""Pydantic input models for version history operations.

This module defines input models for:
- Listing recent versions of a document
- Restoring a version into the caller's sync session
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from vault_sync.constants import DEFAULT_VERSION_LIMIT, MAX_VERSION_LIMIT

from .base import BaseDocumentInput


class ListVersionsInput(BaseDocumentInput):
    """Input model for list_versions tool.

    Versions are matched by the exact path they were saved under; history
    from before a rename stays under the old path.

    Examples:
        >>> ListVersionsInput(path="Meeting Notes.md", limit=5)
    """

    limit: int = Field(
        DEFAULT_VERSION_LIMIT,
        ge=1,
        le=MAX_VERSION_LIMIT,
        description=f"Maximum number of versions to return, newest first (1-{MAX_VERSION_LIMIT}).",
    )

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"path": "Meeting Notes.md", "limit": 10},
                {"path": "Boards/Plan.canvas", "limit": 3},
            ]
        }


class RestoreVersionInput(BaseModel):
    """Input model for restore_version tool.

    Examples:
        >>> RestoreVersionInput(version_id=42)
    """

    version_id: int = Field(
        ge=1,
        description="Id of the version to restore, as returned by list_versions.",
    )
