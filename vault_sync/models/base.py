"""Base Pydantic models for MCP tool input validation.

This module defines base models that provide common validation patterns
for document and folder operations. Other input models inherit from these bases.

Base Models:
- BasePathInput: Validates and normalizes a vault-relative path
- BaseDocumentInput: Additionally requires a note or board extension
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from vault_sync.core import path_codec


class BasePathInput(BaseModel):
    """Base model for operations addressing a single vault path.

    The path is normalized by :func:`vault_sync.core.path_codec.normalize`, so
    tools always receive canonical paths.
    """

    path: str = Field(
        min_length=1,
        description=(
            "Path relative to the vault root, forward slashes for folders, "
            "case-sensitive. Examples: 'Projects/Roadmap.md', 'Boards/Plan.canvas', 'Archive'."
        ),
        examples=["Projects/Roadmap.md", "Boards/Plan.canvas", "Archive"],
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject traversal and absolute paths; collapse redundant separators.

        Raises:
            ValueError: If the path is empty, absolute or contains '.'/'..' segments.
        """
        return path_codec.normalize(v)


class BaseDocumentInput(BasePathInput):
    """Base model for operations that only make sense on documents (not folders)."""

    @field_validator("path")
    @classmethod
    def validate_document_path(cls, v: str) -> str:
        """Require a note (.md) or board (.canvas) extension.

        Raises:
            ValueError: If the path has no document extension.
        """
        path_codec.content_type_for(v)
        return v
