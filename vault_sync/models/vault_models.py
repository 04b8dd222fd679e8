"""Pydantic input models for vault structure operations.

This module defines input models for vault management tools:
- List the vault tree
- Create folders
- Delete documents or folders
- Inspect and flush the caller's sync session
"""

from __future__ import annotations

from pydantic import BaseModel

from .base import BasePathInput


class ListTreeInput(BaseModel):
    """Input model for list_vault_tree tool.

    Takes no parameters, but using a model maintains API consistency.

    Examples:
        >>> ListTreeInput()
    """

    # No fields required - this model exists for API consistency
    # All tools use Pydantic models even if they have no parameters

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [{}]
        }


class CreateFolderInput(BasePathInput):
    """Input model for create_folder tool.

    Fails when the folder already exists.

    Examples:
        >>> CreateFolderInput(path="Projects/2026")
    """


class DeletePathInput(BasePathInput):
    """Input model for delete_path tool.

    Deletes a document, or a folder with everything in it.

    Examples:
        >>> DeletePathInput(path="Archive")
    """


class SessionInput(BaseModel):
    """Input model for session_status and flush_session tools."""

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [{}]
        }
