"""Pydantic input models for document operations.

This module defines input models for document reads, saves and renames, plus
the sync session operations that drive the debounced save cycle:
- Read document content
- Save document (write + version)
- Rename document or folder
- Create an untitled document
- Open a document in the caller's sync session
- Report an edit to the caller's sync session
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from vault_sync.core import path_codec
from vault_sync.data_models import ContentType

from .base import BaseDocumentInput


class ReadDocumentInput(BaseDocumentInput):
    """Input model for read_document tool.

    Examples:
        >>> ReadDocumentInput(path="Projects/Roadmap.md")
    """

    class Config:
        """Pydantic model configuration."""
        json_schema_extra = {
            "examples": [
                {"path": "Projects/Roadmap.md"},
                {"path": "Boards/Plan.canvas"},
            ]
        }


class SaveDocumentInput(BaseDocumentInput):
    """Input model for save_document tool.

    Writes the body durably and appends exactly one version, even when the
    body is identical to the stored one.

    Examples:
        >>> SaveDocumentInput(path="Ideas.md", body="# Ideas\\n\\n- one")
    """

    body: str = Field(
        description=(
            "Complete document body. Notes hold markdown or HTML, boards hold "
            "the board JSON. Can be empty."
        )
    )


class RenameDocumentInput(BaseModel):
    """Input model for rename_document tool.

    Examples:
        >>> RenameDocumentInput(old_path="Untitled-1.md", new_path="Meeting Notes.md")
    """

    old_path: str = Field(
        min_length=1,
        description="Current path of the document or folder.",
        examples=["Untitled-1.md", "Drafts"],
    )
    new_path: str = Field(
        min_length=1,
        description="Desired path. Missing parent folders are created.",
        examples=["Meeting Notes.md", "Archive/Drafts"],
    )

    @field_validator("old_path", "new_path")
    @classmethod
    def validate_paths(cls, v: str) -> str:
        """Normalize both paths with the vault path rules."""
        return path_codec.normalize(v)

    @model_validator(mode="after")
    def validate_different(self) -> RenameDocumentInput:
        """Ensure the rename actually changes the path.

        Raises:
            ValueError: If both paths are identical after normalization.
        """
        if self.old_path == self.new_path:
            raise ValueError(
                "old_path and new_path are identical. "
                f"Both resolve to: '{self.old_path}'"
            )
        return self


class CreateDocumentInput(BaseModel):
    """Input model for create_document tool.

    Creates ``Untitled-<n>.md`` (or ``.canvas``) inside ``folder``.

    Examples:
        >>> CreateDocumentInput()
        >>> CreateDocumentInput(folder="Projects", content_type="board")
    """

    folder: Optional[str] = Field(
        None,
        description="Folder to create the document in (omit for the vault root).",
        examples=["Projects", None],
    )
    content_type: ContentType = Field(
        ContentType.NOTE,
        description="'note' for a rich-text note, 'board' for a card board.",
    )

    @field_validator("folder")
    @classmethod
    def validate_folder(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank folders as the vault root; normalize the rest."""
        if v is None or not v.strip():
            return None
        return path_codec.normalize(v)


class OpenDocumentInput(BaseDocumentInput):
    """Input model for open_document tool.

    Makes the document the active one for the calling client's sync session.
    A pending, not yet committed edit of the previous document is dropped.
    """


class EditDocumentInput(BaseModel):
    """Input model for edit_document tool.

    Examples:
        >>> EditDocumentInput(body="<h1>Meeting Notes</h1><p>Agenda</p>")
    """

    body: str = Field(
        description=(
            "Latest complete body from the editor. Only the last body received "
            "within the debounce window is saved."
        )
    )
