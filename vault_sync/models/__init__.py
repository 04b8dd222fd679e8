"""Pydantic input models for MCP tool validation.

This package defines Pydantic models that provide automatic input validation
for all MCP tools. Each model represents the input schema for one or more tools,
with field-level validation, type checking, and descriptive error messages.

Architecture:
- base: Base models (BasePathInput, BaseDocumentInput) for path validation
- document_models: Input models for document reads, saves and sync sessions
- version_models: Input models for version history
- vault_models: Input models for tree listing, folders and deletion

Usage:
    from vault_sync.models import ReadDocumentInput, SaveDocumentInput
    from vault_sync.models import ListVersionsInput, ListTreeInput
"""

from .base import BaseDocumentInput, BasePathInput
from .document_models import (
    CreateDocumentInput,
    EditDocumentInput,
    OpenDocumentInput,
    ReadDocumentInput,
    RenameDocumentInput,
    SaveDocumentInput,
)
from .version_models import (
    ListVersionsInput,
    RestoreVersionInput,
)
from .vault_models import (
    CreateFolderInput,
    DeletePathInput,
    ListTreeInput,
    SessionInput,
)

__all__ = [
    # Base models
    "BasePathInput",
    "BaseDocumentInput",
    # Document models
    "ReadDocumentInput",
    "SaveDocumentInput",
    "RenameDocumentInput",
    "CreateDocumentInput",
    "OpenDocumentInput",
    "EditDocumentInput",
    # Version models
    "ListVersionsInput",
    "RestoreVersionInput",
    # Vault models
    "ListTreeInput",
    "CreateFolderInput",
    "DeletePathInput",
    "SessionInput",
]
