"""Data models for vault metadata, configuration, documents and history."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


@dataclass(frozen=True)
class VaultMetadata:
    """Normalized metadata describing a vault on disk."""

    name: str
    path: Path
    description: str
    exists: bool

    def as_payload(self) -> dict[str, Any]:
        """Return a serializable payload representation."""
        return {
            "name": self.name,
            "path": str(self.path),
            "description": self.description,
            "exists": self.path.is_dir(),
        }


class VaultConfiguration:
    """Holds the vault metadata together with sync and history settings.

    Loaded from vault.yaml by :func:`vault_sync.config.load_vault_configuration`.
    """

    def __init__(
        self,
        vault: VaultMetadata,
        debounce_seconds: float,
        rename_policy: str,
        version_log: Path,
        log_level: str,
    ) -> None:
        self.vault = vault
        self.debounce_seconds = debounce_seconds
        self.rename_policy = rename_policy
        self.version_log = version_log
        self.log_level = log_level

    def as_payload(self) -> dict[str, Any]:
        """Return serializable configuration payload."""
        return {
            "vault": self.vault.as_payload(),
            "debounce_seconds": self.debounce_seconds,
            "rename_policy": self.rename_policy,
            "version_log": str(self.version_log),
        }


class ContentType(str, enum.Enum):
    """Kinds of documents a vault can hold."""

    NOTE = "note"
    BOARD = "board"


@dataclass(frozen=True)
class Version:
    """Immutable snapshot of a document body at save time.

    ``path`` is the path the body was saved under, not a stable document id:
    history recorded before a rename stays under the old path.
    """

    version_id: int
    path: str
    body: str
    timestamp: datetime

    def as_payload(self) -> dict[str, Any]:
        return {
            "version_id": self.version_id,
            "path": self.path,
            "body": self.body,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class TreeNode:
    """One entry of the vault listing. Only directories carry ``children``."""

    name: str
    path: str
    kind: str
    children: Optional[tuple[TreeNode, ...]] = None

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "path": self.path, "type": self.kind}
        if self.children is not None:
            payload["children"] = [child.as_payload() for child in self.children]
        return payload


# ==============================================================================
# BOARD DOCUMENTS
# ==============================================================================


class CardPosition(BaseModel):
    x: float = 0.0
    y: float = 0.0


class CardData(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: str = ""
    color_id: str = Field("default", alias="colorId")


class Card(BaseModel):
    """A card placed on a board. Extra editor keys are kept verbatim."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    type: str = "card"
    position: CardPosition = Field(default_factory=CardPosition)
    data: CardData = Field(default_factory=CardData)


class Edge(BaseModel):
    """A directed connection between two cards on the same board."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(min_length=1)
    source: str
    target: str
    source_handle: Optional[str] = Field(None, alias="sourceHandle")
    target_handle: Optional[str] = Field(None, alias="targetHandle")


class BoardDocument(BaseModel):
    """Serialized body of a board: a title plus a small graph of cards."""

    model_config = ConfigDict(extra="allow")

    title: str = ""
    nodes: list[Card] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_edges(self) -> BoardDocument:
        """Reject duplicate card ids and edges pointing at unknown cards."""
        card_ids = [card.id for card in self.nodes]
        if len(card_ids) != len(set(card_ids)):
            raise ValueError("Board contains duplicate card ids.")

        known = set(card_ids)
        for edge in self.edges:
            if edge.source not in known or edge.target not in known:
                raise ValueError(
                    f"Edge '{edge.id}' connects unknown cards "
                    f"'{edge.source}' -> '{edge.target}'."
                )
        return self


@dataclass(frozen=True)
class NoteBody:
    text: str
    content_type: ContentType = field(default=ContentType.NOTE, init=False)


@dataclass(frozen=True)
class BoardBody:
    board: BoardDocument
    content_type: ContentType = field(default=ContentType.BOARD, init=False)


DocumentBody = Union[NoteBody, BoardBody]


# ==============================================================================
# SYNC RESULTS
# ==============================================================================


class SessionState(str, enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    COMMITTING = "committing"


class CommitStatus(str, enum.Enum):
    SAVED = "saved"
    ERROR = "error"
    # No active document when the timer fired
    SKIPPED = "skipped"
    # Session moved to another document while the commit was in flight
    DISCARDED = "discarded"


@dataclass(frozen=True)
class CommitResult:
    """Outcome of one debounce-triggered commit cycle."""

    status: CommitStatus
    path: Optional[str] = None
    version_id: Optional[int] = None
    renamed_from: Optional[str] = None
    error: Optional[str] = None

    def as_payload(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "path": self.path,
            "version_id": self.version_id,
            "renamed_from": self.renamed_from,
            "error": self.error,
        }
