"""Validation and construction of vault-relative document paths.

Canonical paths are plain strings: forward-slash separated, relative to the
vault root, with no empty, ``.`` or ``..`` segments and no trailing slash.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Optional

from vault_sync.constants import (
    BOARD_EXTENSION,
    DOCUMENT_EXTENSIONS,
    NOTE_EXTENSION,
)
from vault_sync.data_models import ContentType, VaultMetadata
from vault_sync.errors import InvalidPath

_SEPARATORS = re.compile(r"[\\/]+")
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")
_UNSAFE_TITLE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')
_WHITESPACE = re.compile(r"\s+")

MAX_SEGMENT_LENGTH = 120


def normalize(raw_path: str) -> str:
    """Validate a caller-supplied path and return its canonical form.

    Both ``/`` and ``\\`` are accepted as separators. Doubled and trailing
    separators are collapsed; segment text is kept verbatim (case-sensitive).

    Args:
        raw_path: Path relative to the vault root.

    Returns:
        The canonical forward-slash separated path.

    Raises:
        InvalidPath: If the path is empty, absolute, contains ``.``/``..``
            segments or NUL bytes.

    Examples:
        >>> normalize("Projects//Ideas.md/")
        'Projects/Ideas.md'
    """
    if not isinstance(raw_path, str):
        raise InvalidPath(f"Path must be a string, got {type(raw_path).__name__}.")
    if "\x00" in raw_path:
        raise InvalidPath("Path cannot contain NUL bytes.")

    cleaned = raw_path.strip()
    if cleaned.startswith(("/", "\\")) or _DRIVE_PREFIX.match(cleaned):
        raise InvalidPath(f"Path must be relative to the vault root: '{raw_path}'.")

    parts = [part for part in _SEPARATORS.split(cleaned) if part]
    if not parts:
        raise InvalidPath("Path cannot be empty.")
    if any(part in {".", ".."} for part in parts):
        raise InvalidPath(f"Path cannot contain '.' or '..' segments: '{raw_path}'.")

    return "/".join(parts)


def with_extension(base_path: str, ext: str) -> str:
    """Replace a known document extension on ``base_path`` or append ``ext``.

    Dots inside the file name are preserved unless they form one of the
    document extensions (compared case-insensitively).

    Examples:
        >>> with_extension("Projects/v1.4 Release", ".md")
        'Projects/v1.4 Release.md'
        >>> with_extension("Boards/Plan.MD", ".canvas")
        'Boards/Plan.canvas'
    """
    canonical = normalize(base_path)
    folder, _, name = canonical.rpartition("/")
    lowered = name.lower()
    for known in DOCUMENT_EXTENSIONS:
        if lowered.endswith(known) and len(name) > len(known):
            name = name[: -len(known)]
            break
    return join(folder or None, f"{name}{ext}")


def join(folder: Optional[str], name: str) -> str:
    """Join a child name onto a folder; ``None`` or ``""`` means the vault root."""
    if not folder:
        return normalize(name)
    return normalize(f"{normalize(folder)}/{name}")


def folder_of(path: str) -> Optional[str]:
    """Return the parent folder of ``path``, or ``None`` for top-level entries."""
    folder, _, _ = normalize(path).rpartition("/")
    return folder or None


def name_of(path: str) -> str:
    return normalize(path).rpartition("/")[2]


def stem_of(path: str) -> str:
    """Return the file name without its document extension."""
    name = name_of(path)
    lowered = name.lower()
    for known in DOCUMENT_EXTENSIONS:
        if lowered.endswith(known) and len(name) > len(known):
            return name[: -len(known)]
    return name


def is_within(path: str, ancestor: str) -> bool:
    """Return ``True`` when ``path`` equals ``ancestor`` or lives underneath it."""
    path = normalize(path)
    ancestor = normalize(ancestor)
    return path == ancestor or path.startswith(f"{ancestor}/")


def title_to_segment(title: str) -> Optional[str]:
    """Turn a document title into a file name segment (without extension).

    Separators and characters that common filesystems reject become ``-``,
    runs of whitespace collapse to one space, and leading/trailing dots are
    dropped so a title can never produce a hidden file or a ``..`` segment.

    Returns:
        The segment, or ``None`` when nothing usable remains.
    """
    segment = _UNSAFE_TITLE_CHARS.sub("-", title)
    segment = _WHITESPACE.sub(" ", segment).strip().strip(".").strip()
    segment = segment[:MAX_SEGMENT_LENGTH].rstrip()
    return segment or None


def extension_for(content_type: ContentType) -> str:
    if content_type is ContentType.BOARD:
        return BOARD_EXTENSION
    return NOTE_EXTENSION


def content_type_for(path: str) -> ContentType:
    """Infer the content type of a stored document from its extension.

    Raises:
        InvalidPath: If the path does not end in a document extension.
    """
    lowered = name_of(path).lower()
    if lowered.endswith(BOARD_EXTENSION):
        return ContentType.BOARD
    if lowered.endswith(NOTE_EXTENSION):
        return ContentType.NOTE
    raise InvalidPath(f"'{path}' is not a note ({NOTE_EXTENSION}) or board ({BOARD_EXTENSION}).")


def resolve_in_vault(vault: VaultMetadata, path: str) -> Path:
    """Resolve a canonical path to an absolute location inside ``vault``.

    Performs the filesystem-level sandbox check that string validation alone
    cannot: symlinks inside the vault must not lead outside of it.

    Raises:
        InvalidPath: If ``path`` is malformed or the resolved location escapes
            the vault root.
    """
    relative = PurePosixPath(normalize(path))
    vault_root = vault.path.resolve(strict=False)
    candidate = (vault_root / Path(*relative.parts)).resolve(strict=False)

    if not candidate.is_relative_to(vault_root):
        raise InvalidPath(f"Path '{path}' escapes vault '{vault.name}'.")

    return candidate
