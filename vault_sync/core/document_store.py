"""Filesystem operations for documents and folders inside a vault."""

from __future__ import annotations

import errno
import logging
import os
import platform
import re
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from vault_sync.constants import DEFAULT_DOCUMENT_STEM, MAX_CREATE_ATTEMPTS, TEMP_FILE_SUFFIX
from vault_sync.core import path_codec
from vault_sync.core.title_extractor import default_body
from vault_sync.core.version_store import VersionStore
from vault_sync.data_models import ContentType, VaultMetadata
from vault_sync.errors import (
    InvalidPath,
    NameCollision,
    NotFound,
    RenameFailure,
    StorageWriteFailure,
)

logger = logging.getLogger(__name__)

_UNTITLED = re.compile(rf"^{re.escape(DEFAULT_DOCUMENT_STEM)}-(?P<n>\d+)(?:\.[^.]+)?$")

# Serializes occupancy check and move where no atomic no-clobber move exists
_MOVE_LOCK = threading.Lock()


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================


def ensure_vault_ready(vault: VaultMetadata) -> None:
    """Ensure the target vault directory is accessible before performing operations.

    Raises:
        NotFound: If the vault path does not exist or is not a directory.
    """
    if not vault.path.is_dir():
        raise NotFound(f"Vault '{vault.name}' is not accessible at {vault.path}")


def _get_document_metadata(document_path: Path) -> dict[str, Any]:
    """Extract filesystem metadata for a document in a cross-platform friendly way.

    Args:
        document_path: Absolute path to the document file.

    Returns:
        A dictionary containing modification timestamp, optional creation timestamp,
        and file size in bytes.
    """
    stat = document_path.stat()
    metadata: dict[str, Any] = {
        "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        "size": stat.st_size,
    }

    system = platform.system()
    if system in ("Darwin", "Windows"):
        metadata["created"] = datetime.fromtimestamp(stat.st_ctime).isoformat()
    elif hasattr(stat, "st_birthtime"):
        metadata["created"] = datetime.fromtimestamp(stat.st_birthtime).isoformat()

    return metadata


def _atomic_write(target: Path, body: str) -> None:
    """Write ``body`` to a sibling temporary file and move it over ``target``."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=TEMP_FILE_SUFFIX,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(body)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_name, target)
    except BaseException:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise


def _same_file(left: Path, right: Path) -> bool:
    try:
        return os.path.samefile(left, right)
    except OSError:
        return False


def _move_without_clobber(source: Path, destination: Path) -> None:
    """Move ``source`` to ``destination``, never replacing an existing entry.

    Files are hard-linked into place and then unlinked, so the kernel rejects an
    occupied destination atomically. Folders, and filesystems without hard
    links, fall back to a check-and-rename under a process-wide lock.

    Raises:
        FileExistsError: If ``destination`` is occupied.
    """
    if source.is_file() and not source.is_symlink():
        try:
            os.link(source, destination)
        except FileExistsError:
            raise
        except OSError as exc:
            logger.debug("Hard link of '%s' unavailable (%s); using locked rename", source, exc)
        else:
            try:
                os.unlink(source)
            except OSError:
                os.unlink(destination)
                raise
            return

    with _MOVE_LOCK:
        if os.path.lexists(destination):
            raise FileExistsError(errno.EEXIST, "Destination already exists", str(destination))
        os.rename(source, destination)


def _next_untitled_number(folder: Path) -> int:
    highest = 0
    for entry in os.scandir(folder):
        match = _UNTITLED.match(entry.name)
        if match:
            highest = max(highest, int(match.group("n")))
    return highest + 1


# ==============================================================================
# DOCUMENT OPERATIONS
# ==============================================================================


def read_document(vault: VaultMetadata, path: str) -> dict[str, Any]:
    """Read the body of a document.

    Args:
        vault: Vault metadata.
        path: Canonical or raw document path (normalized here).

    Returns:
        A dictionary with the canonical path, content type, body and file metadata.

    Raises:
        InvalidPath: If ``path`` is malformed or not a document.
        NotFound: If no document exists at ``path``.
    """
    ensure_vault_ready(vault)
    canonical = path_codec.normalize(path)
    content_type = path_codec.content_type_for(canonical)
    target = path_codec.resolve_in_vault(vault, canonical)
    if not target.is_file():
        raise NotFound(f"Document '{canonical}' not found in vault '{vault.name}'.")

    try:
        body = target.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise NotFound(f"Document '{canonical}' not found in vault '{vault.name}'.") from exc

    return {
        "vault": vault.name,
        "path": canonical,
        "content_type": content_type.value,
        "body": body,
        **_get_document_metadata(target),
    }


def write_document(vault: VaultMetadata, path: str, body: str) -> str:
    """Durably replace (or create) the document at ``path``.

    Returns:
        The canonical path written.

    Raises:
        InvalidPath: If ``path`` is malformed or not a document.
        StorageWriteFailure: If the body could not be written.
    """
    canonical = path_codec.normalize(path)
    path_codec.content_type_for(canonical)
    target = path_codec.resolve_in_vault(vault, canonical)
    if target.is_dir():
        raise StorageWriteFailure(f"Cannot write '{canonical}': a folder exists at that path.")

    try:
        _atomic_write(target, body)
    except OSError as exc:
        logger.error("Failed to write '%s' in vault '%s': %s", canonical, vault.name, exc)
        raise StorageWriteFailure(f"Could not write '{canonical}': {exc}") from exc

    return canonical


def save_document(
    vault: VaultMetadata,
    versions: VersionStore,
    path: str,
    body: str,
) -> dict[str, Any]:
    """Durably write a document and append exactly one version snapshot.

    Saving identical bytes twice still appends two versions.

    Raises:
        InvalidPath: If ``path`` is malformed or not a document.
        StorageWriteFailure: If either the body or the version could not be written.
    """
    ensure_vault_ready(vault)
    canonical = write_document(vault, path, body)
    version_id = versions.append(canonical, body)
    logger.info("Saved '%s' in vault '%s' (version %d)", canonical, vault.name, version_id)
    return {
        "vault": vault.name,
        "path": canonical,
        "version_id": version_id,
        "status": "saved",
    }


def rename_document(vault: VaultMetadata, old_path: str, new_path: str) -> dict[str, Any]:
    """Atomically move a document or folder to a new path.

    Args:
        vault: Vault metadata.
        old_path: Current location.
        new_path: Desired location; parent folders are created when missing.

    Returns:
        A dictionary summarizing the rename.

    Raises:
        InvalidPath: If either path is malformed or escapes the vault.
        NotFound: If nothing exists at ``old_path``.
        NameCollision: If ``new_path`` is already occupied.
        RenameFailure: If the filesystem rejects the move for another reason.
    """
    ensure_vault_ready(vault)
    old_canonical = path_codec.normalize(old_path)
    new_canonical = path_codec.normalize(new_path)
    source = path_codec.resolve_in_vault(vault, old_canonical)
    destination = path_codec.resolve_in_vault(vault, new_canonical)

    if not source.exists():
        raise NotFound(f"'{old_canonical}' not found in vault '{vault.name}'.")

    if old_canonical == new_canonical:
        raise NameCollision(f"'{new_canonical}' is already the current path.")

    # Case-only renames on case-insensitive filesystems see the source as the target
    case_only = destination.exists() and _same_file(source, destination)
    if destination.exists() and not case_only:
        raise NameCollision(f"'{new_canonical}' already exists in vault '{vault.name}'.")

    if path_codec.is_within(new_canonical, old_canonical):
        raise InvalidPath(f"Cannot move '{old_canonical}' inside itself.")

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        if case_only:
            os.rename(source, destination)
        else:
            _move_without_clobber(source, destination)
    except FileExistsError as exc:
        raise NameCollision(f"'{new_canonical}' already exists in vault '{vault.name}'.") from exc
    except FileNotFoundError as exc:
        raise NotFound(f"'{old_canonical}' disappeared before it could be renamed.") from exc
    except OSError as exc:
        raise RenameFailure(f"Could not rename '{old_canonical}' to '{new_canonical}': {exc}") from exc

    logger.info("Renamed '%s' to '%s' in vault '%s'", old_canonical, new_canonical, vault.name)
    return {
        "vault": vault.name,
        "old_path": old_canonical,
        "new_path": new_canonical,
        "status": "renamed",
    }


def create_document(
    vault: VaultMetadata,
    folder: Optional[str],
    content_type: ContentType,
) -> dict[str, Any]:
    """Create an empty document with a unique ``Untitled-<n>`` name.

    Args:
        vault: Vault metadata.
        folder: Target folder, or ``None`` for the vault root.
        content_type: Kind of document to create.

    Returns:
        A dictionary with the new document's canonical path.

    Raises:
        NotFound: If ``folder`` does not exist.
        NameCollision: If no free name was found within ``MAX_CREATE_ATTEMPTS``.
        StorageWriteFailure: If the file could not be created.
    """
    ensure_vault_ready(vault)
    folder_canonical = path_codec.normalize(folder) if folder else None
    folder_path = (
        path_codec.resolve_in_vault(vault, folder_canonical) if folder_canonical else vault.path
    )
    if not folder_path.is_dir():
        raise NotFound(f"Folder '{folder_canonical}' not found in vault '{vault.name}'.")

    extension = path_codec.extension_for(content_type)
    body = default_body(content_type)
    number = _next_untitled_number(folder_path)

    for _ in range(MAX_CREATE_ATTEMPTS):
        canonical = path_codec.join(folder_canonical, f"{DEFAULT_DOCUMENT_STEM}-{number}{extension}")
        target = path_codec.resolve_in_vault(vault, canonical)
        try:
            with target.open("x", encoding="utf-8") as handle:
                handle.write(body)
        except FileExistsError:
            number += 1
            continue
        except OSError as exc:
            raise StorageWriteFailure(f"Could not create '{canonical}': {exc}") from exc

        logger.info("Created %s '%s' in vault '%s'", content_type.value, canonical, vault.name)
        return {
            "vault": vault.name,
            "path": canonical,
            "content_type": content_type.value,
            "status": "created",
        }

    raise NameCollision(
        f"Could not find a free name in '{folder_canonical or '.'}' after {MAX_CREATE_ATTEMPTS} attempts."
    )


def create_folder(vault: VaultMetadata, path: str) -> dict[str, Any]:
    """Create a folder. An existing folder is an error, not a no-op.

    Raises:
        NameCollision: If anything already exists at ``path``.
        StorageWriteFailure: If the folder could not be created.
    """
    ensure_vault_ready(vault)
    canonical = path_codec.normalize(path)
    target = path_codec.resolve_in_vault(vault, canonical)
    try:
        target.mkdir(parents=True, exist_ok=False)
    except FileExistsError as exc:
        raise NameCollision(f"'{canonical}' already exists in vault '{vault.name}'.") from exc
    except OSError as exc:
        raise StorageWriteFailure(f"Could not create folder '{canonical}': {exc}") from exc

    logger.info("Created folder '%s' in vault '%s'", canonical, vault.name)
    return {"vault": vault.name, "path": canonical, "status": "created"}


def delete_path(vault: VaultMetadata, path: str) -> dict[str, Any]:
    """Delete a document, or a folder and everything beneath it.

    Raises:
        InvalidPath: If ``path`` resolves to the vault root.
        NotFound: If nothing exists at ``path``.
    """
    ensure_vault_ready(vault)
    canonical = path_codec.normalize(path)
    target = path_codec.resolve_in_vault(vault, canonical)
    if target == vault.path.resolve(strict=False):
        raise InvalidPath("The vault root cannot be deleted.")

    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
            kind = "directory"
        else:
            target.unlink()
            kind = "file"
    except FileNotFoundError as exc:
        raise NotFound(f"'{canonical}' not found in vault '{vault.name}'.") from exc

    logger.info("Deleted %s '%s' in vault '%s'", kind, canonical, vault.name)
    return {"vault": vault.name, "path": canonical, "type": kind, "status": "deleted"}
