"""Recursive listing of the documents and folders in a vault."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from vault_sync.constants import TEMP_FILE_SUFFIX
from vault_sync.data_models import TreeNode
from vault_sync.errors import ScanError

logger = logging.getLogger(__name__)

DIRECTORY = "directory"
FILE = "file"


def _is_hidden(name: str, excluded: frozenset[str]) -> bool:
    return name.startswith(".") or name.endswith(TEMP_FILE_SUFFIX) or name in excluded


def _scan_folder(folder: Path, relative: str, excluded: frozenset[str]) -> tuple[TreeNode, ...]:
    try:
        entries = list(os.scandir(folder))
    except OSError as exc:
        raise ScanError(f"Cannot list '{relative or '.'}': {exc}") from exc

    children = []
    for entry in entries:
        if _is_hidden(entry.name, excluded):
            continue
        child_path = f"{relative}/{entry.name}" if relative else entry.name
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as exc:
            raise ScanError(f"Cannot inspect '{child_path}': {exc}") from exc

        if is_dir:
            children.append(
                TreeNode(
                    name=entry.name,
                    path=child_path,
                    kind=DIRECTORY,
                    children=_scan_folder(Path(entry.path), child_path, excluded),
                )
            )
        else:
            children.append(TreeNode(name=entry.name, path=child_path, kind=FILE))
    return tuple(children)


def scan(root: Path, excluded: Iterable[str] = ()) -> TreeNode:
    """Scan ``root`` depth-first and return it as a tree of :class:`TreeNode`.

    Folders carry ``children``; documents do not. Entry order follows the
    filesystem. Hidden entries (including the version log directory) and
    in-progress temporary files are left out.

    Args:
        root: Vault root directory.
        excluded: Additional entry names to skip at every level.

    Returns:
        A directory node for the root with an empty ``path``.

    Raises:
        ScanError: If the root, or any folder below it, cannot be read. An
            unreadable vault is never reported as an empty one.
    """
    if not root.is_dir():
        raise ScanError(f"Vault root {root} is not an accessible directory.")

    children = _scan_folder(root, "", frozenset(excluded))
    logger.debug("Scanned vault %s (%d top-level entries)", root, len(children))
    return TreeNode(name=root.name, path="", kind=DIRECTORY, children=children)
