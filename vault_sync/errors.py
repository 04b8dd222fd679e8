"""Exception taxonomy for vault operations.

Each error also derives from the closest builtin exception so callers that
only know about ``FileNotFoundError`` or ``ValueError`` keep working.
"""

from __future__ import annotations


class VaultSyncError(Exception):
    """Base class for every error raised by the vault sync engine."""


class InvalidPath(VaultSyncError, ValueError):
    """A path is malformed or would escape the vault root."""


class NotFound(VaultSyncError, FileNotFoundError):
    """The requested document, folder or version does not exist."""


class NameCollision(VaultSyncError, FileExistsError):
    """The target name is already taken within its parent folder."""


class ScanError(VaultSyncError, OSError):
    """The vault (or part of it) could not be listed."""


class StorageWriteFailure(VaultSyncError, OSError):
    """A document body or version snapshot could not be written durably."""


class RenameFailure(VaultSyncError, OSError):
    """A rename failed for a reason other than a missing source or taken target."""
