"""Engine wiring and per-client sync session tracking."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from mcp.server.fastmcp import Context

from vault_sync.core.path_codec import normalize
from vault_sync.core.sync_engine import SyncEngine, SyncSession
from vault_sync.core.version_store import VersionStore
from vault_sync.data_models import SessionState, VaultConfiguration

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = 0

# Session state storage
_ENGINE: Optional[SyncEngine] = None
_SESSIONS: Dict[int, SyncSession] = {}


def configure_engine(configuration: VaultConfiguration) -> SyncEngine:
    """Create the vault directory if needed and build the shared engine.

    Args:
        configuration: Loaded vault configuration.

    Returns:
        The :class:`SyncEngine` used by every tool call.
    """
    global _ENGINE

    vault = configuration.vault
    if not vault.path.is_dir():
        vault.path.mkdir(parents=True, exist_ok=True)
        logger.info("Created vault directory at %s", vault.path)

    _ENGINE = SyncEngine(
        vault=vault,
        versions=VersionStore(configuration.version_log),
        debounce_seconds=configuration.debounce_seconds,
        rename_policy=configuration.rename_policy,
        on_commit=_log_commit,
    )
    _SESSIONS.clear()
    logger.info("Vault '%s' ready at %s", vault.name, vault.path)
    return _ENGINE


def get_engine() -> SyncEngine:
    """Return the configured engine.

    Raises:
        RuntimeError: If :func:`configure_engine` has not been called.
    """
    if _ENGINE is None:
        raise RuntimeError("Vault sync engine is not configured; start the server with a configuration.")
    return _ENGINE


def get_session_key(ctx: Optional[Context]) -> int:
    """Produce a stable per-client key for sync session tracking.

    Args:
        ctx: The request context supplied by FastMCP, or ``None``.

    Returns:
        An integer derived from the underlying session object identity, or
        :data:`DEFAULT_SESSION_KEY` when no context is available.
    """
    if ctx is None:
        return DEFAULT_SESSION_KEY
    return id(ctx.session)


def get_session(ctx: Optional[Context]) -> SyncSession:
    """Return the sync session for a client, creating it on first use."""
    key = get_session_key(ctx)
    session = _SESSIONS.get(key)
    if session is None:
        session = SyncSession(session_id=str(key))
        _SESSIONS[key] = session
    return session


async def settle_path(path: str) -> str:
    """Wait for running commits before ``path`` is moved by a manual rename.

    Returns:
        The path to move; it differs from ``path`` only when a running commit
        auto-renamed the document that was there.
    """
    engine = get_engine()
    target = normalize(path)
    while True:
        # A pending timer may start a new commit while another one is awaited
        busy = [s for s in _SESSIONS.values() if s.state is SessionState.COMMITTING]
        if not busy:
            return target
        for session in busy:
            target = await engine.settle_path(session, target)


async def release_path(path: str) -> tuple[str, list[str]]:
    """Detach every session whose active document is ``path`` or lies under it.

    Running commits are waited for first, so none of them can write a document
    back after it has been deleted.

    Returns:
        The path to delete and the ids of the sessions that were detached.
    """
    engine = get_engine()
    target = normalize(path)
    released = []
    for session in list(_SESSIONS.values()):
        had_document = session.has_document
        target = await engine.detach(session, target)
        if had_document and not session.has_document:
            released.append(session.session_id)
    return target, released


def follow_rename(old_path: str, new_path: str) -> list[str]:
    """Point every session inside ``old_path`` at the matching location under ``new_path``.

    Returns:
        Ids of the sessions that were updated.
    """
    engine = get_engine()
    return [
        session.session_id
        for session in _SESSIONS.values()
        if engine.relocate(session, old_path, new_path)
    ]


def _log_commit(session: SyncSession, result) -> None:
    logger.info(
        "Session '%s' commit %s at '%s'",
        session.session_id,
        result.status.value,
        result.path,
    )
