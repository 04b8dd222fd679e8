"""Debounced save, title-driven rename and versioning for open documents.

A :class:`SyncSession` represents one viewer's open document. The
:class:`SyncEngine` turns the stream of bodies an editor emits into durable,
consistently named, versioned files:

    on_edit -> (debounce window) -> derive title -> rename -> save -> version

Only the last body received before the window elapses is committed. At most
one commit per session is in flight; edits that arrive meanwhile arm a new
timer that fires only after the running commit settles.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from vault_sync.constants import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_RENAME_POLICY, RENAME_POLICIES
from vault_sync.core import document_store, path_codec
from vault_sync.core.title_extractor import extract_title
from vault_sync.core.version_store import VersionStore
from vault_sync.data_models import (
    CommitResult,
    CommitStatus,
    ContentType,
    SessionState,
    VaultMetadata,
    Version,
)
from vault_sync.errors import (
    InvalidPath,
    NameCollision,
    NotFound,
    RenameFailure,
    StorageWriteFailure,
)

logger = logging.getLogger(__name__)

CommitListener = Callable[["SyncSession", CommitResult], None]


class SyncSession:
    """Per-viewer state: the active document and its pending work.

    Sessions are plain objects handed to every engine call, so any number of
    independent viewers can share one engine.
    """

    def __init__(self, session_id: str = "default") -> None:
        self.session_id = session_id
        self.current_path: Optional[str] = None
        self.content_type: Optional[ContentType] = None
        self.body: Optional[str] = None
        self.last_committed_body: Optional[str] = None
        self.last_error: Optional[str] = None
        self.last_result: Optional[CommitResult] = None
        # Bumped whenever the session switches documents; in-flight commits
        # started under an older epoch must not touch the session.
        self.epoch = 0
        self._pending: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def state(self) -> SessionState:
        if self._in_flight is not None and not self._in_flight.done():
            return SessionState.COMMITTING
        if self._pending is not None and not self._pending.done():
            return SessionState.DEBOUNCING
        return SessionState.IDLE

    @property
    def has_document(self) -> bool:
        return self.current_path is not None

    def as_payload(self) -> dict[str, Any]:
        return {
            "session": self.session_id,
            "path": self.current_path,
            "content_type": self.content_type.value if self.content_type else None,
            "state": self.state.value,
            "dirty": self.body is not None and self.body != self.last_committed_body,
            "last_result": self.last_result.as_payload() if self.last_result else None,
            "last_error": self.last_error,
        }


class SyncEngine:
    """Coordinates debounce, auto-rename, save and version history for sessions.

    Args:
        vault: Vault the documents live in.
        versions: History log receiving one snapshot per successful save.
        debounce_seconds: Quiet period after the last edit before committing.
        rename_policy: ``"soft"`` logs failed auto-renames and saves at the old
            path; ``"hard"`` reports them as commit errors and writes nothing.
        on_commit: Optional listener called with every settled commit result
            that still applies to its session.
    """

    def __init__(
        self,
        vault: VaultMetadata,
        versions: VersionStore,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        rename_policy: str = DEFAULT_RENAME_POLICY,
        on_commit: Optional[CommitListener] = None,
    ) -> None:
        if rename_policy not in RENAME_POLICIES:
            raise ValueError(f"Unknown rename policy '{rename_policy}'")
        self.vault = vault
        self.versions = versions
        self.debounce_seconds = debounce_seconds
        self.rename_policy = rename_policy
        self.on_commit = on_commit

    # ==========================================================================
    # EDITING
    # ==========================================================================

    def on_edit(self, session: SyncSession, body: str) -> None:
        """Record the latest body and (re)arm the debounce timer.

        Never blocks. Must be called from within the running event loop.
        """
        session.body = body
        if self._cancel_pending(session):
            logger.debug("Re-armed debounce timer for session '%s'", session.session_id)
        session._pending = asyncio.get_running_loop().create_task(self._debounce(session))

    def restore_version(self, session: SyncSession, version: Version) -> str:
        """Load a historical body into the session as if it had just been typed.

        The restore goes through the normal debounce and commit cycle, so it
        appends a new version instead of rewriting history.

        Raises:
            NotFound: If the session has no active document.
        """
        if not session.has_document:
            raise NotFound("No active document to restore a version into.")
        logger.info(
            "Restoring version %d into '%s' (session '%s')",
            version.version_id,
            session.current_path,
            session.session_id,
        )
        self.on_edit(session, version.body)
        return version.body

    async def flush(self, session: SyncSession) -> Optional[CommitResult]:
        """Commit a pending edit now instead of waiting out the window.

        Returns:
            The result of the commit that made the session's latest body
            durable, or the last known result when nothing was pending.
        """
        pending = session._pending
        if pending is not None and not pending.done():
            pending.cancel()
            session._pending = None
            await self._settle(session)
            return await asyncio.shield(self._start_commit(session))

        in_flight = session._in_flight
        if in_flight is not None and not in_flight.done():
            return await asyncio.shield(in_flight)

        return session.last_result

    async def wait_idle(self, session: SyncSession) -> None:
        """Wait until the session has neither a pending timer nor a running commit."""
        while True:
            tasks = {
                task
                for task in (session._pending, session._in_flight)
                if task is not None and not task.done()
            }
            if not tasks:
                return
            await asyncio.wait(tasks)

    # ==========================================================================
    # DOCUMENT LIFECYCLE
    # ==========================================================================

    async def create_document(
        self,
        folder: Optional[str],
        content_type: ContentType = ContentType.NOTE,
    ) -> str:
        """Create an ``Untitled-<n>`` document in ``folder`` and return its path.

        Does not open a session on the new document.
        """
        payload = await asyncio.to_thread(
            document_store.create_document, self.vault, folder, content_type
        )
        return payload["path"]

    async def open_document(self, session: SyncSession, path: str) -> str:
        """Make ``path`` the session's active document and return its body.

        Any timer armed for the previous document is cancelled outright.

        Raises:
            InvalidPath: If ``path`` is malformed or not a document.
            NotFound: If no document exists at ``path``. The session is left
                untouched in that case.
        """
        payload = await asyncio.to_thread(document_store.read_document, self.vault, path)

        self._cancel_pending(session)
        session.epoch += 1
        session.current_path = payload["path"]
        session.content_type = ContentType(payload["content_type"])
        session.body = payload["body"]
        session.last_committed_body = payload["body"]
        session.last_error = None
        session.last_result = None
        logger.debug("Session '%s' opened '%s'", session.session_id, session.current_path)
        return payload["body"]

    async def delete_document(self, session: SyncSession, path: str) -> dict[str, Any]:
        """Recursively delete ``path``; detach the session if it pointed inside it.

        Raises:
            InvalidPath: If ``path`` is malformed or is the vault root.
            NotFound: If nothing exists at ``path``.
        """
        target = await self.detach(session, path)
        return await asyncio.to_thread(document_store.delete_path, self.vault, target)

    async def settle_path(self, session: SyncSession, path: str) -> str:
        """Let a commit already running for ``session`` land before ``path`` is moved or deleted.

        Returns:
            The canonical form of ``path``, or the session's new path when the
            settled commit auto-renamed the document that was at exactly ``path``.
        """
        canonical = path_codec.normalize(path)
        if session.state is not SessionState.COMMITTING:
            return canonical

        await self._settle(session)
        current = session.current_path
        result = session.last_result
        if (
            current is not None
            and result is not None
            and result.renamed_from == canonical
            and result.path == current
        ):
            logger.debug("'%s' was renamed to '%s' by a running commit", canonical, current)
            return current
        return canonical

    async def detach(self, session: SyncSession, path: str) -> str:
        """Prepare ``session`` for the deletion of ``path``.

        A pending edit of a document under ``path`` is dropped, a running
        commit is waited for so it cannot write the document back afterwards,
        and the session is released when its document is affected.

        Returns:
            The path to delete (see :meth:`settle_path`).
        """
        canonical = path_codec.normalize(path)
        if session.current_path is not None and path_codec.is_within(session.current_path, canonical):
            self._cancel_pending(session)
        target = await self.settle_path(session, canonical)
        self.release(session, target)
        return target

    def release(self, session: SyncSession, path: str) -> bool:
        """Clear the session if its document is ``path`` or lives under it.

        Returns:
            ``True`` when the session was detached.
        """
        if session.current_path is None or not path_codec.is_within(session.current_path, path):
            return False
        self._reset(session)
        return True

    def relocate(self, session: SyncSession, old_path: str, new_path: str) -> bool:
        """Follow an external rename of the session's document or one of its folders.

        Callers move the document only after :meth:`settle_path`, so no running
        commit still writes to the old location.

        Returns:
            ``True`` when the session's path was updated.
        """
        current = session.current_path
        if current is None or not path_codec.is_within(current, old_path):
            return False
        old_canonical = path_codec.normalize(old_path)
        suffix = current[len(old_canonical):]
        if session._in_flight is not None and not session._in_flight.done():
            # The running commit started at the old path; keep it from moving the session back
            session.epoch += 1
        session.current_path = path_codec.normalize(path_codec.normalize(new_path) + suffix)
        logger.debug(
            "Session '%s' followed rename '%s' -> '%s'",
            session.session_id,
            current,
            session.current_path,
        )
        return True

    async def close_session(self, session: SyncSession) -> Optional[CommitResult]:
        """Flush pending work, then tear the session down."""
        result = await self.flush(session)
        self._reset(session)
        return result

    # ==========================================================================
    # INTERNALS
    # ==========================================================================

    def _reset(self, session: SyncSession) -> None:
        self._cancel_pending(session)
        session.epoch += 1
        logger.debug("Session '%s' released '%s'", session.session_id, session.current_path)
        session.current_path = None
        session.content_type = None
        session.body = None
        session.last_committed_body = None
        session.last_error = None

    @staticmethod
    def _cancel_pending(session: SyncSession) -> bool:
        pending = session._pending
        session._pending = None
        if pending is not None and not pending.done():
            pending.cancel()
            return True
        return False

    @staticmethod
    async def _settle(session: SyncSession) -> None:
        # asyncio.wait never cancels the awaited commit, even if this waiter is
        # cancelled by a newer edit.
        while session._in_flight is not None and not session._in_flight.done():
            await asyncio.wait({session._in_flight})

    async def _debounce(self, session: SyncSession) -> None:
        await asyncio.sleep(self.debounce_seconds)
        await self._settle(session)
        session._pending = None
        self._start_commit(session)

    def _start_commit(self, session: SyncSession) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._commit(
                session,
                session.body,
                session.epoch,
                session.current_path,
                session.content_type,
            )
        )
        session._in_flight = task
        return task

    async def _commit(
        self,
        session: SyncSession,
        body: Optional[str],
        epoch: int,
        started_path: Optional[str],
        content_type: Optional[ContentType],
    ) -> CommitResult:
        if started_path is None or body is None:
            return self._report(session, epoch, body, CommitResult(status=CommitStatus.SKIPPED))

        target = started_path
        renamed_from = None
        content_type = content_type or path_codec.content_type_for(started_path)

        title = extract_title(content_type, body)
        segment = path_codec.title_to_segment(title) if title else None
        if segment:
            candidate = path_codec.with_extension(
                path_codec.join(path_codec.folder_of(started_path), segment),
                path_codec.extension_for(content_type),
            )
            if candidate != started_path:
                try:
                    await asyncio.to_thread(
                        document_store.rename_document, self.vault, started_path, candidate
                    )
                except (RenameFailure, NameCollision, NotFound, InvalidPath) as exc:
                    if self.rename_policy == "hard":
                        logger.error("Rename of '%s' to '%s' failed: %s", started_path, candidate, exc)
                        result = CommitResult(
                            status=CommitStatus.ERROR,
                            path=started_path,
                            error=f"Rename failed: {exc}",
                        )
                        return self._report(session, epoch, body, result)
                    logger.warning(
                        "Keeping '%s' after failed rename to '%s': %s", started_path, candidate, exc
                    )
                else:
                    target = candidate
                    renamed_from = started_path
                    if session.epoch == epoch:
                        session.current_path = candidate

        try:
            payload = await asyncio.to_thread(
                document_store.save_document, self.vault, self.versions, target, body
            )
        except (StorageWriteFailure, InvalidPath, NotFound) as exc:
            logger.error("Saving '%s' failed: %s", target, exc)
            result = CommitResult(
                status=CommitStatus.ERROR,
                path=target,
                renamed_from=renamed_from,
                error=str(exc),
            )
        else:
            result = CommitResult(
                status=CommitStatus.SAVED,
                path=target,
                version_id=payload["version_id"],
                renamed_from=renamed_from,
            )
        return self._report(session, epoch, body, result)

    def _report(
        self,
        session: SyncSession,
        epoch: int,
        body: Optional[str],
        result: CommitResult,
    ) -> CommitResult:
        if session.epoch != epoch:
            logger.debug(
                "Discarding commit result for '%s': session '%s' moved on",
                result.path,
                session.session_id,
            )
            return CommitResult(
                status=CommitStatus.DISCARDED,
                path=result.path,
                version_id=result.version_id,
                renamed_from=result.renamed_from,
                error=result.error,
            )

        session.last_result = result
        if result.status is CommitStatus.SAVED:
            session.last_committed_body = body
            session.last_error = None
        elif result.status is CommitStatus.ERROR:
            session.last_error = result.error

        if self.on_commit is not None:
            try:
                self.on_commit(session, result)
            except Exception:
                logger.exception("Commit listener failed for session '%s'", session.session_id)
        return result
