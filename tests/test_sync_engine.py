"""Tests for the debounced save / auto-rename / versioning engine."""

import asyncio
import json
import threading

import pytest

from vault_sync.core import document_store
from vault_sync.core.document_store import read_document, write_document
from vault_sync.core.sync_engine import SyncEngine, SyncSession
from vault_sync.core.version_store import VersionStore
from vault_sync.data_models import CommitStatus, ContentType, SessionState, VaultMetadata
from vault_sync.errors import NotFound, StorageWriteFailure

DEBOUNCE = 0.05


@pytest.fixture
def test_vault(tmp_path):
    vault_path = tmp_path / "vault"
    vault_path.mkdir()
    return VaultMetadata(name="test", path=vault_path, description="Test vault", exists=True)


@pytest.fixture
def commits():
    return []


@pytest.fixture
def engine(test_vault, commits):
    return SyncEngine(
        vault=test_vault,
        versions=VersionStore(test_vault.path / ".vault_sync" / "versions.jsonl"),
        debounce_seconds=DEBOUNCE,
        on_commit=lambda session, result: commits.append(result),
    )


async def _open_new(engine, session, folder=None, content_type=ContentType.NOTE):
    path = await engine.create_document(folder, content_type)
    await engine.open_document(session, path)
    return path


async def _wait_for_state(session, state):
    for _ in range(500):
        if session.state is state:
            return
        await asyncio.sleep(0.005)
    raise AssertionError(f"session never reached {state}")


class _GatedSave:
    """Replaces save_document with a version that blocks until released."""

    def __init__(self):
        self.release = threading.Event()
        self.original = document_store.save_document

    def __call__(self, *args, **kwargs):
        self.release.wait(5)
        return self.original(*args, **kwargs)


class TestDebounce:
    @pytest.mark.asyncio
    async def test_burst_of_edits_commits_last_body_once(self, engine, commits):
        session = SyncSession()
        path = await _open_new(engine, session)

        for index in range(5):
            engine.on_edit(session, f"draft {index}")
            assert session.state is SessionState.DEBOUNCING
        await engine.wait_idle(session)

        versions = engine.versions.list_recent(path, 10)
        assert [version.body for version in versions] == ["draft 4"]
        assert len(commits) == 1
        assert commits[0].status is CommitStatus.SAVED
        assert session.state is SessionState.IDLE
        assert session.last_committed_body == "draft 4"

    @pytest.mark.asyncio
    async def test_edit_without_open_document_is_skipped(self, engine, commits):
        session = SyncSession()
        engine.on_edit(session, "# Orphan")
        await engine.wait_idle(session)

        assert commits[0].status is CommitStatus.SKIPPED
        assert list(engine.vault.path.glob("*.md")) == []

    @pytest.mark.asyncio
    async def test_flush_commits_immediately(self, engine):
        engine.debounce_seconds = 60
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "now")
        result = await engine.flush(session)

        assert result.status is CommitStatus.SAVED
        assert read_document(engine.vault, path)["body"] == "now"

    @pytest.mark.asyncio
    async def test_sessions_commit_independently(self, engine):
        first, second = SyncSession("one"), SyncSession("two")
        first_path = await _open_new(engine, first)
        second_path = await _open_new(engine, second)

        engine.on_edit(first, "first body")
        engine.on_edit(second, "second body")
        await asyncio.gather(engine.wait_idle(first), engine.wait_idle(second))

        assert read_document(engine.vault, first_path)["body"] == "first body"
        assert read_document(engine.vault, second_path)["body"] == "second body"


class TestAutoRename:
    @pytest.mark.asyncio
    async def test_heading_renames_untitled_note(self, engine, commits):
        session = SyncSession()
        await engine.open_document(session, document_store.write_document(engine.vault, "Untitled-123.md", ""))

        engine.on_edit(session, "<h1>Meeting Notes</h1><p>Agenda</p>")
        await engine.wait_idle(session)

        assert session.current_path == "Meeting Notes.md"
        assert not (engine.vault.path / "Untitled-123.md").exists()
        assert read_document(engine.vault, "Meeting Notes.md")["body"].startswith("<h1>Meeting Notes")
        assert len(engine.versions.list_recent("Meeting Notes.md", 10)) == 1
        assert commits[0].renamed_from == "Untitled-123.md"

    @pytest.mark.asyncio
    async def test_rename_stays_in_parent_folder(self, engine):
        document_store.create_folder(engine.vault, "Projects")
        session = SyncSession()
        await _open_new(engine, session, folder="Projects")

        engine.on_edit(session, "# Roadmap\n")
        await engine.wait_idle(session)

        assert session.current_path == "Projects/Roadmap.md"

    @pytest.mark.asyncio
    async def test_board_title_renames_board(self, engine):
        session = SyncSession()
        await _open_new(engine, session, content_type=ContentType.BOARD)

        engine.on_edit(session, json.dumps({"title": "Sprint Plan", "nodes": [], "edges": []}))
        await engine.wait_idle(session)

        assert session.current_path == "Sprint Plan.canvas"

    @pytest.mark.asyncio
    async def test_unchanged_title_does_not_rename(self, engine, commits):
        session = SyncSession()
        await engine.open_document(session, write_document(engine.vault, "Ideas.md", "# Ideas"))

        engine.on_edit(session, "# Ideas\n\nmore")
        await engine.wait_idle(session)

        assert session.current_path == "Ideas.md"
        assert commits[0].renamed_from is None

    @pytest.mark.asyncio
    async def test_collision_keeps_old_path_and_both_bodies(self, engine, commits):
        write_document(engine.vault, "Meeting Notes.md", "someone else's notes")
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "# Meeting Notes\nmine")
        await engine.wait_idle(session)

        assert session.current_path == path
        assert commits[0].status is CommitStatus.SAVED
        assert session.last_error is None
        assert read_document(engine.vault, path)["body"] == "# Meeting Notes\nmine"
        assert read_document(engine.vault, "Meeting Notes.md")["body"] == "someone else's notes"
        assert len(engine.versions.list_recent(path, 10)) == 1

    @pytest.mark.asyncio
    async def test_hard_policy_reports_rename_failure(self, engine, commits):
        engine.rename_policy = "hard"
        write_document(engine.vault, "Taken.md", "occupied")
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "# Taken")
        await engine.wait_idle(session)

        assert commits[0].status is CommitStatus.ERROR
        assert "Rename failed" in session.last_error
        assert read_document(engine.vault, path)["body"] == ""
        assert engine.versions.list_recent(path, 10) == []

    @pytest.mark.asyncio
    async def test_history_stays_with_old_path_after_rename(self, engine):
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "untitled draft")
        await engine.wait_idle(session)
        engine.on_edit(session, "# Named")
        await engine.wait_idle(session)

        assert [v.body for v in engine.versions.list_recent(path, 10)] == ["untitled draft"]
        assert [v.body for v in engine.versions.list_recent("Named.md", 10)] == ["# Named"]


class TestFailures:
    @pytest.mark.asyncio
    async def test_write_failure_is_surfaced(self, engine, commits, monkeypatch):
        def failing_save(*args, **kwargs):
            raise StorageWriteFailure("disk full")

        monkeypatch.setattr(document_store, "save_document", failing_save)
        session = SyncSession()
        await _open_new(engine, session)

        engine.on_edit(session, "lost?")
        await engine.wait_idle(session)

        assert commits[0].status is CommitStatus.ERROR
        assert session.last_error == "disk full"
        assert session.last_committed_body == ""


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_edit_during_commit_waits_for_it(self, engine, commits, monkeypatch):
        gate = _GatedSave()
        monkeypatch.setattr(document_store, "save_document", gate)
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "first")
        await _wait_for_state(session, SessionState.COMMITTING)
        engine.on_edit(session, "second")
        await asyncio.sleep(DEBOUNCE * 3)

        # The new timer has elapsed but must not start a second commit yet
        assert session.state is SessionState.COMMITTING
        assert commits == []

        gate.release.set()
        await engine.wait_idle(session)

        assert [result.status for result in commits] == [CommitStatus.SAVED, CommitStatus.SAVED]
        assert [v.body for v in engine.versions.list_recent(path, 10)] == ["second", "first"]

    @pytest.mark.asyncio
    async def test_result_of_stale_commit_is_discarded(self, engine, commits, monkeypatch):
        gate = _GatedSave()
        monkeypatch.setattr(document_store, "save_document", gate)
        other = write_document(engine.vault, "Other.md", "other body")
        session = SyncSession()
        await _open_new(engine, session)

        engine.on_edit(session, "# Renamed While Moving")
        await _wait_for_state(session, SessionState.COMMITTING)
        await engine.open_document(session, other)
        gate.release.set()
        await engine.wait_idle(session)

        assert commits == []
        assert session.current_path == "Other.md"
        assert session.last_result is None
        # The in-flight commit still finished its write
        assert read_document(engine.vault, "Renamed While Moving.md")["body"] == "# Renamed While Moving"

    @pytest.mark.asyncio
    async def test_delete_waits_for_running_commit(self, engine, monkeypatch):
        gate = _GatedSave()
        monkeypatch.setattr(document_store, "save_document", gate)
        document_store.create_folder(engine.vault, "Projects")
        session = SyncSession()
        path = await _open_new(engine, session, folder="Projects")

        engine.on_edit(session, "late write")
        await _wait_for_state(session, SessionState.COMMITTING)
        deleting = asyncio.create_task(engine.delete_document(session, "Projects"))
        await asyncio.sleep(DEBOUNCE)
        assert not deleting.done()

        gate.release.set()
        await deleting
        await engine.wait_idle(session)

        assert session.current_path is None
        assert not (engine.vault.path / "Projects").exists()
        with pytest.raises(NotFound):
            read_document(engine.vault, path)

    @pytest.mark.asyncio
    async def test_delete_follows_rename_made_by_running_commit(self, engine, monkeypatch):
        gate = _GatedSave()
        monkeypatch.setattr(document_store, "save_document", gate)
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "# Titled Meanwhile")
        await _wait_for_state(session, SessionState.COMMITTING)
        deleting = asyncio.create_task(engine.delete_document(session, path))
        await asyncio.sleep(DEBOUNCE)
        gate.release.set()
        deleted = await deleting

        assert deleted["path"] == "Titled Meanwhile.md"
        assert list(engine.vault.path.glob("*.md")) == []

    @pytest.mark.asyncio
    async def test_manual_rename_after_running_commit_settles(self, engine, monkeypatch):
        gate = _GatedSave()
        monkeypatch.setattr(document_store, "save_document", gate)
        document_store.create_folder(engine.vault, "Drafts")
        session = SyncSession()
        await _open_new(engine, session, folder="Drafts")

        engine.on_edit(session, "draft body")
        await _wait_for_state(session, SessionState.COMMITTING)
        settling = asyncio.create_task(engine.settle_path(session, "Drafts"))
        await asyncio.sleep(DEBOUNCE)
        assert not settling.done()

        gate.release.set()
        old_path = await settling
        document_store.rename_document(engine.vault, old_path, "Archive/Drafts")
        assert engine.relocate(session, old_path, "Archive/Drafts")

        assert not (engine.vault.path / "Drafts").exists()
        assert session.current_path == "Archive/Drafts/Untitled-1.md"
        assert read_document(engine.vault, session.current_path)["body"] == "draft body"

    @pytest.mark.asyncio
    async def test_concurrent_commits_onto_same_title_keep_both_documents(self, engine):
        first, second = SyncSession("one"), SyncSession("two")
        await _open_new(engine, first)
        await _open_new(engine, second)

        engine.on_edit(first, "# Shared\none")
        engine.on_edit(second, "# Shared\ntwo")
        await asyncio.gather(engine.wait_idle(first), engine.wait_idle(second))

        paths = {first.current_path, second.current_path}
        assert "Shared.md" in paths
        assert len(paths) == 2
        bodies = {read_document(engine.vault, path)["body"] for path in paths}
        assert bodies == {"# Shared\none", "# Shared\ntwo"}


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_open_missing_document_keeps_session(self, engine):
        session = SyncSession()
        path = await _open_new(engine, session)

        with pytest.raises(NotFound):
            await engine.open_document(session, "Missing.md")
        assert session.current_path == path

    @pytest.mark.asyncio
    async def test_open_cancels_pending_edit(self, engine):
        session = SyncSession()
        first = await _open_new(engine, session)
        second = await engine.create_document(None)

        engine.on_edit(session, "never saved")
        await engine.open_document(session, second)
        await asyncio.sleep(DEBOUNCE * 3)

        assert read_document(engine.vault, first)["body"] == ""
        assert engine.versions.list_recent(first, 10) == []

    @pytest.mark.asyncio
    async def test_deleting_folder_with_active_document_clears_session(self, engine):
        document_store.create_folder(engine.vault, "Projects")
        session = SyncSession()
        path = await _open_new(engine, session, folder="Projects")

        engine.on_edit(session, "pending")
        await engine.delete_document(session, "Projects")
        await asyncio.sleep(DEBOUNCE * 3)

        assert session.current_path is None
        assert session.state is SessionState.IDLE
        with pytest.raises(NotFound):
            read_document(engine.vault, path)
        assert not (engine.vault.path / "Projects").exists()

    @pytest.mark.asyncio
    async def test_deleting_unrelated_path_keeps_session(self, engine):
        session = SyncSession()
        path = await _open_new(engine, session)
        other = write_document(engine.vault, "Other.md", "")

        await engine.delete_document(session, other)
        assert session.current_path == path

    @pytest.mark.asyncio
    async def test_restore_version_appends_new_version(self, engine):
        session = SyncSession()
        path = await _open_new(engine, session)
        engine.on_edit(session, "original")
        await engine.wait_idle(session)
        engine.on_edit(session, "rewritten")
        await engine.wait_idle(session)

        history = engine.versions.list_recent(path, 10)
        original = history[-1]
        engine.restore_version(session, original)
        await engine.flush(session)

        assert read_document(engine.vault, path)["body"] == "original"
        updated = engine.versions.list_recent(path, 10)
        assert len(updated) == len(history) + 1
        assert updated[0].body == "original"
        assert updated[0].version_id > original.version_id

    @pytest.mark.asyncio
    async def test_restore_without_document(self, engine):
        version_id = engine.versions.append("Note.md", "body")
        with pytest.raises(NotFound):
            engine.restore_version(SyncSession(), engine.versions.get(version_id))

    @pytest.mark.asyncio
    async def test_relocate_follows_folder_rename(self, engine):
        document_store.create_folder(engine.vault, "Drafts")
        session = SyncSession()
        await _open_new(engine, session, folder="Drafts")

        document_store.rename_document(engine.vault, "Drafts", "Archive/Drafts")
        assert engine.relocate(session, "Drafts", "Archive/Drafts")
        assert session.current_path == "Archive/Drafts/Untitled-1.md"

    @pytest.mark.asyncio
    async def test_close_session_flushes(self, engine):
        engine.debounce_seconds = 60
        session = SyncSession()
        path = await _open_new(engine, session)

        engine.on_edit(session, "closing words")
        result = await engine.close_session(session)

        assert result.status is CommitStatus.SAVED
        assert session.current_path is None
        assert read_document(engine.vault, path)["body"] == "closing words"
