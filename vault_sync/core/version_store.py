"""Append-only version history stored as JSON Lines."""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from vault_sync.data_models import Version
from vault_sync.errors import NotFound, StorageWriteFailure

logger = logging.getLogger(__name__)


class VersionStore:
    """Durable, append-only log of ``(path, body, timestamp)`` snapshots.

    Every line of the log file is one JSON object. Entries are never rewritten
    or removed; retention is left to whoever owns the file. Versions are keyed
    by the exact path they were saved under.
    """

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self._lock = threading.Lock()
        self._last_id = 0
        self._last_timestamp: Optional[datetime] = None
        for version in self._iter_log():
            self._last_id = max(self._last_id, version.version_id)
            if self._last_timestamp is None or version.timestamp > self._last_timestamp:
                self._last_timestamp = version.timestamp

    def _iter_log(self) -> Iterator[Version]:
        """Yield versions in append order, skipping torn or corrupt lines."""
        try:
            handle = self.log_path.open("r", encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError):
            return

        with handle:
            for line_number, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    entry = json.loads(line)
                    yield Version(
                        version_id=int(entry["id"]),
                        path=entry["path"],
                        body=entry["body"],
                        timestamp=datetime.fromisoformat(entry["timestamp"]),
                    )
                except (ValueError, KeyError, TypeError) as exc:
                    logger.warning(
                        "Skipping unreadable version entry at %s:%d: %s",
                        self.log_path,
                        line_number,
                        exc,
                    )

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            # Wall clock went backwards; history timestamps never do
            now = self._last_timestamp
        return now

    def append(self, path: str, body: str) -> int:
        """Append a snapshot and return its version id.

        The entry is flushed and fsynced before returning, so a subsequent
        :meth:`list_recent` in this process always sees it.

        Raises:
            StorageWriteFailure: If the log cannot be written.
        """
        with self._lock:
            version_id = self._last_id + 1
            timestamp = self._next_timestamp()
            record = json.dumps(
                {
                    "id": version_id,
                    "path": path,
                    "body": body,
                    "timestamp": timestamp.isoformat(),
                },
                ensure_ascii=False,
            )

            try:
                self.log_path.parent.mkdir(parents=True, exist_ok=True)
                with self.log_path.open("a", encoding="utf-8") as handle:
                    # A torn previous write must not swallow this record
                    if handle.tell() > 0 and not self._ends_with_newline():
                        handle.write("\n")
                    handle.write(record + "\n")
                    handle.flush()
                    os.fsync(handle.fileno())
            except OSError as exc:
                raise StorageWriteFailure(
                    f"Could not append version for '{path}' to {self.log_path}: {exc}"
                ) from exc

            self._last_id = version_id
            self._last_timestamp = timestamp

        logger.debug("Appended version %d for '%s'", version_id, path)
        return version_id

    def _ends_with_newline(self) -> bool:
        with self.log_path.open("rb") as handle:
            handle.seek(-1, os.SEEK_END)
            return handle.read(1) == b"\n"

    def list_recent(self, path: str, limit: int) -> list[Version]:
        """Return at most ``limit`` versions saved at exactly ``path``, newest first.

        Raises:
            ValueError: If ``limit`` is smaller than 1.
        """
        if limit < 1:
            raise ValueError("Version limit must be at least 1.")

        with self._lock:
            matches = [version for version in self._iter_log() if version.path == path]

        matches.sort(key=lambda version: version.version_id, reverse=True)
        return matches[:limit]

    def get(self, version_id: int) -> Version:
        """Look up a single version by id.

        Raises:
            NotFound: If no version with that id was recorded.
        """
        with self._lock:
            for version in self._iter_log():
                if version.version_id == version_id:
                    return version
        raise NotFound(f"Version {version_id} not found in {self.log_path}.")
