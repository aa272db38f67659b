# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""File-backed record store: one JSON document per session."""

from __future__ import annotations

import asyncio
import json
import math
import os
import re
import tempfile
import time
import weakref
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from sessionfly.kernel.exceptions import PersistenceException

logger = structlog.get_logger("sessionfly.session")

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_FILE_PREFIX = "sess_"
_FILE_SUFFIX = ".json"


def _is_record(document: Any) -> bool:
    if not isinstance(document, dict) or not isinstance(document.get("payload"), dict):
        return False
    expires_at = document.get("expires_at")
    if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
        return False
    return math.isfinite(expires_at)


class FileRecordStore:
    """Stores each record as ``sess_<id>.json`` under *directory*.

    Document layout::

        {"expires_at": 1767225600.0, "payload": {"cart": [1, 2]}}

    Writes land in a temp file that is moved over the record with
    :func:`os.replace`, so readers see either the old or the new document.
    A write and a GC sweep touching the same identifier are serialised by a
    per-identifier lock; nothing locks the whole store.
    """

    def __init__(self, directory: str | Path, clock: Callable[[], float] = time.time) -> None:
        self._directory = Path(directory)
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, session_id: str) -> Path:
        if not _SAFE_ID_RE.match(session_id):
            raise PersistenceException(
                "Session identifier is not usable as a file name",
                code="SESSION_INVALID_KEY",
                context={"session_id": session_id},
            )
        return self._directory / f"{_FILE_PREFIX}{session_id}{_FILE_SUFFIX}"

    def _lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _load(self, path: Path) -> dict[str, Any] | None:
        """Read a record document; ``None`` when missing or not a well-formed record."""
        try:
            with open(path, encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("session_record_corrupt", path=str(path))
            return None
        if not _is_record(document):
            logger.warning("session_record_corrupt", path=str(path))
            return None
        return document

    async def read(self, session_id: str) -> dict[str, Any] | None:
        """Return the payload, or ``None`` if missing, corrupt, or expired."""
        path = self._path(session_id)
        try:
            document = await asyncio.to_thread(self._load, path)
        except OSError as exc:
            raise PersistenceException(
                f"Failed to read session record: {exc}",
                code="SESSION_READ_FAILED",
                context={"session_id": session_id, "operation": "read"},
            ) from exc
        if document is None or document["expires_at"] <= self._clock():
            return None
        return document["payload"]

    def _dump(self, path: Path, document: dict[str, Any]) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp_", suffix=_FILE_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def write(self, session_id: str, payload: dict[str, Any], lifetime: int) -> None:
        """Replace the record and slide its expiry to ``now + lifetime``."""
        path = self._path(session_id)
        document = {"expires_at": self._clock() + lifetime, "payload": payload}
        try:
            # Encode first so an unserializable payload never reaches the disk.
            json.dumps(document)
            async with self._lock(session_id):
                await asyncio.to_thread(self._dump, path, document)
        except (TypeError, ValueError, OSError) as exc:
            raise PersistenceException(
                f"Failed to write session record: {exc}",
                code="SESSION_WRITE_FAILED",
                context={"session_id": session_id, "operation": "write"},
            ) from exc

    async def destroy(self, session_id: str) -> None:
        path = self._path(session_id)
        try:
            async with self._lock(session_id):
                await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise PersistenceException(
                f"Failed to destroy session record: {exc}",
                code="SESSION_DESTROY_FAILED",
                context={"session_id": session_id, "operation": "destroy"},
            ) from exc

    def _list_ids(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        ids = [
            entry.name[len(_FILE_PREFIX) : -len(_FILE_SUFFIX)]
            for entry in os.scandir(self._directory)
            if entry.is_file() and entry.name.startswith(_FILE_PREFIX) and entry.name.endswith(_FILE_SUFFIX)
        ]
        return [session_id for session_id in ids if _SAFE_ID_RE.match(session_id)]

    def _remove_if_expired(self, path: Path, now: float) -> bool:
        document = self._load(path)
        if document is not None and document["expires_at"] > now:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    async def gc(self, lifetime: int) -> int:
        """Remove expired (and corrupt) records. Returns the count removed."""
        now = self._clock()
        removed = 0
        try:
            session_ids = await asyncio.to_thread(self._list_ids)
            for session_id in session_ids:
                path = self._path(session_id)
                async with self._lock(session_id):
                    if await asyncio.to_thread(self._remove_if_expired, path, now):
                        removed += 1
        except OSError as exc:
            raise PersistenceException(
                f"Session garbage collection failed: {exc}",
                code="SESSION_GC_FAILED",
                context={"operation": "gc", "removed": removed},
            ) from exc
        return removed
