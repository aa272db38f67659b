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
"""In-memory record store with TTL-based expiry."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable
from typing import Any, NamedTuple, cast

from sessionfly.kernel.exceptions import PersistenceException

_GC_BATCH_SIZE = 500


class _Record(NamedTuple):
    raw: str
    expires_at: float


class InMemoryRecordStore:
    """Record store holding JSON-encoded payloads in a dict.

    Suitable for development, testing, and single-process applications.
    Payloads are encoded on write, so stored records never alias the
    caller's working bag and non-JSON values fail at write time just as
    they would against the file or Redis stores.

    Every operation runs without awaiting while it touches the dict, which
    makes each one atomic on the event loop. ``gc`` sweeps a snapshot in
    batches and only deletes an entry if it is still the exact record it
    found expired, so a concurrent ``write`` always wins.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: dict[str, _Record] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._records)

    def expires_at(self, session_id: str) -> float | None:
        """Return the stored expiry timestamp of a record, expired or not."""
        record = self._records.get(session_id)
        return record.expires_at if record is not None else None

    async def read(self, session_id: str) -> dict[str, Any] | None:
        """Return the payload, or ``None`` if missing or expired."""
        record = self._records.get(session_id)
        if record is None or record.expires_at <= self._clock():
            return None
        return cast(dict[str, Any], json.loads(record.raw))

    async def write(self, session_id: str, payload: dict[str, Any], lifetime: int) -> None:
        """Store the payload and slide its expiry to ``now + lifetime``."""
        try:
            raw = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise PersistenceException(
                f"Session payload is not serializable: {exc}",
                code="SESSION_WRITE_FAILED",
                context={"session_id": session_id, "operation": "write"},
            ) from exc
        self._records[session_id] = _Record(raw, self._clock() + lifetime)

    async def destroy(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    async def gc(self, lifetime: int) -> int:
        """Remove every record whose expiry has passed. Returns the count removed."""
        now = self._clock()
        removed = 0
        snapshot = list(self._records.items())
        for index, (session_id, record) in enumerate(snapshot, start=1):
            if record.expires_at <= now and self._records.get(session_id) is record:
                del self._records[session_id]
                removed += 1
            if index % _GC_BATCH_SIZE == 0:
                await asyncio.sleep(0)
        return removed
