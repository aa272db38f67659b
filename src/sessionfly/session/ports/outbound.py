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
"""Record store protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RecordStore(Protocol):
    """Persistence contract for session records.

    A record is the triple (identifier, payload, expires_at). Every backend
    (in-memory, file, Redis) implements these four operations:

    - ``read`` never returns a record whose expiry has passed.
    - ``write`` upserts the payload and sets ``expires_at = now + lifetime``,
      so each successful write slides the expiry forward.
    - ``destroy`` is idempotent.
    - ``gc`` removes every record with ``expires_at <= now`` and returns the
      number removed. It must not block unrelated reads and writes for the
      length of the sweep, and a record written during the sweep ends up
      either fully kept or fully removed.

    Failures raise :class:`~sessionfly.kernel.exceptions.PersistenceException`.
    """

    async def read(self, session_id: str) -> dict[str, Any] | None: ...

    async def write(self, session_id: str, payload: dict[str, Any], lifetime: int) -> None: ...

    async def destroy(self, session_id: str) -> None: ...

    async def gc(self, lifetime: int) -> int: ...
