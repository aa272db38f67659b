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
"""Redis-backed record store."""

from __future__ import annotations

import json
from typing import Any, cast

import structlog
from redis.exceptions import RedisError

from sessionfly.kernel.exceptions import PersistenceException

logger = structlog.get_logger("sessionfly.session")

_KEY_PREFIX = "sessionfly:session:"


class RedisRecordStore:
    """Record store backed by ``redis.asyncio``.

    Payloads are JSON-serialized and written with ``SET ... EX lifetime``,
    so Redis enforces expiry itself and :meth:`gc` has nothing to sweep.
    Keys are prefixed with ``sessionfly:session:`` for namespace isolation.
    """

    def __init__(self, client: Any, prefix: str = _KEY_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def _failure(self, operation: str, session_id: str, exc: Exception) -> PersistenceException:
        return PersistenceException(
            f"Redis {operation} failed for session record: {exc}",
            code=f"SESSION_{operation.upper()}_FAILED",
            context={"session_id": session_id, "operation": operation},
        )

    async def read(self, session_id: str) -> dict[str, Any] | None:
        """Retrieve and deserialize the payload."""
        try:
            raw = await self._client.get(self._key(session_id))
        except RedisError as exc:
            raise self._failure("read", session_id, exc) from exc
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError):
            logger.warning("session_record_corrupt", session_id=session_id)
            return None
        return cast(dict[str, Any], data) if isinstance(data, dict) else None

    async def write(self, session_id: str, payload: dict[str, Any], lifetime: int) -> None:
        """Serialize and store the payload with a TTL of *lifetime* seconds."""
        try:
            raw = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise self._failure("write", session_id, exc) from exc
        try:
            await self._client.set(self._key(session_id), raw.encode(), ex=lifetime)
        except RedisError as exc:
            raise self._failure("write", session_id, exc) from exc

    async def destroy(self, session_id: str) -> None:
        try:
            await self._client.delete(self._key(session_id))
        except RedisError as exc:
            raise self._failure("destroy", session_id, exc) from exc

    async def gc(self, lifetime: int) -> int:
        """Redis expires keys natively; nothing is left to remove."""
        return 0
