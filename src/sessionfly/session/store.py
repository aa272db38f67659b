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
"""SessionStore — the per-request working copy of one session."""

from __future__ import annotations

import enum
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any

import structlog

from sessionfly.kernel.exceptions import (
    PersistenceException,
    SessionAlreadyStartedException,
    SessionNotStartedException,
)
from sessionfly.session.identifier import IdentifierPolicy
from sessionfly.session.ports.outbound import RecordStore

logger = structlog.get_logger("sessionfly.session")


class SessionState(enum.Enum):
    UNSTARTED = "unstarted"
    STARTED = "started"
    SAVED = "saved"


class SessionStore(MutableMapping[str, Any]):
    """Holds a session's key/value bag for the length of one request.

    The bag is loaded from the :class:`RecordStore` by :meth:`load`, read
    and mutated in memory, and written back by :meth:`save`. Accessors do
    no I/O. A fresh instance is used for every request.

    Besides the named methods, the bag is reachable as a mapping::

        session["cart"] = [1, 2]
        "cart" in session
        del session["cart"]
        len(session)

    Item access follows the mapping contract: ``session["missing"]`` and
    ``del session["missing"]`` raise ``KeyError``. Use :meth:`get` and
    :meth:`remove` for the lenient forms that return ``None``.

    Attributes:
        id: The current session identifier (``None`` until loaded).
        name: The cookie name this session is bound to.
        lifetime: Record TTL in seconds passed to every write.
    """

    def __init__(
        self,
        name: str,
        handler: RecordStore,
        *,
        lifetime: int,
        policy: IdentifierPolicy | None = None,
    ) -> None:
        if lifetime <= 0:
            raise ValueError(f"Session lifetime must be positive, got {lifetime}")
        self._name = name
        self._handler = handler
        self._lifetime = lifetime
        self._policy = policy or IdentifierPolicy()
        self._id: str | None = None
        self._attributes: dict[str, Any] = {}
        self._state = SessionState.UNSTARTED
        self._pending_destroy: str | None = None

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def lifetime(self) -> int:
        return self._lifetime

    @property
    def handler(self) -> RecordStore:
        return self._handler

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._state is not SessionState.UNSTARTED

    @property
    def is_saved(self) -> bool:
        return self._state is SessionState.SAVED

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self, session_id: str | None = None) -> str:
        """Adopt *session_id* if valid (else issue a new one) and read its bag.

        An invalid identifier is discarded silently. A record that is
        missing, expired, or cannot be read yields an empty bag.
        Returns the identifier in use.
        """
        if self.is_started:
            raise SessionAlreadyStartedException(context={"session_id": self._id})

        valid_id = self._policy.validate(session_id) if session_id is not None else None
        if session_id is not None and valid_id is None:
            logger.info("session_identifier_rejected", session=self._name)
        self._id = valid_id or self._policy.generate()

        payload: dict[str, Any] | None = None
        if valid_id is not None:
            try:
                payload = await self._handler.read(valid_id)
            except PersistenceException as exc:
                logger.warning("session_read_failed", session=self._name, error=str(exc))

        self._attributes = dict(payload) if payload else {}
        self._state = SessionState.STARTED
        logger.debug(
            "session_started",
            session=self._name,
            resumed=payload is not None,
            keys=len(self._attributes),
        )
        return self._id

    start = load

    async def save(self) -> None:
        """Write the bag back with a fresh TTL.

        The record left behind by :meth:`regenerate_id` is destroyed only
        once the bag is stored under the new identifier, so a failed write
        leaves the old record in place. Calling it again re-persists the
        current bag. A failing write or destroy raises
        :class:`PersistenceException`.
        """
        session_id = self._require_started()

        await self._handler.write(session_id, dict(self._attributes), self._lifetime)

        if self._pending_destroy is not None:
            await self._handler.destroy(self._pending_destroy)
            self._pending_destroy = None

        self._state = SessionState.SAVED
        logger.debug("session_saved", session=self._name, keys=len(self._attributes))

    def regenerate_id(self, destroy: bool = True) -> str:
        """Switch to a new identifier, keeping the bag.

        With *destroy*, the record under the old identifier is removed on
        the next :meth:`save`. Use after a privilege change.
        """
        old_id = self._require_started()
        self._id = self._policy.generate()
        if destroy and self._pending_destroy is None:
            self._pending_destroy = old_id
        return self._id

    def invalidate(self) -> str:
        """Empty the bag and move to a new identifier; the old record goes on save."""
        self.flush()
        return self.regenerate_id(destroy=True)

    # ------------------------------------------------------------------
    # Bag accessors
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for *key*, or *default* if absent."""
        self._require_started()
        return self._attributes.get(key, default)

    def put(self, key: str | Mapping[str, Any], value: Any = None) -> None:
        """Set one key, or every key of a mapping."""
        self._require_started()
        if isinstance(key, Mapping):
            self._attributes.update(key)
        else:
            self._attributes[key] = value

    def exists(self, key: str) -> bool:
        """Return ``True`` if *key* is present, even with a ``None`` value."""
        self._require_started()
        return key in self._attributes

    def has(self, key: str) -> bool:
        """Return ``True`` if *key* is present and not ``None``."""
        self._require_started()
        return self._attributes.get(key) is not None

    def remove(self, key: str) -> Any:
        """Remove *key* if present and return its value (``None`` if absent)."""
        self._require_started()
        return self._attributes.pop(key, None)

    def pull(self, key: str, default: Any = None) -> Any:
        """Return the value for *key* and remove it."""
        self._require_started()
        return self._attributes.pop(key, default)

    def all(self) -> dict[str, Any]:
        """Return a shallow copy of the bag."""
        self._require_started()
        return dict(self._attributes)

    def replace(self, attributes: Mapping[str, Any]) -> None:
        """Merge *attributes* into the bag."""
        self.put(attributes)

    def flush(self) -> None:
        """Remove every key."""
        self._require_started()
        self._attributes.clear()

    # ------------------------------------------------------------------
    # MutableMapping
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        self._require_started()
        return self._attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.put(key, value)

    def __delitem__(self, key: str) -> None:
        self._require_started()
        del self._attributes[key]

    def __iter__(self) -> Iterator[str]:
        self._require_started()
        return iter(list(self._attributes))

    def __len__(self) -> int:
        self._require_started()
        return len(self._attributes)

    def __contains__(self, key: object) -> bool:
        self._require_started()
        return key in self._attributes

    def __repr__(self) -> str:
        return f"SessionStore(name={self._name!r}, id={self._id!r}, state={self._state.value})"

    def _require_started(self) -> str:
        if self._id is None:
            raise SessionNotStartedException(context={"session": self._name})
        return self._id
