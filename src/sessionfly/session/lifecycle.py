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
"""SessionLifecycleManager — binds a session to a request and drives garbage collection."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import timedelta

import structlog

from sessionfly.kernel.exceptions import SessionNotStartedException
from sessionfly.scheduling.task_scheduler import TaskScheduler
from sessionfly.session.identifier import IdentifierPolicy
from sessionfly.session.ports.outbound import RecordStore
from sessionfly.session.properties import SessionProperties
from sessionfly.session.store import SessionStore

logger = structlog.get_logger("sessionfly.session")


class SessionLifecycleManager:
    """Runs the per-request session lifecycle and the periodic GC sweep.

    The manager is shared by all requests; the session of the request in
    flight lives in a :class:`~contextvars.ContextVar`, so concurrent
    requests never see each other's working bag. Hosts drive it through
    three entry points and nothing is registered implicitly::

        session_id = await manager.begin_request(request.cookies.get(manager.name))
        try:
            manager.session["cart"] = [1, 2]
        finally:
            await manager.end_request()

        await manager.run_garbage_collection()  # from a scheduler, hourly

    :meth:`request` wraps the first two as an ``async with`` block.
    """

    def __init__(
        self,
        handler: RecordStore,
        properties: SessionProperties | None = None,
        *,
        policy: IdentifierPolicy | None = None,
        maintenance_check: Callable[[], bool] | None = None,
    ) -> None:
        self._handler = handler
        self._properties = properties or SessionProperties()
        self._policy = policy or IdentifierPolicy()
        self._maintenance_check = maintenance_check or (lambda: self._properties.maintenance)
        self._current: ContextVar[SessionStore | None] = ContextVar(
            f"sessionfly_session_{self._properties.name}", default=None
        )
        self._gc_running = False

    @property
    def name(self) -> str:
        """The session cookie name."""
        return self._properties.name

    @property
    def handler(self) -> RecordStore:
        return self._handler

    @property
    def properties(self) -> SessionProperties:
        return self._properties

    @property
    def lifetime_seconds(self) -> int:
        """Record TTL: ``lifetime`` minutes in seconds, whatever ``expire_on_close`` says."""
        return self._properties.lifetime_seconds

    @property
    def cookie_ttl(self) -> int:
        """Cookie ``Max-Age`` in seconds; ``0`` means a browser-session cookie."""
        return 0 if self._properties.expire_on_close else self.lifetime_seconds

    def cookie_expires(self, now: float | None = None) -> int:
        """Absolute cookie expiry as a Unix timestamp, or ``0`` for a session cookie."""
        if self._properties.expire_on_close:
            return 0
        return int(now if now is not None else time.time()) + self.lifetime_seconds

    @property
    def session(self) -> SessionStore:
        """The session bound to the current request."""
        store = self._current.get()
        if store is None:
            raise SessionNotStartedException(
                "No session is bound to the current request", context={"session": self.name}
            )
        return store

    def create_store(self) -> SessionStore:
        """Return a new, unstarted store wired to this manager's handler and policy."""
        return SessionStore(self.name, self._handler, lifetime=self.lifetime_seconds, policy=self._policy)

    async def begin_request(self, inbound_id: str | None = None) -> str:
        """Load a fresh session for the current request and return its identifier.

        The caller binds the returned identifier to the client cookie with
        :attr:`cookie_ttl`.
        """
        store = self.create_store()
        session_id = await store.load(inbound_id)
        self._current.set(store)
        return session_id

    async def end_request(self) -> None:
        """Save the current request's session and unbind it.

        The session is unbound even when the save fails; the failure
        propagates to the caller.
        """
        store = self.session
        try:
            await store.save()
        finally:
            self._current.set(None)

    @asynccontextmanager
    async def request(self, inbound_id: str | None = None) -> AsyncIterator[SessionStore]:
        """Run a block with a loaded session, saving it on every exit path."""
        await self.begin_request(inbound_id)
        try:
            yield self.session
        finally:
            await self.end_request()

    async def run_garbage_collection(self) -> int | None:
        """Remove expired records from the handler.

        Returns the number of records removed, ``0`` if a sweep from this
        manager is already running, or ``None`` when the host is in
        maintenance mode and the sweep was skipped.
        """
        if self._maintenance_check():
            logger.info("session_gc_skipped", session=self.name, reason="maintenance")
            return None
        if self._gc_running:
            logger.info("session_gc_skipped", session=self.name, reason="already_running")
            return 0

        self._gc_running = True
        started = time.perf_counter()
        try:
            removed = await self._handler.gc(self.lifetime_seconds)
        finally:
            self._gc_running = False

        logger.info(
            "session_gc_completed",
            session=self.name,
            removed=removed,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return removed

    def register_garbage_collection(self, scheduler: TaskScheduler) -> bool:
        """Schedule :meth:`run_garbage_collection` on *scheduler*.

        Uses ``gc_cron`` when set, otherwise a fixed rate of
        ``gc_interval`` seconds. Returns ``False`` if already registered.
        """
        if self._properties.gc_cron:
            registered = scheduler.register(self.run_garbage_collection, cron=self._properties.gc_cron)
        else:
            registered = scheduler.register(
                self.run_garbage_collection,
                fixed_rate=timedelta(seconds=self._properties.gc_interval),
            )
        if registered:
            logger.info(
                "session_gc_registered",
                session=self.name,
                cron=self._properties.gc_cron,
                interval=self._properties.gc_interval,
            )
        return registered
