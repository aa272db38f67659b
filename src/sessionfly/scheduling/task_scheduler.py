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
"""TaskScheduler — runs periodic jobs on a cron or fixed-rate trigger."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sessionfly.scheduling.cron import CronExpression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ScheduledEntry:
    method: Callable[..., Any]
    cron: str | None = None
    fixed_rate: timedelta | None = None


def _job_key(method: Callable[..., Any]) -> tuple[int, Any]:
    # Bound methods are recreated on every attribute access; key on owner + function.
    owner = getattr(method, "__self__", None)
    func = getattr(method, "__func__", method)
    return id(owner), func


class TaskScheduler:
    """Runs each registered job in its own loop until :meth:`stop`.

    A fixed-rate job runs as soon as its loop starts and then every
    ``fixed_rate``; a run that overruns the rate delays the next one
    instead of overlapping it. A cron job waits for each fire time.

    A job is registered at most once: registering the same bound method
    again is a no-op, so wiring that runs more than once never ends up
    with two timers for one job.

    Usage::

        scheduler = TaskScheduler()
        scheduler.register(manager.run_garbage_collection, fixed_rate=timedelta(hours=1))
        await scheduler.start()
        # ... application runs ...
        await scheduler.stop()
    """

    def __init__(self) -> None:
        self._running: bool = False
        self._entries: dict[tuple[int, Any], _ScheduledEntry] = {}
        self._loop_tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return self._running

    def is_registered(self, method: Callable[..., Any]) -> bool:
        return _job_key(method) in self._entries

    def register(
        self,
        method: Callable[..., Any],
        *,
        cron: str | None = None,
        fixed_rate: timedelta | None = None,
    ) -> bool:
        """Register *method* for periodic execution.

        Exactly one of *cron* and *fixed_rate* must be given. Returns
        ``False`` if the method is already registered. When the scheduler
        is running, the new job's loop starts immediately.
        """
        if (cron is None) == (fixed_rate is None):
            raise ValueError("Exactly one of cron or fixed_rate must be specified")
        if cron is not None:
            CronExpression(cron)
        if fixed_rate is not None and fixed_rate.total_seconds() <= 0:
            raise ValueError(f"fixed_rate must be positive, got {fixed_rate}")

        key = _job_key(method)
        if key in self._entries:
            logger.debug("Job %s already registered, skipping", method)
            return False

        entry = _ScheduledEntry(method=method, cron=cron, fixed_rate=fixed_rate)
        self._entries[key] = entry
        if self._running:
            self._start_entry(entry)
        return True

    async def start(self) -> None:
        """Start the loops of every registered job."""
        if self._running:
            return
        self._running = True
        for entry in self._entries.values():
            self._start_entry(entry)

    async def stop(self) -> None:
        """Cancel every loop, including a run in progress, and wait for them to end."""
        self._running = False
        for task in self._loop_tasks:
            task.cancel()
        if self._loop_tasks:
            await asyncio.gather(*self._loop_tasks, return_exceptions=True)
        self._loop_tasks.clear()

    def _start_entry(self, entry: _ScheduledEntry) -> None:
        if entry.cron is not None:
            coro = self._run_cron_loop(entry.method, CronExpression(entry.cron))
        else:
            assert entry.fixed_rate is not None
            coro = self._run_fixed_rate_loop(entry.method, entry.fixed_rate)
        self._loop_tasks.append(asyncio.create_task(coro))

    async def _run_cron_loop(self, method: Callable[..., Any], cron: CronExpression) -> None:
        while self._running:
            await asyncio.sleep(cron.seconds_until_next())
            if not self._running:
                break
            await self._invoke(method)

    async def _run_fixed_rate_loop(self, method: Callable[..., Any], rate: timedelta) -> None:
        loop = asyncio.get_running_loop()
        while self._running:
            started = loop.time()
            await self._invoke(method)
            await asyncio.sleep(max(0.0, rate.total_seconds() - (loop.time() - started)))

    @staticmethod
    async def _invoke(method: Callable[..., Any]) -> None:
        """Run one job, sync or async. A failing run is logged; the loop keeps going."""
        try:
            result = method()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Scheduled job %s failed", method)
