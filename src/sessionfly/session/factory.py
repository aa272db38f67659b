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
"""Builds record stores and lifecycle managers from configuration."""

from __future__ import annotations

from pathlib import Path

import structlog

from sessionfly.core.config import Config
from sessionfly.session.lifecycle import SessionLifecycleManager
from sessionfly.session.ports.outbound import RecordStore
from sessionfly.session.properties import SessionProperties

logger = structlog.get_logger("sessionfly.session")


def create_record_store(properties: SessionProperties) -> RecordStore:
    """Return the record store selected by ``sessionfly.session.store``."""
    store_type = properties.store.lower()

    if store_type == "redis":
        import redis.asyncio as aioredis

        from sessionfly.session.adapters.redis import RedisRecordStore

        client = aioredis.from_url(properties.redis_url)
        logger.info("session_store_configured", store="redis")
        return RedisRecordStore(client=client)

    if store_type == "file":
        from sessionfly.session.adapters.file import FileRecordStore

        directory = Path(properties.file_path).expanduser()
        logger.info("session_store_configured", store="file", directory=str(directory))
        return FileRecordStore(directory)

    if store_type != "memory":
        raise ValueError(f"Unknown session store '{properties.store}' (expected memory, file or redis)")

    from sessionfly.session.adapters.memory import InMemoryRecordStore

    logger.info("session_store_configured", store="memory")
    return InMemoryRecordStore()


def create_session_manager(
    config: Config | None = None,
    handler: RecordStore | None = None,
) -> SessionLifecycleManager:
    """Bind :class:`SessionProperties` from *config* and build a manager.

    Without *handler*, the record store is chosen from configuration.
    """
    properties = (config or Config.defaults()).bind(SessionProperties)
    if handler is None:
        handler = create_record_store(properties)
    return SessionLifecycleManager(handler, properties)
