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
"""Session configuration properties."""

from __future__ import annotations

from dataclasses import dataclass

from sessionfly.core.config import config_properties


@config_properties(prefix="sessionfly.session")
@dataclass
class SessionProperties:
    """Settings bound from ``sessionfly.session.*``.

    ``lifetime`` is in minutes and drives the server-side record TTL.
    ``expire_on_close`` only changes the client cookie (no ``Max-Age``);
    the stored record still expires after ``lifetime`` minutes.
    """

    name: str = "sessionfly_session"
    lifetime: int = 1440
    expire_on_close: bool = False
    store: str = "memory"
    file_path: str = ".sessions"
    redis_url: str = "redis://localhost:6379/0"
    cookie_path: str = "/"
    cookie_domain: str | None = None
    secure: bool = False
    http_only: bool = True
    same_site: str = "lax"
    gc_interval: int = 3600
    gc_cron: str | None = None
    maintenance: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.lifetime, bool) or not isinstance(self.lifetime, int) or self.lifetime <= 0:
            raise ValueError(f"Session lifetime must be a positive number of minutes, got {self.lifetime!r}")
        if self.gc_interval <= 0:
            raise ValueError(f"Session GC interval must be positive, got {self.gc_interval!r}")

    @property
    def lifetime_seconds(self) -> int:
        return self.lifetime * 60
