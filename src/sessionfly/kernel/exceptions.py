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
"""Exception hierarchy for sessionfly.

All library exceptions inherit from SessionFlyException so callers can
handle every session error in one place.

Categories:
- BusinessException: programmer and usage errors (e.g. a session used before it was started)
- InfrastructureException: persistence failures in a record store
"""

from __future__ import annotations

from typing import Any


class SessionFlyException(Exception):
    """Base exception for all sessionfly errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "SESSION_NOT_STARTED").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict[str, Any] = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(SessionFlyException):
    """Usage errors raised by the session API."""


class SessionNotStartedException(BusinessException):
    """A session accessor was called before the session was loaded."""

    def __init__(self, message: str = "Session has not been started", **kwargs: Any) -> None:
        kwargs.setdefault("code", "SESSION_NOT_STARTED")
        super().__init__(message, **kwargs)


class SessionAlreadyStartedException(BusinessException):
    """A session instance was loaded twice; a fresh instance is needed per request."""

    def __init__(self, message: str = "Session has already been started", **kwargs: Any) -> None:
        kwargs.setdefault("code", "SESSION_ALREADY_STARTED")
        super().__init__(message, **kwargs)


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(SessionFlyException):
    """Infrastructure failures: file system, database, cache, network."""


class PersistenceException(InfrastructureException):
    """A record store failed to read, write, destroy or collect session records."""
