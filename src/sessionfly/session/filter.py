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
"""SessionFilter — carries the session identifier in a cookie."""

from __future__ import annotations

from typing import Any

from sessionfly.session.lifecycle import SessionLifecycleManager
from sessionfly.web.filters import CallNext, OncePerRequestFilter


class SessionFilter(OncePerRequestFilter):
    """Loads the session before the handler runs and saves it afterwards.

    Reads the inbound identifier from the cookie named after the session,
    attaches the loaded :class:`SessionStore` to ``request.state.session``
    (it is also reachable as ``manager.session`` while the request runs),
    and saves it when the handler finishes, whether or not it raised.
    The cookie is re-sent on every response so its expiry follows the
    record's sliding expiry.
    """

    def __init__(self, manager: SessionLifecycleManager) -> None:
        self._manager = manager

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        cookies = getattr(request, "cookies", {})
        inbound_id = cookies.get(self._manager.name)

        async with self._manager.request(inbound_id) as session:
            request.state.session = session
            response = await call_next(request)

        properties = self._manager.properties
        response.set_cookie(
            key=self._manager.name,
            value=session.id,
            max_age=self._manager.cookie_ttl or None,
            path=properties.cookie_path,
            domain=properties.cookie_domain,
            secure=properties.secure,
            httponly=properties.http_only,
            samesite=properties.same_site,
        )
        return response
