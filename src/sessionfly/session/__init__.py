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
"""sessionfly session — server-side sessions with pluggable record stores.

Import concrete record stores from the adapter package::

    from sessionfly.session.adapters.memory import InMemoryRecordStore
    from sessionfly.session.adapters.file import FileRecordStore
    from sessionfly.session.adapters.redis import RedisRecordStore
"""

from sessionfly.session.factory import create_record_store, create_session_manager
from sessionfly.session.filter import SessionFilter
from sessionfly.session.identifier import IdentifierPolicy
from sessionfly.session.lifecycle import SessionLifecycleManager
from sessionfly.session.ports.outbound import RecordStore
from sessionfly.session.properties import SessionProperties
from sessionfly.session.store import SessionState, SessionStore

__all__ = [
    "IdentifierPolicy",
    "RecordStore",
    "SessionFilter",
    "SessionLifecycleManager",
    "SessionProperties",
    "SessionState",
    "SessionStore",
    "create_record_store",
    "create_session_manager",
]
