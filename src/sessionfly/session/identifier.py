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
"""Session identifier generation and validation."""

from __future__ import annotations

import secrets
import string

_ALPHABET = string.ascii_letters + string.digits

# log2(62) * 22 > 128 bits of entropy
_MIN_LENGTH = 22

DEFAULT_ID_LENGTH = 40


class IdentifierPolicy:
    """Issues and checks opaque session identifiers.

    Identifiers are ``length`` characters drawn from ``[A-Za-z0-9]`` with
    :mod:`secrets`, so they are safe in cookies and URLs without escaping.
    """

    def __init__(self, length: int = DEFAULT_ID_LENGTH) -> None:
        if length < _MIN_LENGTH:
            raise ValueError(f"Session identifier length must be at least {_MIN_LENGTH}, got {length}")
        self._length = length

    @property
    def length(self) -> int:
        return self._length

    def generate(self) -> str:
        """Return a fresh random identifier."""
        return "".join(secrets.choice(_ALPHABET) for _ in range(self._length))

    def validate(self, candidate: object) -> str | None:
        """Return *candidate* if it is a well-formed identifier, otherwise ``None``."""
        if not isinstance(candidate, str) or len(candidate) != self._length:
            return None
        if not (candidate.isascii() and candidate.isalnum()):
            return None
        return candidate
