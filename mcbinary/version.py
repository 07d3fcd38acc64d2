#  Copyright 2016-2022. Couchbase, Inc.
#  All Rights Reserved.
#
#  Licensed under the Apache License, Version 2.0 (the "License")
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional, Tuple

# 1.6.21, 1.6.9-rc1, 1.4.5_4_gaa7839e, 2.0.0+build.7
_VERSION_RE = re.compile(r'^(\d+)\.(\d+)(?:\.(\d+))?(?:[-_]([0-9A-Za-z._-]+))?(?:\+([0-9A-Za-z.-]+))?$')


@total_ordering
@dataclass(frozen=True)
class Version:
    """Version of a memcached server, as returned by :meth:`~mcbinary.proto.ServerOperation.version`.

    Text that does not look like ``major.minor[.patch][-pre][+build]`` is kept as an opaque
    version: :attr:`is_semantic` is False and the numeric parts are 0.  The raw text is always
    available in :attr:`raw`.
    """
    major: int = 0
    minor: int = 0
    patch: int = 0
    pre_release: Optional[str] = None
    build: Optional[str] = None
    raw: str = field(default='', compare=False)
    is_semantic: bool = field(default=True, compare=False)

    @classmethod
    def parse(cls,
              text  # type: str
              ) -> Version:
        text = text.strip()
        match = _VERSION_RE.match(text)
        if match is None:
            return cls(pre_release=text or None, raw=text, is_semantic=False)

        major, minor, patch, pre_release, build = match.groups()
        return cls(major=int(major),
                   minor=int(minor),
                   patch=int(patch) if patch else 0,
                   pre_release=pre_release,
                   build=build,
                   raw=text)

    def as_tuple(self) -> Tuple[int, int, int]:
        return self.major, self.minor, self.patch

    def _sort_key(self):
        # a release sorts after its pre-releases
        return (self.major, self.minor, self.patch, self.pre_release is None, self.pre_release or '')

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self):
        if not self.is_semantic:
            return self.raw
        out = f'{self.major}.{self.minor}.{self.patch}'
        if self.pre_release:
            out += f'-{self.pre_release}'
        if self.build:
            out += f'+{self.build}'
        return out
