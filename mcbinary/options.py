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

from typing import (Any,
                    Dict,
                    List,
                    Optional,
                    overload)

from mcbinary._utils import validate_uint
from mcbinary.exceptions import InvalidArgumentException

DEFAULT_MAX_STAT_FRAMES = 4096


def _positive_int(value, name):
    validate_uint(value, 2**31 - 1, name)
    if value == 0:
        raise InvalidArgumentException(message=f"{name} must be greater than 0")
    return value


class ProtoOptions(dict):
    """Available options to set when creating a :class:`~mcbinary.binary.BinaryProto`.

    Args:
        max_stat_frames (int, optional): Upper bound on the number of frames a single
            :meth:`~mcbinary.binary.BinaryProto.stat` call reads before giving up on the server.
            Defaults to 4096.
        vbucket (int, optional): vbucket id written into the header of every request.
            Defaults to 0.
    """

    _VALID_OPTS = {
        "max_stat_frames": _positive_int,
        "vbucket": lambda v, name: validate_uint(v, 0xffff, name),
    }

    _DEFAULTS = {
        "max_stat_frames": DEFAULT_MAX_STAT_FRAMES,
        "vbucket": 0,
    }

    @overload
    def __init__(
        self,
        max_stat_frames=None,  # type: Optional[int]
        vbucket=None,  # type: Optional[int]
    ):
        """ProtoOptions instance."""

    def __init__(self, **kwargs):
        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        for k, v in kwargs.items():
            validator = self._VALID_OPTS.get(k, None)
            if validator is None:
                raise InvalidArgumentException(message=f"Invalid option: {k}")
            validator(v, k)
        super().__init__(**kwargs)

    @property
    def max_stat_frames(self) -> int:
        return self.get("max_stat_frames", self._DEFAULTS["max_stat_frames"])

    @property
    def vbucket(self) -> int:
        return self.get("vbucket", self._DEFAULTS["vbucket"])

    def as_dict(self) -> Dict[str, Any]:
        opts = dict(self._DEFAULTS)
        opts.update(self)
        return opts

    @staticmethod
    def get_allowed_option_keys() -> List[str]:
        return list(ProtoOptions._VALID_OPTS.keys())
