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

from typing import Union

from mcbinary.exceptions import InvalidArgumentException

BytesLike = Union[bytes, bytearray, memoryview, str]


def to_bytes(value,  # type: BytesLike
             name='value'  # type: str
             ) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise InvalidArgumentException(message=f"Expected {name} to be bytes or str instead of {type(value).__name__}")


def validate_uint(value,  # type: int
                  maximum,  # type: int
                  name  # type: str
                  ) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentException(message=f"Expected {name} to be an int instead of {value!r}")
    if value < 0 or value > maximum:
        raise InvalidArgumentException(message=f"{name} must be between 0 and {maximum}, got {value}")
    return value


def to_text(data  # type: bytes
            ) -> str:
    return data.decode('utf-8', errors='replace')
