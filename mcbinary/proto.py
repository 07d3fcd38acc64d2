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

"""
The operation surface a memcached protocol implementation provides.

Callers program against :class:`Proto`; it is composed of five capability groups, each of which
is an abstract base class of its own so code that needs only part of the surface can say so.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import (Dict,
                    Iterable,
                    Mapping,
                    Optional,
                    Tuple)

from mcbinary.result import (CounterResult,
                             GetCasResult,
                             GetKCasResult,
                             GetKResult,
                             GetResult)
from mcbinary.transport import Stream
from mcbinary.version import Version


class ProtoType(Enum):
    BINARY = "binary"


class Operation(ABC):
    """Plain key/value operations.  Each sends one request and waits for its response."""

    @abstractmethod
    def set(self, key: bytes, value: bytes, flags: int, expiration: int) -> None:
        """Store ``value`` under ``key`` unconditionally."""

    @abstractmethod
    def add(self, key: bytes, value: bytes, flags: int, expiration: int) -> None:
        """Store ``value`` only if ``key`` does not exist.

        Raises:
            :class:`~mcbinary.exceptions.KeyExistsException`: If the key exists.
        """

    @abstractmethod
    def delete(self, key: bytes) -> None:
        """Raises :class:`~mcbinary.exceptions.KeyNotFoundException` if the key does not exist."""

    @abstractmethod
    def replace(self, key: bytes, value: bytes, flags: int, expiration: int) -> None:
        """Store ``value`` only if ``key`` exists.

        Raises:
            :class:`~mcbinary.exceptions.KeyNotFoundException`: If the key does not exist.
        """

    @abstractmethod
    def get(self, key: bytes) -> GetResult:
        """Returns ``(value, flags)``.

        Raises:
            :class:`~mcbinary.exceptions.KeyNotFoundException`: If the key does not exist.
        """

    @abstractmethod
    def getk(self, key: bytes) -> GetKResult:
        """Returns ``(key, value, flags)``, the key as echoed by the server."""

    @abstractmethod
    def increment(self, key: bytes, amount: int, initial: int, expiration: int) -> int:
        """Add ``amount`` to the counter stored under ``key`` and return the new value.

        A missing key is created holding ``initial`` unless ``expiration`` is
        :data:`~mcbinary.constants.INCRDECR_NO_CREATE`, in which case the server's status is
        raised as is.  Overflow is the server's business.
        """

    @abstractmethod
    def decrement(self, key: bytes, amount: int, initial: int, expiration: int) -> int:
        """As :meth:`increment`, subtracting ``amount``."""

    @abstractmethod
    def append(self, key: bytes, value: bytes) -> None:
        pass

    @abstractmethod
    def prepend(self, key: bytes, value: bytes) -> None:
        pass

    @abstractmethod
    def touch(self, key: bytes, expiration: int) -> None:
        pass


class CasOperation(ABC):
    """Compare-and-swap variants of the plain operations.

    A ``cas`` of 0 disables the comparison.  A non-zero ``cas`` that does not match the value
    stored on the server makes a mutation fail with
    :class:`~mcbinary.exceptions.KeyExistsException`.  On success the CAS the server assigned to
    the new value is returned, ready to be passed to the next call.
    """

    @abstractmethod
    def set_cas(self, key: bytes, value: bytes, flags: int, expiration: int, cas: int) -> int:
        pass

    @abstractmethod
    def add_cas(self, key: bytes, value: bytes, flags: int, expiration: int) -> int:
        pass

    @abstractmethod
    def replace_cas(self, key: bytes, value: bytes, flags: int, expiration: int, cas: int) -> int:
        pass

    @abstractmethod
    def get_cas(self, key: bytes) -> GetCasResult:
        """Returns ``(value, flags, cas)``."""

    @abstractmethod
    def getk_cas(self, key: bytes) -> GetKCasResult:
        """Returns ``(key, value, flags, cas)``."""

    @abstractmethod
    def increment_cas(self, key: bytes, amount: int, initial: int, expiration: int, cas: int) -> CounterResult:
        """Returns ``(value, cas)``."""

    @abstractmethod
    def decrement_cas(self, key: bytes, amount: int, initial: int, expiration: int, cas: int) -> CounterResult:
        """Returns ``(value, cas)``."""

    @abstractmethod
    def append_cas(self, key: bytes, value: bytes, cas: int) -> int:
        pass

    @abstractmethod
    def prepend_cas(self, key: bytes, value: bytes, cas: int) -> int:
        pass

    @abstractmethod
    def touch_cas(self, key: bytes, expiration: int, cas: int) -> int:
        pass

    @abstractmethod
    def delete_cas(self, key: bytes, cas: int) -> None:
        pass


class ServerOperation(ABC):

    @abstractmethod
    def quit(self) -> None:
        """End the session.  Closing the transport is left to the caller."""

    @abstractmethod
    def flush(self, expiration: int) -> None:
        """Invalidate every item after ``expiration`` seconds (0 means now)."""

    @abstractmethod
    def noop(self) -> None:
        pass

    @abstractmethod
    def version(self) -> Version:
        pass

    @abstractmethod
    def stat(self, group: Optional[str] = None) -> Dict[str, str]:
        """Statistic name -> value, for the general stats or the named ``group``."""


class MultiOperation(ABC):
    """Batched operations.  Requests are pipelined and the responses matched back to their keys;
    the first failure is raised once the whole batch has been read.
    """

    @abstractmethod
    def set_multi(self, kv: Mapping[bytes, Tuple[bytes, int, int]]) -> None:
        """``kv`` maps each key to ``(value, flags, expiration)``."""

    @abstractmethod
    def delete_multi(self, keys: Iterable[bytes]) -> None:
        pass

    @abstractmethod
    def get_multi(self, keys: Iterable[bytes]) -> Dict[bytes, GetResult]:
        """Keys that are not found are left out of the result."""


class NoReplyOperation(ABC):
    """Fire-and-forget variants of the plain mutations.

    These use the quiet opcodes and return as soon as the request is written.  The server does
    not answer them on success and the call never sees a failure: this is a reduced guarantee
    mode, not a faster equivalent of the replying calls.
    """

    @abstractmethod
    def set_noreply(self, key: bytes, value: bytes, flags: int, expiration: int) -> None:
        pass

    @abstractmethod
    def add_noreply(self, key: bytes, value: bytes, flags: int, expiration: int) -> None:
        pass

    @abstractmethod
    def delete_noreply(self, key: bytes) -> None:
        pass

    @abstractmethod
    def replace_noreply(self, key: bytes, value: bytes, flags: int, expiration: int) -> None:
        pass

    @abstractmethod
    def increment_noreply(self, key: bytes, amount: int, initial: int, expiration: int) -> None:
        pass

    @abstractmethod
    def decrement_noreply(self, key: bytes, amount: int, initial: int, expiration: int) -> None:
        pass

    @abstractmethod
    def append_noreply(self, key: bytes, value: bytes) -> None:
        pass

    @abstractmethod
    def prepend_noreply(self, key: bytes, value: bytes) -> None:
        pass


class Proto(Operation, CasOperation, MultiOperation, NoReplyOperation, ServerOperation):
    """The complete contract of a memcached protocol implementation."""

    @property
    @abstractmethod
    def proto_type(self) -> ProtoType:
        pass

    @abstractmethod
    def clone(self, stream: Stream) -> Proto:
        """A new proto with the same settings, driving ``stream``.

        A stream is owned by exactly one proto, so the clone never shares this one's stream.
        """
