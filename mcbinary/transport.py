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

import logging
import socket
from abc import ABC, abstractmethod
from typing import Optional

from mcbinary.exceptions import ErrorContext, TransportException

logger = logging.getLogger(__name__)


class Stream(ABC):
    """A reliable, ordered, byte oriented duplex stream.

    mcbinary never opens, reconnects or times out a stream itself; those policies belong to
    whoever supplies it.  Any object providing these three methods can be used, subclassing is
    not required.
    """

    @abstractmethod
    def read(self,
             size  # type: int
             ) -> bytes:
        """Read at most ``size`` bytes.  Returns ``b''`` once the peer has closed the stream."""

    @abstractmethod
    def write(self,
              data  # type: bytes
              ) -> None:
        """Write all of ``data``."""

    @abstractmethod
    def close(self) -> None:
        pass


# upper bound on a single read, whatever length the peer declared
MAX_READ_SIZE = 64 * 1024


def read_exact(stream,  # type: Stream
               size,  # type: int
               context=None  # type: Optional[ErrorContext]
               ) -> bytes:
    """Read exactly ``size`` bytes from ``stream``.

    Raises:
        :class:`~mcbinary.exceptions.TransportException`: If the stream fails or reaches EOF
            before ``size`` bytes were read.
    """
    chunks = []
    remaining = size
    while remaining > 0:
        try:
            data = stream.read(min(remaining, MAX_READ_SIZE))
        except OSError as ex:
            raise TransportException.from_os_error(ex, context=context) from ex
        if not data:
            raise TransportException(f"Got empty data (remote died?) after {size - remaining} "
                                     f"of {size} bytes.",
                                     io_kind='eof',
                                     context=context)
        chunks.append(data)
        remaining -= len(data)
    return b''.join(chunks)


def write_all(stream,  # type: Stream
              data,  # type: bytes
              context=None  # type: Optional[ErrorContext]
              ) -> None:
    try:
        stream.write(data)
    except OSError as ex:
        raise TransportException.from_os_error(ex, context=context) from ex


class SocketStream(Stream):
    """:class:`Stream` over a connected TCP socket."""

    def __init__(self,
                 sock  # type: socket.socket
                 ):
        self._sock = sock

    @classmethod
    def connect(cls,
                host='127.0.0.1',  # type: str
                port=11211,  # type: int
                timeout=None  # type: Optional[float]
                ) -> SocketStream:
        """Open a TCP connection to a memcached server.

        Args:
            host (str, optional): Server host.  Defaults to 127.0.0.1.
            port (int, optional): Server port.  Defaults to 11211.
            timeout (float, optional): Socket timeout in seconds, applied to the connect and to
                every read and write.  Defaults to None (blocking).

        Raises:
            :class:`~mcbinary.exceptions.TransportException`: If the connection cannot be opened.
        """
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as ex:
            raise TransportException.from_os_error(ex) from ex
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        logger.debug('Connected to %s:%s', host, port)
        return cls(sock)

    def read(self, size):
        return self._sock.recv(size)

    def write(self, data):
        self._sock.sendall(data)

    def close(self):
        try:
            self._sock.close()
        except OSError:
            logger.debug('Error closing socket', exc_info=True)
