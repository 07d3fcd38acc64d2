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
import struct
from typing import (List,
                    Optional,
                    Tuple)

import mcbinary.constants as C
from mcbinary._utils import (to_bytes,
                             to_text,
                             validate_uint)
from mcbinary.constants import Opcode
from mcbinary.exceptions import (ConnectionClosedException,
                                 ErrorContext,
                                 InvalidArgumentException,
                                 MalformedFrameException,
                                 MemcachedException,
                                 TransportException)
from mcbinary.logic.packet import (RequestPacket,
                                   ResponsePacket,
                                   read_response)
from mcbinary.options import ProtoOptions
from mcbinary.proto import Proto, ProtoType
from mcbinary.result import (CounterResult,
                             GetCasResult,
                             GetKCasResult,
                             GetKResult,
                             GetResult)
from mcbinary.status import Status
from mcbinary.transport import (SocketStream,
                                Stream,
                                write_all)
from mcbinary.version import Version

logger = logging.getLogger(__name__)


class BinaryProto(Proto):
    """memcached binary protocol client over a caller supplied :class:`~mcbinary.transport.Stream`.

    Calls are synchronous: each one writes its request(s) and blocks until the response(s) are
    decoded.  The stream is owned by this instance and a single instance must not be used from
    several threads at once without external locking, since responses are matched to requests
    by their position on the stream and by a per connection opaque counter.

    Server status errors leave the stream at a frame boundary and the proto usable.  Transport
    and framing errors close the stream; every later call raises
    :class:`~mcbinary.exceptions.ConnectionClosedException`.
    """

    def __init__(self,
                 stream,  # type: Stream
                 options=None  # type: Optional[ProtoOptions]
                 ):
        self._stream = stream
        if options is None:
            options = ProtoOptions()
        elif not isinstance(options, ProtoOptions):
            options = ProtoOptions(**options)
        self._options = options
        self._opaque = 0
        # first quiet request written since the last completed response
        self._quiet_since = None
        self._closed = False
        self._stream_closed = False

    @classmethod
    def connect(cls,
                host='127.0.0.1',  # type: str
                port=11211,  # type: int
                timeout=None,  # type: Optional[float]
                options=None  # type: Optional[ProtoOptions]
                ) -> BinaryProto:
        """Open a TCP connection and wrap it in a :class:`BinaryProto`."""
        return cls(SocketStream.connect(host, port, timeout=timeout), options=options)

    @property
    def proto_type(self) -> ProtoType:
        return ProtoType.BINARY

    @property
    def options(self) -> ProtoOptions:
        return self._options

    @property
    def closed(self) -> bool:
        return self._closed

    def clone(self,
              stream  # type: Stream
              ) -> BinaryProto:
        return BinaryProto(stream, options=ProtoOptions(**self._options))

    def close(self) -> None:
        """End this proto and close its stream."""
        self._closed = True
        if not self._stream_closed:
            self._stream_closed = True
            self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # framing helpers

    def _next_opaque(self) -> int:
        self._opaque = (self._opaque + 1) & C.MAX_OPAQUE
        return self._opaque

    def _check_open(self, context):
        if self._closed:
            raise ConnectionClosedException(context=context)

    def _abort(self,
               exc  # type: MemcachedException
               ) -> MemcachedException:
        logger.warning('Closing connection after fatal error: %r', exc)
        self.close()
        return exc

    def _malformed(self, message, context):
        return self._abort(MalformedFrameException(message, context=context))

    def _write(self, data, context):
        self._check_open(context)
        try:
            write_all(self._stream, data, context=context)
        except TransportException as ex:
            raise self._abort(ex)

    def _read(self, context) -> ResponsePacket:
        self._check_open(context)
        try:
            return read_response(self._stream, context=context)
        except (TransportException, MalformedFrameException) as ex:
            raise self._abort(ex)

    def _is_pending_quiet(self, opaque, expected):
        """True if ``opaque`` belongs to a quiet request written before ``expected``."""
        if self._quiet_since is None:
            return False
        window = (expected - self._quiet_since) & C.MAX_OPAQUE
        age = (expected - opaque) & C.MAX_OPAQUE
        return 0 < age <= window

    def _skip_quiet_error(self, packet):
        exc = packet.error()
        logger.warning('Discarding the response to an earlier no-reply request (opaque=%d): %r',
                       packet.opaque, exc)

    def _encode(self, opcode, key=b'', value=b'', extras=b'', cas=0, opaque=None):
        if opaque is None:
            opaque = self._next_opaque()
        packet = RequestPacket(opcode, key=key, value=value, extras=extras, opaque=opaque,
                               cas=cas, vbucket=self._options.vbucket)
        return opaque, packet.encode()

    def _await_response(self,
                        opaque,  # type: int
                        opcode,  # type: Opcode
                        context  # type: ErrorContext
                        ) -> ResponsePacket:
        while True:
            packet = self._read(context)
            if packet.opaque == opaque:
                break
            if self._is_pending_quiet(packet.opaque, opaque):
                self._skip_quiet_error(packet)
                continue
            raise self._malformed(f"expected opaque {opaque:#x}, got {packet.opaque:#x}", context)

        self._quiet_since = None
        if packet.opcode != opcode:
            raise self._malformed(f"expected opcode {opcode.name}, got {packet.opcode:#04x}", context)

        exc = packet.error(context)
        if exc is not None:
            logger.debug('%s failed: %r', opcode.name, exc)
            raise exc
        return packet

    def _do_cmd(self,
                opcode,  # type: Opcode
                key=b'',  # type: bytes
                value=b'',  # type: bytes
                extras=b'',  # type: bytes
                cas=0  # type: int
                ) -> ResponsePacket:
        """Send a command and await its response."""
        opaque, data = self._encode(opcode, key=key, value=value, extras=extras, cas=cas)
        context = ErrorContext(opcode=opcode.name, key=key, opaque=opaque)
        self._write(data, context)
        return self._await_response(opaque, opcode, context)

    def _send_quiet(self, opcode, key=b'', value=b'', extras=b''):
        quiet = C.QUIET_OPCODES[opcode]
        opaque, data = self._encode(quiet, key=key, value=value, extras=extras)
        self._write(data, ErrorContext(opcode=quiet.name, key=key, opaque=opaque))
        if self._quiet_since is None:
            self._quiet_since = opaque

    # extras and response payloads

    @staticmethod
    def _store_extras(flags, expiration):
        validate_uint(flags, C.MAX_UINT32, 'flags')
        validate_uint(expiration, C.MAX_UINT32, 'expiration')
        return struct.pack(C.SET_PKT_FMT, flags, expiration)

    @staticmethod
    def _incrdecr_extras(amount, initial, expiration):
        validate_uint(amount, C.MAX_UINT64, 'amount')
        validate_uint(initial, C.MAX_UINT64, 'initial')
        validate_uint(expiration, C.MAX_UINT32, 'expiration')
        return struct.pack(C.INCRDECR_PKT_FMT, amount, initial, expiration)

    @staticmethod
    def _expiration_extras(expiration):
        validate_uint(expiration, C.MAX_UINT32, 'expiration')
        return struct.pack(C.TOUCH_PKT_FMT, expiration)

    def _parse_flags(self, packet, context):
        if len(packet.extras) != struct.calcsize(C.GET_RES_FMT):
            raise self._malformed(f"expected 4 bytes of flags, got {len(packet.extras)}", context)
        return struct.unpack(C.GET_RES_FMT, packet.extras)[0]

    def _parse_get(self, packet, key):
        return self._parse_flags(packet, ErrorContext(opcode=Opcode.GET.name, key=key, opaque=packet.opaque))

    def _parse_counter(self, packet, key):
        if len(packet.value) != struct.calcsize(C.INCRDECR_RES_FMT):
            raise self._malformed(f"expected an 8 byte counter, got {len(packet.value)} bytes",
                                  ErrorContext(opcode=Opcode.INCREMENT.name, key=key, opaque=packet.opaque))
        return struct.unpack(C.INCRDECR_RES_FMT, packet.value)[0]

    # Operation

    def _mutate(self, opcode, key, value, flags, expiration, cas=0):
        return self._do_cmd(opcode, to_bytes(key, 'key'), to_bytes(value),
                            self._store_extras(flags, expiration), self._check_cas(cas))

    def _cat(self, opcode, key, value, cas=0):
        return self._do_cmd(opcode, to_bytes(key, 'key'), to_bytes(value), cas=self._check_cas(cas))

    def _incrdecr(self, opcode, key, amount, initial, expiration, cas=0):
        key = to_bytes(key, 'key')
        packet = self._do_cmd(opcode, key, extras=self._incrdecr_extras(amount, initial, expiration),
                              cas=self._check_cas(cas))
        return CounterResult(self._parse_counter(packet, key), packet.cas)

    def _touch(self, key, expiration, cas=0):
        return self._do_cmd(Opcode.TOUCH, to_bytes(key, 'key'), extras=self._expiration_extras(expiration),
                            cas=self._check_cas(cas))

    def _get(self, opcode, key):
        key = to_bytes(key, 'key')
        packet = self._do_cmd(opcode, key)
        return packet, self._parse_get(packet, key)

    @staticmethod
    def _check_cas(cas):
        return validate_uint(cas, C.MAX_CAS, 'cas')

    def set(self, key, value, flags, expiration):
        """Set a value in the memcached server."""
        self._mutate(Opcode.SET, key, value, flags, expiration)

    def add(self, key, value, flags, expiration):
        """Add a value in the memcached server iff it doesn't already exist."""
        self._mutate(Opcode.ADD, key, value, flags, expiration)

    def replace(self, key, value, flags, expiration):
        """Replace a value in the memcached server iff it already exists."""
        self._mutate(Opcode.REPLACE, key, value, flags, expiration)

    def delete(self, key):
        """Delete the value for a given key within the memcached server."""
        self._do_cmd(Opcode.DELETE, to_bytes(key, 'key'))

    def get(self, key):
        """Get the value for a given key within the memcached server."""
        packet, flags = self._get(Opcode.GET, key)
        return GetResult(packet.value, flags)

    def getk(self, key):
        packet, flags = self._get(Opcode.GETK, key)
        return GetKResult(packet.key, packet.value, flags)

    def increment(self, key, amount, initial, expiration):
        """Increment or create the named counter."""
        return self._incrdecr(Opcode.INCREMENT, key, amount, initial, expiration).value

    def decrement(self, key, amount, initial, expiration):
        """Decrement or create the named counter."""
        return self._incrdecr(Opcode.DECREMENT, key, amount, initial, expiration).value

    def append(self, key, value):
        self._cat(Opcode.APPEND, key, value)

    def prepend(self, key, value):
        self._cat(Opcode.PREPEND, key, value)

    def touch(self, key, expiration):
        """Touch a key in the memcached server."""
        self._touch(key, expiration)

    # CasOperation

    def set_cas(self, key, value, flags, expiration, cas):
        """CAS in a new value for the given key and comparison value."""
        return self._mutate(Opcode.SET, key, value, flags, expiration, cas).cas

    def add_cas(self, key, value, flags, expiration):
        return self._mutate(Opcode.ADD, key, value, flags, expiration).cas

    def replace_cas(self, key, value, flags, expiration, cas):
        return self._mutate(Opcode.REPLACE, key, value, flags, expiration, cas).cas

    def get_cas(self, key):
        packet, flags = self._get(Opcode.GET, key)
        return GetCasResult(packet.value, flags, packet.cas)

    def getk_cas(self, key):
        packet, flags = self._get(Opcode.GETK, key)
        return GetKCasResult(packet.key, packet.value, flags, packet.cas)

    def increment_cas(self, key, amount, initial, expiration, cas):
        return self._incrdecr(Opcode.INCREMENT, key, amount, initial, expiration, cas)

    def decrement_cas(self, key, amount, initial, expiration, cas):
        return self._incrdecr(Opcode.DECREMENT, key, amount, initial, expiration, cas)

    def append_cas(self, key, value, cas):
        return self._cat(Opcode.APPEND, key, value, cas).cas

    def prepend_cas(self, key, value, cas):
        return self._cat(Opcode.PREPEND, key, value, cas).cas

    def touch_cas(self, key, expiration, cas):
        return self._touch(key, expiration, cas).cas

    def delete_cas(self, key, cas):
        self._do_cmd(Opcode.DELETE, to_bytes(key, 'key'), cas=self._check_cas(cas))

    # MultiOperation

    @staticmethod
    def _unique_keys(keys):
        encoded = [to_bytes(k, 'key') for k in keys]
        if len(set(encoded)) != len(encoded):
            raise InvalidArgumentException(message="Keys must be unique within one multi operation.")
        return encoded

    def _run_quiet_batch(self,
                         opcode,  # type: Opcode
                         requests  # type: List[Tuple[bytes, bytes, bytes]]
                         ) -> List[Tuple[bytes, ResponsePacket]]:
        """Pipeline ``requests`` with the quiet variant of ``opcode``, followed by a NOOP.

        Every request is encoded before anything is written, then the whole batch goes out in a
        single write.  Frames are read up to and including the NOOP response, so the stream is
        frame-aligned on return even when some requests failed.  Returns the ``(key, response)``
        pairs the server sent, in request order.
        """
        quiet = C.QUIET_OPCODES[opcode]
        by_opaque = {}
        chunks = []
        for key, value, extras in requests:
            opaque, data = self._encode(quiet, key=key, value=value, extras=extras)
            by_opaque[opaque] = key
            chunks.append(data)
        first_opaque = next(iter(by_opaque))
        terminal, data = self._encode(Opcode.NOOP)
        chunks.append(data)

        context = ErrorContext(opcode=quiet.name, opaque=first_opaque)
        self._write(b''.join(chunks), context)

        responses = []
        while True:
            packet = self._read(context)
            if packet.opaque == terminal:
                break
            key = by_opaque.get(packet.opaque, None)
            if key is None:
                if self._is_pending_quiet(packet.opaque, first_opaque):
                    self._skip_quiet_error(packet)
                    continue
                raise self._malformed(f"unexpected opaque {packet.opaque:#x} in a {quiet.name} batch", context)
            if packet.opcode != quiet:
                raise self._malformed(f"expected opcode {quiet.name}, got {packet.opcode:#04x}", context)
            responses.append((key, packet))

        self._quiet_since = None
        if packet.opcode != Opcode.NOOP:
            raise self._malformed(f"expected opcode NOOP, got {packet.opcode:#04x}", context)
        packet.raise_for_status(ErrorContext(opcode=Opcode.NOOP.name, opaque=terminal))
        return responses

    def _raise_first_error(self, opcode, responses):
        for key, packet in responses:
            exc = packet.error(ErrorContext(opcode=opcode.name, key=key, opaque=packet.opaque))
            if exc is not None:
                logger.debug('%s failed for %d of %d keys, first error: %r', opcode.name,
                             sum(1 for _, p in responses if not p.is_success), len(responses), exc)
                raise exc

    def set_multi(self, kv):
        """Set several values, pipelined.

        Args:
            kv (Mapping[bytes, Tuple[bytes, int, int]]): key -> ``(value, flags, expiration)``.

        Raises:
            :class:`~mcbinary.exceptions.StatusException`: The error of the first key that failed,
                raised after every response of the batch has been read.
        """
        keys = self._unique_keys(kv.keys())
        requests = []
        for key, (value, flags, expiration) in zip(keys, kv.values()):
            requests.append((key, to_bytes(value), self._store_extras(flags, expiration)))
        if not requests:
            return
        self._raise_first_error(Opcode.SET, self._run_quiet_batch(Opcode.SET, requests))

    def delete_multi(self, keys):
        requests = [(key, b'', b'') for key in self._unique_keys(keys)]
        if not requests:
            return
        self._raise_first_error(Opcode.DELETE, self._run_quiet_batch(Opcode.DELETE, requests))

    def get_multi(self, keys):
        """Get values for any available keys in the given iterable.

        Returns a dict of matched keys to their ``(value, flags)``; keys that were not found are
        left out.  Any other failure is raised once the batch has been read.
        """
        requests = [(key, b'', b'') for key in self._unique_keys(keys)]
        if not requests:
            return {}

        rv = {}
        first_error = None
        for key, packet in self._run_quiet_batch(Opcode.GETK, requests):
            context = ErrorContext(opcode=Opcode.GETKQ.name, key=key, opaque=packet.opaque)
            if packet.is_success:
                if packet.key and packet.key != key:
                    raise self._malformed(f"response key {packet.key!r} does not match request key {key!r}",
                                          context)
                rv[key] = GetResult(packet.value, self._parse_flags(packet, context))
            elif packet.status is not Status.KEY_NOT_FOUND and first_error is None:
                first_error = packet.error(context)

        if first_error is not None:
            logger.debug('GETKQ batch failed: %r', first_error)
            raise first_error
        return rv

    # NoReplyOperation

    def set_noreply(self, key, value, flags, expiration):
        """Set a value without waiting for the server.  Failures are not reported."""
        self._send_quiet(Opcode.SET, to_bytes(key, 'key'), to_bytes(value), self._store_extras(flags, expiration))

    def add_noreply(self, key, value, flags, expiration):
        """Add a value without waiting for the server.  Failures (the key exists) are not reported."""
        self._send_quiet(Opcode.ADD, to_bytes(key, 'key'), to_bytes(value), self._store_extras(flags, expiration))

    def delete_noreply(self, key):
        """Delete a key without waiting for the server.  Failures are not reported."""
        self._send_quiet(Opcode.DELETE, to_bytes(key, 'key'))

    def replace_noreply(self, key, value, flags, expiration):
        """Replace a value without waiting for the server.  Failures are not reported."""
        self._send_quiet(Opcode.REPLACE, to_bytes(key, 'key'), to_bytes(value),
                         self._store_extras(flags, expiration))

    def increment_noreply(self, key, amount, initial, expiration):
        """Increment a counter without waiting for the server.  The new value and any failure are
        not reported."""
        self._send_quiet(Opcode.INCREMENT, to_bytes(key, 'key'),
                         extras=self._incrdecr_extras(amount, initial, expiration))

    def decrement_noreply(self, key, amount, initial, expiration):
        """Decrement a counter without waiting for the server.  The new value and any failure are
        not reported."""
        self._send_quiet(Opcode.DECREMENT, to_bytes(key, 'key'),
                         extras=self._incrdecr_extras(amount, initial, expiration))

    def append_noreply(self, key, value):
        """Append to a value without waiting for the server.  Failures are not reported."""
        self._send_quiet(Opcode.APPEND, to_bytes(key, 'key'), to_bytes(value))

    def prepend_noreply(self, key, value):
        """Prepend to a value without waiting for the server.  Failures are not reported."""
        self._send_quiet(Opcode.PREPEND, to_bytes(key, 'key'), to_bytes(value))

    # ServerOperation

    def quit(self):
        """Tell the server to close the session.

        No further operation can be issued on this proto.  The stream itself is left for the
        caller to close (or use :meth:`close`).
        """
        self._do_cmd(Opcode.QUIT)
        self._closed = True

    def flush(self, expiration):
        """Flush all storage in a memcached instance."""
        validate_uint(expiration, C.MAX_UINT32, 'expiration')
        self._do_cmd(Opcode.FLUSH, extras=struct.pack(C.FLUSH_PKT_FMT, expiration))

    def noop(self):
        """Send a noop command."""
        self._do_cmd(Opcode.NOOP)

    def version(self):
        """Get the version of the server."""
        return Version.parse(to_text(self._do_cmd(Opcode.VERSION).value))

    def verbosity(self, level):
        validate_uint(level, C.MAX_UINT32, 'level')
        self._do_cmd(Opcode.VERBOSITY, extras=struct.pack(C.VERBOSITY_PKT_FMT, level))

    def stat(self, group=None):
        """Get stats.

        The server answers with one frame per statistic and an empty-key frame to finish.  At
        most ``max_stat_frames`` frames are read; a server that sends more is treated as broken
        and the connection is closed.

        Args:
            group (str, optional): Stats group to ask for, e.g. ``'settings'`` or ``'slabs'``.
                Defaults to the general stats.
        """
        key = to_bytes(group, 'group') if group else b''
        opaque, data = self._encode(Opcode.STAT, key=key)
        context = ErrorContext(opcode=Opcode.STAT.name, key=key or None, opaque=opaque)
        self._write(data, context)

        rv = {}
        max_frames = self._options.max_stat_frames
        for _ in range(max_frames):
            packet = self._await_response(opaque, Opcode.STAT, context)
            if not packet.key:
                return rv
            rv[to_text(packet.key)] = to_text(packet.value)
        raise self._malformed(f"no stat terminator after {max_frames} frames", context)
