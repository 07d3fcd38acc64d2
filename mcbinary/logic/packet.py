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
Binary protocol framing.

Every packet is a fixed 24 byte header followed by extras, key and value, in that order::

    magic[1] opcode[1] key-length[2] extras-length[1] data-type[1]
    vbucket-or-status[2] total-body-length[4] opaque[4] cas[8]

All integers are big-endian.  The codec keeps no state between calls: requests are encoded
from their parts, responses are decoded into a :class:`ResponsePacket` and handed back
uninterpreted, since the layout of extras and value depends on the opcode.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional

import mcbinary.constants as C
from mcbinary._utils import to_text, validate_uint
from mcbinary.exceptions import (ErrorContext,
                                 ErrorMapper,
                                 InvalidArgumentException,
                                 MalformedFrameException,
                                 MemcachedException)
from mcbinary.status import Status
from mcbinary.transport import Stream, read_exact

logger = logging.getLogger(__name__)


def _opcode_name(opcode):
    return C.COMMAND_NAMES.get(opcode, f'0x{opcode:02x}')


@dataclass
class RequestPacket:
    opcode: int
    key: bytes = b''
    value: bytes = b''
    extras: bytes = b''
    opaque: int = 0
    cas: int = 0
    vbucket: int = 0
    datatype: int = 0

    def encode(self) -> bytes:
        if len(self.key) > C.MAX_KEY_LENGTH:
            raise InvalidArgumentException(message=f"Key length {len(self.key)} exceeds {C.MAX_KEY_LENGTH} bytes.")
        if len(self.extras) > C.MAX_EXTRAS_LENGTH:
            raise InvalidArgumentException(
                message=f"Extras length {len(self.extras)} exceeds {C.MAX_EXTRAS_LENGTH} bytes.")
        body_length = len(self.extras) + len(self.key) + len(self.value)
        if body_length > C.MAX_BODY_LENGTH:
            raise InvalidArgumentException(message=f"Body length {body_length} exceeds {C.MAX_BODY_LENGTH} bytes.")
        validate_uint(self.opcode, 0xff, 'opcode')
        validate_uint(self.opaque, C.MAX_OPAQUE, 'opaque')
        validate_uint(self.cas, C.MAX_CAS, 'cas')
        validate_uint(self.vbucket, 0xffff, 'vbucket')

        header = struct.pack(C.REQ_PKT_FMT, C.REQ_MAGIC_BYTE,
                             self.opcode, len(self.key), len(self.extras), self.datatype,
                             self.vbucket, body_length, self.opaque, self.cas)
        logger.log(logging.TRACE, 'Encoded %s request: opaque=%d, cas=%d, keylen=%d, extlen=%d, bodylen=%d',
                   _opcode_name(self.opcode), self.opaque, self.cas,
                   len(self.key), len(self.extras), body_length)
        return header + self.extras + self.key + self.value


@dataclass
class ResponseHeader:
    magic: int
    opcode: int
    key_length: int
    extras_length: int
    datatype: int
    status_code: int
    body_length: int
    opaque: int
    cas: int


@dataclass
class ResponsePacket:
    opcode: int
    status_code: int
    opaque: int
    cas: int
    extras: bytes = b''
    key: bytes = b''
    value: bytes = b''
    datatype: int = 0

    @property
    def status(self) -> Optional[Status]:
        """
            Optional[:class:`~mcbinary.status.Status`]: The status of the response, None if the
            status code is not part of the status table.
        """
        return Status.from_code(self.status_code)

    @property
    def is_success(self) -> bool:
        return self.status_code == C.STATUS_NO_ERROR

    def error(self,
              context=None  # type: Optional[ErrorContext]
              ) -> Optional[MemcachedException]:
        """The exception describing a failed response, or None for a successful one.

        The body of a failed response is taken as the error's detail (the server usually sends a
        short message) and is never interpreted as result data.
        """
        if self.is_success:
            return None
        body = self.extras + self.key + self.value
        detail = to_text(body) if body else None
        if context is None:
            context = ErrorContext(opcode=_opcode_name(self.opcode), opaque=self.opaque)
        return ErrorMapper.build_exception(self.status_code, detail=detail, context=context)

    def raise_for_status(self,
                         context=None  # type: Optional[ErrorContext]
                         ) -> None:
        exc = self.error(context)
        if exc is not None:
            raise exc


def encode_request(opcode,  # type: int
                   key=b'',  # type: bytes
                   value=b'',  # type: bytes
                   extras=b'',  # type: bytes
                   opaque=0,  # type: int
                   cas=0,  # type: int
                   vbucket=0,  # type: int
                   datatype=0  # type: int
                   ) -> bytes:
    """Encode a request frame.

    Raises:
        :class:`~mcbinary.exceptions.InvalidArgumentException`: If a part does not fit the header
            field that carries its length, or opaque/cas are out of range.
    """
    return RequestPacket(opcode, key=key, value=value, extras=extras, opaque=opaque,
                         cas=cas, vbucket=vbucket, datatype=datatype).encode()


def decode_header(data  # type: bytes
                  ) -> ResponseHeader:
    if len(data) != C.HEADER_LEN:
        raise MalformedFrameException(f"Expected a {C.HEADER_LEN} byte header, got {len(data)} bytes.")
    header = ResponseHeader(*struct.unpack(C.RES_PKT_FMT, data))
    if header.magic != C.RES_MAGIC_BYTE:
        raise MalformedFrameException(f"Got magic: 0x{header.magic:02x}",
                                      context=ErrorContext(opaque=header.opaque))
    if header.extras_length + header.key_length > header.body_length:
        raise MalformedFrameException(f"Extras length {header.extras_length} and key length "
                                      f"{header.key_length} exceed body length {header.body_length}.",
                                      context=ErrorContext(opcode=_opcode_name(header.opcode),
                                                           opaque=header.opaque))
    return header


def decode_body(header,  # type: ResponseHeader
                body  # type: bytes
                ) -> ResponsePacket:
    if len(body) != header.body_length:
        raise MalformedFrameException(f"Header declares {header.body_length} body bytes, got {len(body)}.",
                                      context=ErrorContext(opcode=_opcode_name(header.opcode),
                                                           opaque=header.opaque))
    key_start = header.extras_length
    value_start = key_start + header.key_length
    packet = ResponsePacket(opcode=header.opcode,
                            status_code=header.status_code,
                            opaque=header.opaque,
                            cas=header.cas,
                            extras=body[:key_start],
                            key=body[key_start:value_start],
                            value=body[value_start:],
                            datatype=header.datatype)
    logger.log(logging.TRACE, 'Decoded %s response: status=0x%04x, opaque=%d, cas=%d, bodylen=%d',
               _opcode_name(packet.opcode), packet.status_code, packet.opaque, packet.cas,
               header.body_length)
    return packet


def read_response(stream,  # type: Stream
                  context=None  # type: Optional[ErrorContext]
                  ) -> ResponsePacket:
    """Read one complete response frame from ``stream``.

    Exactly the declared number of bytes is consumed, so the stream is left at the start of the
    next frame.

    Raises:
        :class:`~mcbinary.exceptions.TransportException`: If the stream fails or ends mid-frame.
        :class:`~mcbinary.exceptions.MalformedFrameException`: If the header is invalid.
    """
    header = decode_header(read_exact(stream, C.HEADER_LEN, context=context))
    body = read_exact(stream, header.body_length, context=context) if header.body_length else b''
    return decode_body(header, body)


def decode_response(data  # type: bytes
                    ) -> ResponsePacket:
    """Decode a single, complete response frame held in memory."""
    if len(data) < C.HEADER_LEN:
        raise MalformedFrameException(f"Expected at least {C.HEADER_LEN} bytes, got {len(data)}.")
    header = decode_header(data[:C.HEADER_LEN])
    return decode_body(header, data[C.HEADER_LEN:])
