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

import sys
from enum import Enum
from typing import (Any,
                    Dict,
                    Optional)

import mcbinary.constants as C
from mcbinary.status import Status


class ErrorKind(Enum):
    STATUS = "mcbinary.status"
    TRANSPORT = "mcbinary.transport"
    FRAMING = "mcbinary.framing"
    OTHER = "other"


class ErrorContext:
    """Where an error happened: the request that was in flight when it was raised."""

    _EC_KEYS = ['opcode', 'key', 'opaque']

    def __init__(self, **kwargs):
        self._base = {k: v for k, v in kwargs.items() if k in self._EC_KEYS and v is not None}

    @property
    def opcode(self) -> Optional[str]:
        return self._base.get("opcode", None)

    @property
    def key(self) -> Optional[bytes]:
        return self._base.get("key", None)

    @property
    def opaque(self) -> Optional[int]:
        return self._base.get("opaque", None)

    def __repr__(self):
        return f'ErrorContext({self._base})'


class MemcachedException(Exception):
    """Base of every error raised by mcbinary.

    Each subclass fixes the error :attr:`kind` and a short :attr:`desc`.  An optional free-form
    detail (usually the text the server sent with a failed status, or the message of an I/O
    error) is carried alongside; ``str()`` renders the detail when there is one and the
    description otherwise.
    """

    _KIND = ErrorKind.OTHER
    _DESC = "other error"

    def __init__(self,
                 message=None,  # type: Optional[str]
                 desc=None,  # type: Optional[str]
                 context=None,  # type: Optional[ErrorContext]
                 status_code=None,  # type: Optional[int]
                 exc_info=None  # type: Optional[Dict[str, Any]]
                 ):
        self._message = message if message else None
        self._desc = desc or self._DESC
        self._context = context
        self._status_code = status_code
        self._exc_info = exc_info or {}
        super().__init__(self._message or self._desc)

    @property
    def kind(self) -> ErrorKind:
        return self._KIND

    @property
    def desc(self) -> str:
        return self._desc

    @property
    def detail(self) -> Optional[str]:
        return self._message

    @property
    def message(self) -> str:
        """
            str: The detail of this error if it has one, else its description.
        """
        return self._message if self._message else self._desc

    @property
    def status_code(self) -> Optional[int]:
        return self._status_code

    @property
    def error_context(self) -> ErrorContext:
        if self._context is None:
            self._context = ErrorContext()
        return self._context

    @property
    def context(self) -> ErrorContext:
        return self.error_context

    @property
    def inner_cause(self) -> Optional[Exception]:
        return self._exc_info.get('inner_cause', None)

    def __repr__(self):
        details = [f'desc={self._desc}']
        if self._message:
            details.append(f'detail={self._message}')
        if self._status_code is not None:
            details.append(f'status_code=0x{self._status_code:04x}')
        if self._context:
            details.append(f'context={self._context}')
        if 'inner_cause' in self._exc_info:
            details.append('Inner cause={0}'.format(self._exc_info['inner_cause']))
        return "{}(<{}>)".format(type(self).__name__, ", ".join(details))

    def __str__(self):
        return self.message


class InvalidArgumentException(MemcachedException):
    """Raised when a request cannot be built from the arguments it was given."""
    _DESC = "invalid argument"


class UnknownStatusException(MemcachedException):
    """Raised when a response carries a status code outside the protocol's status table.

    The raw code is kept in :attr:`status_code` and in the detail.
    """
    _DESC = "unknown status"

    def __init__(self, message=None, **kwargs):
        code = kwargs.get('status_code', None)
        if code is not None:
            prefix = f'unknown status code 0x{code:04x}'
            message = f'{prefix}: {message}' if message else prefix
        super().__init__(message, **kwargs)


class TransportException(MemcachedException):
    """Raised when reading from or writing to the stream fails.

    The connection must not be used after one of these.
    """
    _KIND = ErrorKind.TRANSPORT
    _DESC = "transport error"

    def __init__(self, message=None, io_kind=None, **kwargs):
        self._io_kind = io_kind
        super().__init__(message, **kwargs)

    @property
    def io_kind(self) -> Optional[str]:
        """
            Optional[str]: The kind of I/O failure, the name of the underlying ``OSError`` class,
            or ``'eof'`` when the peer closed the stream mid-frame.
        """
        return self._io_kind

    @classmethod
    def from_os_error(cls,
                      err,  # type: OSError
                      context=None  # type: Optional[ErrorContext]
                      ) -> 'TransportException':
        return cls(str(err) or type(err).__name__,
                   io_kind=type(err).__name__,
                   context=context,
                   exc_info={'inner_cause': err})


class ConnectionClosedException(TransportException):
    """Raised when an operation is issued on a proto whose stream has been closed."""
    _DESC = "connection is closed"

    def __init__(self, message=None, **kwargs):
        kwargs.setdefault('io_kind', 'closed')
        super().__init__(message, **kwargs)


class MalformedFrameException(MemcachedException):
    """Raised when a response breaks the framing rules (bad magic, lengths that do not add up,
    an unexpected opaque).

    The connection must not be used after one of these.
    """
    _KIND = ErrorKind.FRAMING
    _DESC = "malformed frame"


class StatusException(MemcachedException):
    """Raised when the server answers a request with a non-success status."""
    _KIND = ErrorKind.STATUS
    _STATUS = None

    def __init__(self, message=None, status=None, **kwargs):
        self._status = status or self._STATUS
        if self._status is not None:
            kwargs.setdefault('desc', self._status.desc)
            kwargs.setdefault('status_code', self._status.code)
        super().__init__(message, **kwargs)

    @property
    def status(self) -> Optional[Status]:
        return self._status


class KeyNotFoundException(StatusException):
    """Indicates that the key does not exist on the server."""
    _STATUS = Status.KEY_NOT_FOUND


class KeyExistsException(StatusException):
    """Indicates that the key exists already, or that the CAS supplied with the request is stale."""
    _STATUS = Status.KEY_EXISTS


class ValueTooLargeException(StatusException):
    _STATUS = Status.VALUE_TOO_LARGE


class ServerInvalidArgumentsException(StatusException):
    """The server rejected the arguments of the request."""
    _STATUS = Status.INVALID_ARGUMENTS


class ItemNotStoredException(StatusException):
    _STATUS = Status.ITEM_NOT_STORED


class NonNumericValueException(StatusException):
    """Indicates an increment or decrement on a value that is not a number."""
    _STATUS = Status.INCR_DECR_ON_NON_NUMERIC_VALUE


class VBucketBelongsToOtherServerException(StatusException):
    _STATUS = Status.VBUCKET_BELONGS_TO_OTHER_SERVER


class AuthenticationException(StatusException):
    _STATUS = Status.AUTHENTICATION_ERROR


class AuthenticationContinueException(StatusException):
    _STATUS = Status.AUTHENTICATION_CONTINUE


class UnknownCommandException(StatusException):
    _STATUS = Status.UNKNOWN_COMMAND


class OutOfMemoryException(StatusException):
    _STATUS = Status.OUT_OF_MEMORY


class NotSupportedException(StatusException):
    _STATUS = Status.NOT_SUPPORTED


class InternalErrorException(StatusException):
    _STATUS = Status.INTERNAL_ERROR


class BusyException(StatusException):
    _STATUS = Status.BUSY


class TemporaryFailException(StatusException):
    _STATUS = Status.TEMPORARY_FAILURE


class ExceptionMap(Enum):
    KeyNotFoundException = C.STATUS_KEY_NOT_FOUND
    KeyExistsException = C.STATUS_KEY_EXISTS
    ValueTooLargeException = C.STATUS_VALUE_TOO_LARGE
    ServerInvalidArgumentsException = C.STATUS_INVALID_ARGUMENTS
    ItemNotStoredException = C.STATUS_ITEM_NOT_STORED
    NonNumericValueException = C.STATUS_INCR_OR_DECR_ON_NON_NUMERIC_VALUE
    VBucketBelongsToOtherServerException = C.STATUS_VBUCKET_BELONGS_TO_OTHER_SERVER
    AuthenticationException = C.STATUS_AUTHENTICATION_ERROR
    AuthenticationContinueException = C.STATUS_AUTHENTICATION_CONTINUE
    UnknownCommandException = C.STATUS_UNKNOWN_COMMAND
    OutOfMemoryException = C.STATUS_OUT_OF_MEMORY
    NotSupportedException = C.STATUS_NOT_SUPPORTED
    InternalErrorException = C.STATUS_INTERNAL_ERROR
    BusyException = C.STATUS_BUSY
    TemporaryFailException = C.STATUS_TEMPORARY_FAILURE


MCBINARY_ERROR_MAP = {e.value: getattr(sys.modules[__name__], e.name) for e in ExceptionMap}


class ErrorMapper:
    @staticmethod
    def build_exception(status_code,  # type: int
                        detail=None,  # type: Optional[str]
                        context=None,  # type: Optional[ErrorContext]
                        ) -> MemcachedException:
        """Build the exception for a response status code.

        Mapped codes produce the :class:`StatusException` subclass of their :class:`Status`;
        codes outside the status table produce an :class:`UnknownStatusException` that keeps the
        raw code.
        """
        status = Status.from_code(status_code)
        if status is None:
            return UnknownStatusException(detail, status_code=status_code, context=context)

        exc_class = MCBINARY_ERROR_MAP.get(status_code, StatusException)
        return exc_class(detail, status=status, context=context)
