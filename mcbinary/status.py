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

from enum import Enum
from typing import Optional

import mcbinary.constants as C


class Status(Enum):
    """Outcome of a binary protocol operation, as reported by the server.

    The set is closed: every wire status code defined by the binary protocol maps to exactly
    one member and every member maps back to its code.  Codes outside the table have no
    :class:`Status`, see :meth:`from_code`.
    """
    NO_ERROR = 'no_error'
    KEY_NOT_FOUND = 'key_not_found'
    KEY_EXISTS = 'key_exists'
    VALUE_TOO_LARGE = 'value_too_large'
    INVALID_ARGUMENTS = 'invalid_arguments'
    ITEM_NOT_STORED = 'item_not_stored'
    INCR_DECR_ON_NON_NUMERIC_VALUE = 'incr_decr_on_non_numeric_value'
    VBUCKET_BELONGS_TO_OTHER_SERVER = 'vbucket_belongs_to_other_server'
    AUTHENTICATION_ERROR = 'authentication_error'
    AUTHENTICATION_CONTINUE = 'authentication_continue'
    UNKNOWN_COMMAND = 'unknown_command'
    OUT_OF_MEMORY = 'out_of_memory'
    NOT_SUPPORTED = 'not_supported'
    INTERNAL_ERROR = 'internal_error'
    BUSY = 'busy'
    TEMPORARY_FAILURE = 'temporary_failure'

    @property
    def code(self) -> int:
        """
            int: The 16-bit wire code of this status.
        """
        return _STATUS_TO_CODE[self]

    @property
    def desc(self) -> str:
        """
            str: A short, fixed description of this status.
        """
        return _STATUS_DESCRIPTIONS[self]

    @property
    def is_success(self) -> bool:
        return self is Status.NO_ERROR

    @classmethod
    def from_code(cls,
                  code  # type: int
                  ) -> Optional[Status]:
        """Look up the :class:`Status` of a wire status code.

        Args:
            code (int): The 16-bit status field of a response header.

        Returns:
            Optional[:class:`Status`]: The matching status, or None if the code is not part of the
            protocol's status table.
        """
        return _CODE_TO_STATUS.get(code, None)


_STATUS_TO_CODE = {
    Status.NO_ERROR: C.STATUS_NO_ERROR,
    Status.KEY_NOT_FOUND: C.STATUS_KEY_NOT_FOUND,
    Status.KEY_EXISTS: C.STATUS_KEY_EXISTS,
    Status.VALUE_TOO_LARGE: C.STATUS_VALUE_TOO_LARGE,
    Status.INVALID_ARGUMENTS: C.STATUS_INVALID_ARGUMENTS,
    Status.ITEM_NOT_STORED: C.STATUS_ITEM_NOT_STORED,
    Status.INCR_DECR_ON_NON_NUMERIC_VALUE: C.STATUS_INCR_OR_DECR_ON_NON_NUMERIC_VALUE,
    Status.VBUCKET_BELONGS_TO_OTHER_SERVER: C.STATUS_VBUCKET_BELONGS_TO_OTHER_SERVER,
    Status.AUTHENTICATION_ERROR: C.STATUS_AUTHENTICATION_ERROR,
    Status.AUTHENTICATION_CONTINUE: C.STATUS_AUTHENTICATION_CONTINUE,
    Status.UNKNOWN_COMMAND: C.STATUS_UNKNOWN_COMMAND,
    Status.OUT_OF_MEMORY: C.STATUS_OUT_OF_MEMORY,
    Status.NOT_SUPPORTED: C.STATUS_NOT_SUPPORTED,
    Status.INTERNAL_ERROR: C.STATUS_INTERNAL_ERROR,
    Status.BUSY: C.STATUS_BUSY,
    Status.TEMPORARY_FAILURE: C.STATUS_TEMPORARY_FAILURE,
}

_CODE_TO_STATUS = {v: k for k, v in _STATUS_TO_CODE.items()}

_STATUS_DESCRIPTIONS = {
    Status.NO_ERROR: 'no error',
    Status.KEY_NOT_FOUND: 'key not found',
    Status.KEY_EXISTS: 'key exists',
    Status.VALUE_TOO_LARGE: 'value too large',
    Status.INVALID_ARGUMENTS: 'invalid argument',
    Status.ITEM_NOT_STORED: 'item not stored',
    Status.INCR_DECR_ON_NON_NUMERIC_VALUE: 'incr or decr on non-numeric value',
    Status.VBUCKET_BELONGS_TO_OTHER_SERVER: 'vbucket belongs to other server',
    Status.AUTHENTICATION_ERROR: 'authentication error',
    Status.AUTHENTICATION_CONTINUE: 'authentication continue',
    Status.UNKNOWN_COMMAND: 'unknown command',
    Status.OUT_OF_MEMORY: 'out of memory',
    Status.NOT_SUPPORTED: 'not supported',
    Status.INTERNAL_ERROR: 'internal error',
    Status.BUSY: 'busy',
    Status.TEMPORARY_FAILURE: 'temporary failure',
}

assert len(_CODE_TO_STATUS) == len(_STATUS_TO_CODE) == len(Status)
