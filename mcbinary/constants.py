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

import struct
from enum import IntEnum
from typing import Optional


class Opcode(IntEnum):
    GET = 0x00
    SET = 0x01
    ADD = 0x02
    REPLACE = 0x03
    DELETE = 0x04
    INCREMENT = 0x05
    DECREMENT = 0x06
    QUIT = 0x07
    FLUSH = 0x08
    GETQ = 0x09
    NOOP = 0x0a
    VERSION = 0x0b
    GETK = 0x0c
    GETKQ = 0x0d
    APPEND = 0x0e
    PREPEND = 0x0f
    STAT = 0x10
    SETQ = 0x11
    ADDQ = 0x12
    REPLACEQ = 0x13
    DELETEQ = 0x14
    INCREMENTQ = 0x15
    DECREMENTQ = 0x16
    QUITQ = 0x17
    FLUSHQ = 0x18
    APPENDQ = 0x19
    PREPENDQ = 0x1a
    VERBOSITY = 0x1b
    TOUCH = 0x1c
    GAT = 0x1d
    GATQ = 0x1e

    # SASL stuff
    SASL_LIST_MECHS = 0x20
    SASL_AUTH = 0x21
    SASL_STEP = 0x22

    @classmethod
    def from_code(cls,
                  code  # type: int
                  ) -> Optional['Opcode']:
        try:
            return cls(code)
        except ValueError:
            return None


# replying opcode -> quiet variant
QUIET_OPCODES = {
    Opcode.GET: Opcode.GETQ,
    Opcode.GETK: Opcode.GETKQ,
    Opcode.SET: Opcode.SETQ,
    Opcode.ADD: Opcode.ADDQ,
    Opcode.REPLACE: Opcode.REPLACEQ,
    Opcode.DELETE: Opcode.DELETEQ,
    Opcode.INCREMENT: Opcode.INCREMENTQ,
    Opcode.DECREMENT: Opcode.DECREMENTQ,
    Opcode.QUIT: Opcode.QUITQ,
    Opcode.FLUSH: Opcode.FLUSHQ,
    Opcode.APPEND: Opcode.APPENDQ,
    Opcode.PREPEND: Opcode.PREPENDQ,
    Opcode.GAT: Opcode.GATQ,
}

COMMAND_NAMES = {op.value: op.name for op in Opcode}

# Response status codes
STATUS_NO_ERROR = 0x0000
STATUS_KEY_NOT_FOUND = 0x0001
STATUS_KEY_EXISTS = 0x0002
STATUS_VALUE_TOO_LARGE = 0x0003
STATUS_INVALID_ARGUMENTS = 0x0004
STATUS_ITEM_NOT_STORED = 0x0005
STATUS_INCR_OR_DECR_ON_NON_NUMERIC_VALUE = 0x0006
STATUS_VBUCKET_BELONGS_TO_OTHER_SERVER = 0x0007
STATUS_AUTHENTICATION_ERROR = 0x0020
STATUS_AUTHENTICATION_CONTINUE = 0x0021
STATUS_UNKNOWN_COMMAND = 0x0081
STATUS_OUT_OF_MEMORY = 0x0082
STATUS_NOT_SUPPORTED = 0x0083
STATUS_INTERNAL_ERROR = 0x0084
STATUS_BUSY = 0x0085
STATUS_TEMPORARY_FAILURE = 0x0086

REQ_MAGIC_BYTE = 0x80
RES_MAGIC_BYTE = 0x81

# magic, opcode, keylen, extralen, datatype, vbucket, bodylen, opaque, cas
REQ_PKT_FMT = ">BBHBBHIIQ"
# magic, opcode, keylen, extralen, datatype, status, bodylen, opaque, cas
RES_PKT_FMT = ">BBHBBHIIQ"
HEADER_LEN = struct.calcsize(REQ_PKT_FMT)
# The header sizes don't deviate
assert HEADER_LEN == struct.calcsize(RES_PKT_FMT) == 24

# Flags, expiration
SET_PKT_FMT = ">II"
# flags
GET_RES_FMT = ">I"
# amount, initial value, expiration
INCRDECR_PKT_FMT = ">QQI"
INCRDECR_RES_FMT = ">Q"
# Special incr expiration that means do not create
INCRDECR_NO_CREATE = 0xffffffff
# Time bomb
FLUSH_PKT_FMT = ">I"
TOUCH_PKT_FMT = ">I"
VERBOSITY_PKT_FMT = ">I"

MAX_KEY_LENGTH = 0xffff
MAX_EXTRAS_LENGTH = 0xff
MAX_BODY_LENGTH = 0xffffffff
MAX_OPAQUE = 0xffffffff
MAX_CAS = 0xffffffffffffffff
MAX_UINT32 = 0xffffffff
MAX_UINT64 = 0xffffffffffffffff
