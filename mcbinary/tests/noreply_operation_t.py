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

import logging

import pytest

from mcbinary.constants import Opcode
from mcbinary.exceptions import InvalidArgumentException, KeyNotFoundException
from mcbinary.result import GetResult


class NoReplyOperationTestSuite:
    TEST_MANIFEST = [
        'test_add_noreply',
        'test_add_noreply_existing_key',
        'test_append_noreply',
        'test_decrement_noreply',
        'test_delete_noreply',
        'test_increment_noreply',
        'test_noreply_error_before_multi',
        'test_noreply_error_logged',
        'test_noreply_invalid_arguments',
        'test_noreply_uses_quiet_opcodes',
        'test_prepend_noreply',
        'test_replace_noreply',
        'test_replace_noreply_missing_key',
        'test_set_noreply',
    ]

    def test_add_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.add_noreply(key, b'value', 2, 0)
        assert mc_env.proto.get(key) == GetResult(b'value', 2)

    def test_add_noreply_existing_key(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'original', 0, 0)
        assert mc_env.proto.add_noreply(key, b'value', 0, 0) is None
        # the KEY_EXISTS frame of the add is discarded, not returned for the get
        assert mc_env.proto.get(key).value == b'original'
        assert not mc_env.proto.closed

    def test_append_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'abc', 0, 0)
        mc_env.proto.append_noreply(key, b'def')
        assert mc_env.proto.get(key).value == b'abcdef'

    def test_decrement_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'10', 0, 0)
        mc_env.proto.decrement_noreply(key, 4, 0, 0)
        # memcached pads a counter that shrank with trailing spaces
        assert mc_env.proto.get(key).value.strip() == b'6'

    def test_delete_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'value', 0, 0)
        mc_env.proto.delete_noreply(key)
        with pytest.raises(KeyNotFoundException):
            mc_env.proto.get(key)

    def test_increment_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.increment_noreply(key, 1, 41, 0)
        mc_env.proto.increment_noreply(key, 1, 41, 0)
        assert mc_env.proto.get(key).value == b'42'

    def test_noreply_error_before_multi(self, mc_env):
        pairs = mc_env.get_new_pairs(3)
        mc_env.proto.replace_noreply(pairs[0].key, b'value', 0, 0)
        mc_env.proto.delete_noreply(pairs[1].key)
        mc_env.proto.set_multi({p.key: (p.value, 0, 0) for p in pairs})
        result = mc_env.proto.get_multi([p.key for p in pairs])
        assert result == {p.key: GetResult(p.value, 0) for p in pairs}

    def test_noreply_error_logged(self, mc_env, caplog):
        mc_env.require_mock_server()
        caplog.set_level(logging.WARNING, logger='mcbinary')
        key = mc_env.get_new_key()
        mc_env.proto.delete_noreply(key)
        mc_env.proto.noop()
        messages = [r.getMessage() for r in caplog.records if r.name == 'mcbinary.binary']
        assert len(messages) == 1
        assert 'no-reply' in messages[0]
        assert 'KeyNotFoundException' in messages[0]

    def test_noreply_invalid_arguments(self, mc_env):
        with pytest.raises(InvalidArgumentException):
            mc_env.proto.set_noreply(mc_env.get_new_key(), b'value', -1, 0)
        with pytest.raises(InvalidArgumentException):
            mc_env.proto.increment_noreply(mc_env.get_new_key(), 2**64, 0, 0)
        mc_env.proto.noop()

    def test_noreply_uses_quiet_opcodes(self, mc_env):
        mc_env.require_mock_server()
        key = mc_env.get_new_key()
        mc_env.proto.set_noreply(key, b'1', 0, 0)
        mc_env.proto.add_noreply(key, b'1', 0, 0)
        mc_env.proto.replace_noreply(key, b'2', 0, 0)
        mc_env.proto.increment_noreply(key, 1, 0, 0)
        mc_env.proto.decrement_noreply(key, 1, 0, 0)
        mc_env.proto.append_noreply(key, b'0')
        mc_env.proto.prepend_noreply(key, b'1')
        mc_env.proto.delete_noreply(key)
        assert [r.opcode for r in mc_env.server.requests] == [Opcode.SETQ, Opcode.ADDQ, Opcode.REPLACEQ,
                                                              Opcode.INCREMENTQ, Opcode.DECREMENTQ,
                                                              Opcode.APPENDQ, Opcode.PREPENDQ, Opcode.DELETEQ]
        # only the ADDQ failed, so only its frame is waiting
        assert mc_env.stream.pending == 24 + len(b'Data exists for key.')
        mc_env.proto.noop()
        assert mc_env.stream.pending == 0

    def test_prepend_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'def', 0, 0)
        mc_env.proto.prepend_noreply(key, b'abc')
        assert mc_env.proto.get(key).value == b'abcdef'

    def test_replace_noreply(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'value', 0, 0)
        mc_env.proto.replace_noreply(key, b'replaced', 8, 0)
        assert mc_env.proto.get(key) == GetResult(b'replaced', 8)

    def test_replace_noreply_missing_key(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.replace_noreply(key, b'value', 0, 0)
        mc_env.proto.noop()
        with pytest.raises(KeyNotFoundException):
            mc_env.proto.get(key)

    def test_set_noreply(self, mc_env):
        key = mc_env.get_new_key()
        assert mc_env.proto.set_noreply(key, b'value', 1, 0) is None
        assert mc_env.proto.get(key) == GetResult(b'value', 1)


class ClassicNoReplyOperationTests(NoReplyOperationTestSuite):
    @pytest.fixture(scope='class')
    def manifest_validated(self):
        def valid_test_method(meth):
            attr = getattr(ClassicNoReplyOperationTests, meth)
            return callable(attr) and not meth.startswith('__') and meth.startswith('test')
        method_list = [meth for meth in dir(ClassicNoReplyOperationTests) if valid_test_method(meth)]
        return set(NoReplyOperationTestSuite.TEST_MANIFEST).symmetric_difference(method_list)

    @pytest.fixture(name='mc_env')
    def mcbinary_test_environment(self, mc_base_env, manifest_validated):
        if manifest_validated:
            pytest.fail(f'Test manifest not validated.  Missing/extra tests: {manifest_validated}.')

        mc_base_env.setup()
        yield mc_base_env
        mc_base_env.teardown()
