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

import pytest

from mcbinary.exceptions import (InvalidArgumentException,
                                 KeyExistsException,
                                 KeyNotFoundException)
from mcbinary.result import (CounterResult,
                             GetCasResult,
                             GetKCasResult)


class CasOperationTestSuite:
    TEST_MANIFEST = [
        'test_add_cas',
        'test_append_cas',
        'test_cas_out_of_range',
        'test_decrement_cas',
        'test_delete_cas',
        'test_delete_cas_stale',
        'test_get_cas',
        'test_getk_cas',
        'test_increment_cas',
        'test_increment_cas_stale',
        'test_prepend_cas',
        'test_replace_cas',
        'test_replace_cas_stale',
        'test_set_cas',
        'test_set_cas_missing_key',
        'test_set_cas_stale',
        'test_set_cas_zero',
        'test_touch_cas',
        'test_touch_cas_stale',
    ]

    def test_add_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.add_cas(key, b'value', 0, 0)
        assert cas != 0
        assert mc_env.proto.get_cas(key).cas == cas
        with pytest.raises(KeyExistsException):
            mc_env.proto.add_cas(key, b'other', 0, 0)

    def test_append_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'abc', 0, 0, 0)
        new_cas = mc_env.proto.append_cas(key, b'def', cas)
        assert new_cas != cas
        with pytest.raises(KeyExistsException):
            mc_env.proto.append_cas(key, b'ghi', cas)
        assert mc_env.proto.get_cas(key) == GetCasResult(b'abcdef', 0, new_cas)

    @pytest.mark.parametrize('cas', [-1, 2**64, '1', None])
    def test_cas_out_of_range(self, mc_env, cas):
        with pytest.raises(InvalidArgumentException):
            mc_env.proto.set_cas(mc_env.get_new_key(), b'value', 0, 0, cas)

    def test_decrement_cas(self, mc_env):
        key = mc_env.get_new_key()
        result = mc_env.proto.decrement_cas(key, 1, 20, 0, 0)
        assert isinstance(result, CounterResult)
        assert result.value == 20
        result2 = mc_env.proto.decrement_cas(key, 5, 0, 0, result.cas)
        assert result2.value == 15
        assert result2.cas != result.cas

    def test_delete_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 0, 0, 0)
        mc_env.proto.delete_cas(key, cas)
        with pytest.raises(KeyNotFoundException):
            mc_env.proto.get(key)

    def test_delete_cas_stale(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 0, 0, 0)
        mc_env.proto.set(key, b'changed', 0, 0)
        with pytest.raises(KeyExistsException):
            mc_env.proto.delete_cas(key, cas)
        assert mc_env.proto.get(key).value == b'changed'

    def test_get_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 4, 0, 0)
        result = mc_env.proto.get_cas(key)
        assert result == GetCasResult(b'value', 4, cas)
        value, flags, cas_out = result
        assert cas_out == cas

    def test_getk_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 4, 0, 0)
        assert mc_env.proto.getk_cas(key) == GetKCasResult(key, b'value', 4, cas)

    def test_increment_cas(self, mc_env):
        key = mc_env.get_new_key()
        first = mc_env.proto.increment_cas(key, 1, 100, 0, 0)
        assert first.value == 100
        second = mc_env.proto.increment_cas(key, 1, 100, 0, first.cas)
        assert second.value == 101
        assert mc_env.proto.get_cas(key).cas == second.cas

    def test_increment_cas_stale(self, mc_env):
        key = mc_env.get_new_key()
        first = mc_env.proto.increment_cas(key, 1, 100, 0, 0)
        mc_env.proto.increment(key, 1, 0, 0)
        with pytest.raises(KeyExistsException):
            mc_env.proto.increment_cas(key, 1, 0, 0, first.cas)
        assert mc_env.proto.get(key).value == b'101'

    def test_prepend_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'def', 0, 0, 0)
        new_cas = mc_env.proto.prepend_cas(key, b'abc', cas)
        assert mc_env.proto.get_cas(key) == GetCasResult(b'abcdef', 0, new_cas)
        with pytest.raises(KeyExistsException):
            mc_env.proto.prepend_cas(key, b'xyz', cas)

    def test_replace_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 0, 0, 0)
        new_cas = mc_env.proto.replace_cas(key, b'replaced', 1, 0, cas)
        assert mc_env.proto.get_cas(key) == GetCasResult(b'replaced', 1, new_cas)

    def test_replace_cas_stale(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 0, 0, 0)
        mc_env.proto.replace_cas(key, b'replaced', 0, 0, cas)
        with pytest.raises(KeyExistsException):
            mc_env.proto.replace_cas(key, b'again', 0, 0, cas)

    def test_set_cas(self, mc_env):
        key = mc_env.get_new_key()
        cas1 = mc_env.proto.set_cas(key, b'one', 0, 0, 0)
        cas2 = mc_env.proto.set_cas(key, b'two', 0, 0, cas1)
        assert cas2 != cas1
        assert mc_env.proto.get_cas(key) == GetCasResult(b'two', 0, cas2)

    def test_set_cas_missing_key(self, mc_env):
        with pytest.raises(KeyNotFoundException):
            mc_env.proto.set_cas(mc_env.get_new_key(), b'value', 0, 0, 12345)

    def test_set_cas_stale(self, mc_env):
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'one', 0, 0, 0)
        mc_env.proto.set(key, b'two', 0, 0)
        with pytest.raises(KeyExistsException) as ex:
            mc_env.proto.set_cas(key, b'three', 0, 0, cas)
        assert ex.value.context.key == key
        assert mc_env.proto.get(key).value == b'two'

    def test_set_cas_zero(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'one', 0, 0)
        cas = mc_env.proto.set_cas(key, b'two', 0, 0, 0)
        assert cas != 0
        assert mc_env.proto.get_cas(key).cas == cas

    def test_touch_cas(self, mc_env):
        key = mc_env.get_new_key()
        mc_env.proto.set(key, b'value', 0, 0)
        cas = mc_env.proto.touch_cas(key, 300, 0)
        assert isinstance(cas, int)
        assert mc_env.proto.get(key).value == b'value'

    def test_touch_cas_stale(self, mc_env):
        mc_env.require_mock_server()
        key = mc_env.get_new_key()
        cas = mc_env.proto.set_cas(key, b'value', 0, 0, 0)
        with pytest.raises(KeyExistsException):
            mc_env.proto.touch_cas(key, 300, cas + 1)
        assert mc_env.server.items[key].expiration == 0
        assert mc_env.proto.touch_cas(key, 300, cas) == cas


class ClassicCasOperationTests(CasOperationTestSuite):
    @pytest.fixture(scope='class')
    def manifest_validated(self):
        def valid_test_method(meth):
            attr = getattr(ClassicCasOperationTests, meth)
            return callable(attr) and not meth.startswith('__') and meth.startswith('test')
        method_list = [meth for meth in dir(ClassicCasOperationTests) if valid_test_method(meth)]
        return set(CasOperationTestSuite.TEST_MANIFEST).symmetric_difference(method_list)

    @pytest.fixture(name='mc_env')
    def mcbinary_test_environment(self, mc_base_env, manifest_validated):
        if manifest_validated:
            pytest.fail(f'Test manifest not validated.  Missing/extra tests: {manifest_validated}.')

        mc_base_env.setup()
        yield mc_base_env
        mc_base_env.teardown()
