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

pytest_plugins = [
    'tests.mcbinary_config',
    'tests.environments.test_environment'
]

_CODEC_TESTS = [
    "mcbinary/tests/status_t.py::ClassicStatusTests",
    "mcbinary/tests/exceptions_t.py::ClassicExceptionTests",
    "mcbinary/tests/packet_t.py::ClassicPacketTests",
    "mcbinary/tests/version_t.py::ClassicVersionTests",
    "mcbinary/tests/options_t.py::ClassicProtoOptionsTests",
]

_KV_TESTS = [
    "mcbinary/tests/operation_t.py::ClassicOperationTests",
    "mcbinary/tests/cas_operation_t.py::ClassicCasOperationTests",
    "mcbinary/tests/multi_operation_t.py::ClassicMultiOperationTests",
    "mcbinary/tests/noreply_operation_t.py::ClassicNoReplyOperationTests",
]

_SERVER_TESTS = [
    "mcbinary/tests/server_operation_t.py::ClassicServerOperationTests",
    "mcbinary/tests/connection_t.py::ClassicConnectionTests",
]


@pytest.fixture(name="mcbinary_config", scope="session")
def get_config(mcbinary_test_config):
    if mcbinary_test_config.real_server_enabled:
        print("Real server enabled!")

    return mcbinary_test_config


def pytest_collection_modifyitems(items):
    for item in items:
        item_details = item.nodeid.split('::')
        test_class_path = '::'.join(item_details[:-1])
        if test_class_path in _CODEC_TESTS:
            item.add_marker(pytest.mark.mcbinary_codec)
        elif test_class_path in _KV_TESTS:
            item.add_marker(pytest.mark.mcbinary_kv)
        elif test_class_path in _SERVER_TESTS:
            item.add_marker(pytest.mark.mcbinary_server)
