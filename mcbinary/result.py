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

from collections import namedtuple

# Results are tuples so callers can unpack them directly, e.g. ``value, flags = proto.get(key)``.

GetResult = namedtuple("GetResult", "value flags")
GetKResult = namedtuple("GetKResult", "key value flags")
GetCasResult = namedtuple("GetCasResult", "value flags cas")
GetKCasResult = namedtuple("GetKCasResult", "key value flags cas")
CounterResult = namedtuple("CounterResult", "value cas")
