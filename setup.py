#  Copyright 2016-2023. Couchbase, Inc.
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

import os
import re

from setuptools import find_packages, setup

MCBINARY_README = os.path.join(os.path.dirname(__file__), 'README.md')
MCBINARY_VERSION_FILE = os.path.join(os.path.dirname(__file__), 'mcbinary', '_version.py')


def get_version():
    with open(MCBINARY_VERSION_FILE, "r") as version_file:
        match = re.search(r"^__version__ = ['\"]([^'\"]+)['\"]", version_file.read(), re.M)
    if match is None:
        raise RuntimeError(f'Unable to find __version__ in {MCBINARY_VERSION_FILE}.')
    return match.group(1)


MCBINARY_VERSION = get_version()

setup(name='mcbinary',
      version=MCBINARY_VERSION,
      python_requires='>=3.8',
      packages=find_packages(
          include=['mcbinary', 'mcbinary.*'],
          exclude=['mcbinary.tests']),
      extras_require={
          'test': ['pytest>=7.0'],
      },
      license="Apache License 2.0",
      description="Python client for the memcached binary protocol",
      long_description=open(MCBINARY_README, "r").read(),
      long_description_content_type='text/markdown',
      keywords=["memcached", "binary protocol", "cache"],
      classifiers=[
          "Development Status :: 4 - Beta",
          "License :: OSI Approved :: Apache Software License",
          "Intended Audience :: Developers",
          "Operating System :: OS Independent",
          "Programming Language :: Python",
          "Programming Language :: Python :: 3",
          "Programming Language :: Python :: Implementation :: CPython",
          "Topic :: Database",
          "Topic :: Software Development :: Libraries",
          "Topic :: Software Development :: Libraries :: Python Modules"],
      )
