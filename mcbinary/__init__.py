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

from functools import partial, partialmethod

try:
    from mcbinary._version import __version__
except ImportError:
    __version__ = '0.0.0-could-not-find-version'

MCBINARY_VERSION = f'python/{__version__}'


""" Add support for logging, adding a TRACE level to logging """
import logging  # nopep8 # isort:skip # noqa: E402
import os  # nopep8 # isort:skip # noqa: E402

logging.TRACE = 5
logging.addLevelName(logging.TRACE, 'TRACE')
logging.Logger.trace = partialmethod(logging.Logger.log, logging.TRACE)
logging.trace = partial(logging.log, logging.TRACE)

_LOG_FORMAT = "[%(asctime)s] - [%(module)s] [%(thread)d] - %(levelname)s - %(message)s"

"""

Logging methods

"""


def configure_logging(name,
                      level=logging.INFO,
                      parent_logger=None,
                      handler=None):
    """Send the records of the named logger to a console handler (or the given handler).

    Args:
        name (str): Logger name, usually ``'mcbinary'`` to capture the whole library.
        level (int, optional): Level to set on the logger.  Defaults to ``logging.INFO``.
        parent_logger (logging.Logger, optional): If given, ``name`` is created as its child.
        handler (logging.Handler, optional): Handler to attach instead of a console handler.

    Returns:
        logging.Logger: The configured logger.
    """
    if parent_logger:
        name = f'{parent_logger.name}.{name}'
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.debug('mcbinary version: %s', MCBINARY_VERSION)
    return logger


def configure_console_logger():
    log_level = os.getenv('MCBINARY_LOG_LEVEL', None)
    if not log_level:
        return
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    log_file = os.getenv('MCBINARY_LOG_FILE', None)
    handler = logging.FileHandler(log_file) if log_file else None
    configure_logging('mcbinary', level=level, handler=handler)


logging.getLogger('mcbinary').addHandler(logging.NullHandler())
configure_console_logger()
