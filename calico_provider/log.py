# Copyright (c) 2017 Tigera, Inc. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
calico_provider.log
~~~~~~~~~~~~~~~~~~~

Logging setup.  Logs go to stderr, since stdout carries command output;
a log file can be added once the configuration is known.
"""
import logging
import logging.handlers
import os
import sys

_log = logging.getLogger(__name__)

FORMAT_STRING = ('%(asctime)s [%(levelname)s][%(process)s/%(thread)d] '
                 '%(name)s %(lineno)d: %(message)s')

LOG_LEVEL_ENV = "TF_LOG"
LOG_PATH_ENV = "TF_LOG_PATH"

LOGLEVELS = {"none":      None,
             "trace":     logging.DEBUG,
             "debug":     logging.DEBUG,
             "info":      logging.INFO,
             "warn":      logging.WARNING,
             "warning":   logging.WARNING,
             "err":       logging.ERROR,
             "error":     logging.ERROR,
             "crit":      logging.CRITICAL,
             "critical":  logging.CRITICAL}


def parse_log_level(name, default=logging.WARNING):
    """
    :param name: level name, case insensitive, or None.
    :return: a logging level, or None to disable the log.
    :raises ValueError: if the name is not a known level.
    """
    if not name:
        return default
    try:
        return LOGLEVELS[name.lower()]
    except KeyError:
        raise ValueError("Invalid log level %r" % name)


def default_logging():
    """
    Sets up the default logging: the root logger at DEBUG with a
    StreamHandler on stderr at WARNING.

    File logging is added by complete_logging() once the log settings are
    known.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.WARNING)
    stream_handler.setFormatter(logging.Formatter(FORMAT_STRING))
    root_logger.addHandler(stream_handler)


def complete_logging(logfile=None,
                     file_level=logging.DEBUG,
                     stream_level=logging.WARNING):
    """
    Updates the logging configuration based on learned configuration.

    This function must only be called once, after default_logging() has
    been called.  The xyz_level parameters may be a valid logging level or
    None to disable that log entirely.
    """
    root_logger = logging.getLogger()

    file_handler = None
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.handlers.WatchedFileHandler):
            file_handler = handler
            if file_level is None:
                root_logger.removeHandler(handler)
            else:
                handler.setLevel(file_level)
        elif isinstance(handler, logging.StreamHandler):
            if stream_level is None:
                root_logger.removeHandler(handler)
            else:
                handler.setLevel(stream_level)

    # If we've been given a log file, log to file as well.
    if logfile and file_level is not None and not file_handler:
        log_dir = os.path.dirname(logfile)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.WatchedFileHandler(logfile)
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(FORMAT_STRING))
        root_logger.addHandler(file_handler)

    # Disable all logging below the minimum level that we care about.
    levels = [file_level if logfile else None, stream_level]
    levels = [l if l is not None else logging.CRITICAL + 1 for l in levels]
    logging.disable(min(levels) - 1)

    _log.info("Logging initialized")


def logging_from_env(level=None, logfile=None):
    """
    Complete logging from explicit settings, falling back to TF_LOG and
    TF_LOG_PATH.  TF_LOG sets the stderr level, or the file level when
    TF_LOG_PATH is set.
    """
    level = parse_log_level(level or os.environ.get(LOG_LEVEL_ENV))
    logfile = logfile or os.environ.get(LOG_PATH_ENV)
    if logfile:
        complete_logging(logfile, file_level=level,
                         stream_level=logging.ERROR)
    else:
        complete_logging(None, stream_level=level)
