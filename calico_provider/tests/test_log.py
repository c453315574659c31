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
Tests for logging setup.
"""
import logging
import logging.handlers
import os
import shutil
import tempfile
import unittest

from mock import patch
from parameterized import parameterized

from calico_provider import log


class TestLog(unittest.TestCase):

    def setUp(self):
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.saved_level = self.root.level
        self.root.handlers = []
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        for handler in self.root.handlers:
            handler.close()
        self.root.handlers = self.saved_handlers
        self.root.setLevel(self.saved_level)
        logging.disable(logging.NOTSET)
        shutil.rmtree(self.tmpdir)

    @parameterized.expand([
        (None, logging.WARNING),
        ("", logging.WARNING),
        ("TRACE", logging.DEBUG),
        ("info", logging.INFO),
        ("none", None),
    ])
    def test_parse_log_level(self, name, level):
        self.assertEqual(log.parse_log_level(name), level)

    def test_parse_log_level_invalid(self):
        self.assertRaises(ValueError, log.parse_log_level, "loud")

    def test_default_logging(self):
        log.default_logging()
        self.assertEqual(self.root.level, logging.DEBUG)
        [handler] = self.root.handlers
        self.assertEqual(handler.level, logging.WARNING)

    def test_complete_logging_to_file(self):
        logfile = os.path.join(self.tmpdir, "logs", "provider.log")
        log.default_logging()
        log.complete_logging(logfile, file_level=logging.INFO,
                             stream_level=logging.ERROR)
        file_handlers = [h for h in self.root.handlers if isinstance(
            h, logging.handlers.WatchedFileHandler)]
        self.assertEqual(len(file_handlers), 1)
        self.assertEqual(file_handlers[0].level, logging.INFO)
        self.assertTrue(os.path.exists(logfile))

    def test_complete_logging_disables_stream(self):
        log.default_logging()
        log.complete_logging(None, stream_level=None)
        self.assertEqual(self.root.handlers, [])

    def test_logging_from_env(self):
        logfile = os.path.join(self.tmpdir, "env.log")
        log.default_logging()
        env = {"TF_LOG": "DEBUG", "TF_LOG_PATH": logfile}
        with patch.dict(os.environ, env):
            log.logging_from_env()
        levels = dict((type(h), h.level) for h in self.root.handlers)
        self.assertEqual(levels[logging.handlers.WatchedFileHandler],
                         logging.DEBUG)
        self.assertEqual(levels[logging.StreamHandler], logging.ERROR)

    def test_logging_from_args_override_env(self):
        log.default_logging()
        with patch.dict(os.environ, {"TF_LOG": "DEBUG"}):
            log.logging_from_env(level="error")
        [handler] = self.root.handlers
        self.assertEqual(handler.level, logging.ERROR)
