# test_log_utils.py -- Tests for log_utils
# Copyright (C) 2026 The bitmapcheck Authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# bitmapcheck is dual-licensed under the Apache License, Version 2.0 and the
# GNU General Public License as published by the Free Software Foundation;
# version 2.0 or (at your option) any later version. You can redistribute it
# and/or modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Tests for bitmapcheck.log_utils."""

import logging
import os

from bitmapcheck.log_utils import (
    _BITMAPCHECK_LOGGER,
    _NULL_HANDLER,
    TRACE_VARIABLE,
    default_logging_config,
    getLogger,
    remove_null_handler,
    trace_handler,
    trace_target,
)

from . import TestCase


class LogUtilsTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.overrideEnv(TRACE_VARIABLE, None)
        self.overrideEnv("GIT_TRACE", None)
        original_handlers = list(_BITMAPCHECK_LOGGER.handlers)
        root_logger = logging.getLogger()
        root_handlers = list(root_logger.handlers)
        root_level = root_logger.level

        def restore() -> None:
            for handler in root_logger.handlers:
                if handler not in root_handlers:
                    handler.close()
            _BITMAPCHECK_LOGGER.handlers = original_handlers
            root_logger.handlers = root_handlers
            root_logger.level = root_level

        self.addCleanup(restore)
        if _NULL_HANDLER not in _BITMAPCHECK_LOGGER.handlers:
            _BITMAPCHECK_LOGGER.addHandler(_NULL_HANDLER)
        root_logger.handlers = []
        root_logger.level = logging.WARNING

    def _flush(self) -> None:
        for handler in logging.getLogger().handlers:
            handler.flush()

    def test_get_logger(self) -> None:
        logger = getLogger("bitmapcheck.scenarios")
        self.assertEqual("bitmapcheck.scenarios", logger.name)
        self.assertIs(_BITMAPCHECK_LOGGER, logger.parent)

    def test_silent_as_library(self) -> None:
        self.assertIn(_NULL_HANDLER, _BITMAPCHECK_LOGGER.handlers)

    def test_remove_null_handler(self) -> None:
        remove_null_handler()
        self.assertNotIn(_NULL_HANDLER, _BITMAPCHECK_LOGGER.handlers)
        # Removing twice is harmless.
        remove_null_handler()

    def test_trace_target_disabled(self) -> None:
        self.assertIsNone(trace_target())
        for value in ("", "0", "false", "FALSE", "10", "relative/trace.log"):
            self.assertIsNone(trace_target(value), value)

    def test_trace_target_stderr(self) -> None:
        for value in ("1", "2", "true", "True"):
            self.assertEqual(2, trace_target(value))

    def test_trace_target_fd(self) -> None:
        for fd in range(3, 10):
            self.assertEqual(fd, trace_target(str(fd)))

    def test_trace_target_path(self) -> None:
        path = os.path.join(self.mkdtemp(), "trace.log")
        self.assertEqual(path, trace_target(path))

    def test_trace_target_directory(self) -> None:
        tracedir = self.mkdtemp()
        self.assertEqual(
            os.path.join(tracedir, f"trace.{os.getpid()}"), trace_target(tracedir)
        )

    def test_trace_target_from_environment(self) -> None:
        self.overrideEnv(TRACE_VARIABLE, "true")
        self.assertEqual(2, trace_target())

    def test_git_trace_is_not_ours(self) -> None:
        self.overrideEnv("GIT_TRACE", "1")
        self.assertIsNone(trace_target())

    def test_trace_handler_file(self) -> None:
        path = os.path.join(self.mkdtemp(), "trace.log")
        handler = trace_handler(path)
        self.addCleanup(handler.close)
        self.assertIsInstance(handler, logging.FileHandler)
        self.assertEqual(path, handler.baseFilename)

    def test_trace_handler_missing_directory(self) -> None:
        path = os.path.join(self.mkdtemp(), "missing", "trace.log")
        self.assertRaises(OSError, trace_handler, path)

    def test_default_config(self) -> None:
        default_logging_config()
        root_logger = logging.getLogger()
        self.assertNotIn(_NULL_HANDLER, _BITMAPCHECK_LOGGER.handlers)
        self.assertTrue(root_logger.handlers)
        self.assertEqual(logging.INFO, root_logger.level)

    def test_default_config_verbose(self) -> None:
        default_logging_config(verbose=True)
        self.assertEqual(logging.DEBUG, logging.getLogger().level)

    def test_default_config_with_trace(self) -> None:
        self.overrideEnv(TRACE_VARIABLE, "1")
        default_logging_config()
        self.assertEqual(logging.DEBUG, logging.getLogger().level)

    def test_trace_to_file(self) -> None:
        path = os.path.join(self.mkdtemp(), "trace.log")
        self.overrideEnv(TRACE_VARIABLE, path)
        default_logging_config()
        getLogger("bitmapcheck.pipeline").info("running %s", "fixture")
        self._flush()
        with open(path) as f:
            contents = f.read()
        self.assertIn("bitmapcheck.pipeline INFO: running fixture", contents)

    def test_trace_to_directory(self) -> None:
        tracedir = self.mkdtemp()
        self.overrideEnv(TRACE_VARIABLE, tracedir)
        default_logging_config()
        self.assertEqual([f"trace.{os.getpid()}"], os.listdir(tracedir))

    def test_git_trace_file_left_to_git(self) -> None:
        path = os.path.join(self.mkdtemp(), "git-trace.log")
        self.overrideEnv("GIT_TRACE", path)
        default_logging_config()
        getLogger("bitmapcheck.pipeline").info("running %s", "fixture")
        self._flush()
        self.assertFalse(os.path.exists(path))
        self.assertEqual(logging.INFO, logging.getLogger().level)

    def test_unopenable_trace_falls_back_to_stderr(self) -> None:
        path = os.path.join(self.mkdtemp(), "missing", "trace.log")
        self.overrideEnv(TRACE_VARIABLE, path)
        default_logging_config()
        self.assertEqual(logging.INFO, logging.getLogger().level)
        self.assertFalse(os.path.exists(path))
