# log_utils.py -- Logging utilities for bitmapcheck
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

"""Logging setup for bitmapcheck.

Modules log through the standard logging module under the "bitmapcheck"
namespace. Imported as a library the package stays silent. The command line
calls default_logging_config, which sends records to stderr, or to wherever
BITMAPCHECK_TRACE points.

BITMAPCHECK_TRACE takes the values git takes for GIT_TRACE but only covers
bitmapcheck's own records. GIT_TRACE is left to the git processes the checks
start, so their trace never lands in the same stream.
"""

import logging
import os
import sys

getLogger = logging.getLogger

TRACE_VARIABLE = "BITMAPCHECK_TRACE"
LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

_NULL_HANDLER = logging.NullHandler()
_BITMAPCHECK_LOGGER = getLogger("bitmapcheck")
_BITMAPCHECK_LOGGER.addHandler(_NULL_HANDLER)


def trace_target(value: str | None = None) -> str | int | None:
    """Work out where trace output should go.

    Args:
        value: Setting to interpret; defaults to $BITMAPCHECK_TRACE.

    Returns:
        None when tracing is off, 2 for stderr, a file descriptor from 3 to 9
        or the absolute path of a file or directory.
    """
    if value is None:
        value = os.environ.get(TRACE_VARIABLE, "")
    if value.lower() in ("", "0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if value.isdigit():
        fd = int(value)
        return fd if 3 <= fd <= 9 else None
    if not os.path.isabs(value):
        return None
    if os.path.isdir(value):
        return os.path.join(value, f"trace.{os.getpid()}")
    return value


def trace_handler(target: str | int) -> logging.Handler:
    """Open a handler writing to a target returned by trace_target.

    Raises:
        OSError: if the descriptor or file cannot be opened.
    """
    if target == 2:
        return logging.StreamHandler(sys.stderr)
    if isinstance(target, int):
        return logging.StreamHandler(os.fdopen(target, "w", buffering=1))
    return logging.FileHandler(target, mode="a")


def default_logging_config(verbose: bool = False) -> None:
    """Route bitmapcheck records to stderr or the trace target.

    Args:
        verbose: Log every git invocation, not just stage progress. Tracing
            always does.
    """
    remove_null_handler()

    target = trace_target()
    if target is not None:
        try:
            handler = trace_handler(target)
        except OSError as e:
            sys.stderr.write(f"Warning: cannot trace to {target}: {e}\n")
        else:
            logging.basicConfig(
                level=logging.DEBUG, handlers=[handler], format=TRACE_FORMAT
            )
            return

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        stream=sys.stderr,
        format=LOG_FORMAT,
    )


def remove_null_handler() -> None:
    """Let bitmapcheck records reach the root logger's handlers."""
    _BITMAPCHECK_LOGGER.removeHandler(_NULL_HANDLER)
