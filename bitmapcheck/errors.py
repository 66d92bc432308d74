# errors.py -- Failure classes for bitmapcheck
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

"""Failure classes reported by the bitmap checks."""

# Errors specific to running git live in bitmapcheck.git, close to the code
# that raises them.

from collections.abc import Iterable


class BitmapCheckError(Exception):
    """Base class for all failures reported by a scenario."""


class SetupFailure(BitmapCheckError):
    """Building the fixture or preparing a transfer failed."""

    def __init__(self, stage: str, message: str) -> None:
        """Initialize a SetupFailure.

        Args:
            stage: Name of the setup step that failed.
            message: Description of the failure.
        """
        self.stage = stage
        self.message = message
        BitmapCheckError.__init__(self, f"{stage}: {message}")


def _format_ids(ids: Iterable[str]) -> str:
    return ", ".join(ids) or "none"


class ComparisonMismatch(BitmapCheckError):
    """Reference and accelerated results differ."""

    def __init__(
        self,
        query: str | None,
        expected: object = None,
        got: object = None,
        missing: Iterable[str] = (),
        extra: Iterable[str] = (),
    ) -> None:
        """Initialize a ComparisonMismatch.

        Args:
            query: Description of the query that diverged.
            expected: Value produced by the reference path, for scalar results.
            got: Value produced by the accelerated path, for scalar results.
            missing: Identifiers only present in the reference result.
            extra: Identifiers only present in the accelerated result.
        """
        self.query = query
        self.expected = expected
        self.got = got
        self.missing = sorted(missing)
        self.extra = sorted(extra)
        if self.missing or self.extra:
            message = (
                f"missing from accelerated result: {_format_ids(self.missing)}; "
                f"unexpected in accelerated result: {_format_ids(self.extra)}"
            )
        else:
            message = f"expected {expected!r}, got {got!r}"
        if query is not None:
            message = f"{query}: {message}"
        BitmapCheckError.__init__(self, message)


class SuspiciousIdentical(BitmapCheckError):
    """Raw outputs matched although their decoration should differ.

    This means the accelerated path was most likely never taken.
    """

    def __init__(self, query: str | None) -> None:
        """Initialize a SuspiciousIdentical failure.

        Args:
            query: Description of the query whose outputs were identical.
        """
        self.query = query
        message = "identical raw outputs; are you sure bitmaps were used?"
        if query is not None:
            message = f"{query}: {message}"
        BitmapCheckError.__init__(self, message)


class AssertionFailure(BitmapCheckError):
    """A point inspection did not return the expected value."""

    def __init__(self, what: str, expected: object, got: object) -> None:
        """Initialize an AssertionFailure.

        Args:
            what: Description of the inspected value.
            expected: The expected value.
            got: The value actually found.
        """
        self.what = what
        self.expected = expected
        self.got = got
        BitmapCheckError.__init__(self, f"{what}: expected {expected!r}, got {got!r}")
