# compare.py -- Comparing reference and bitmap traversal output
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

"""Comparing reference and bitmap traversal output.

The two code paths of rev-list describe the same set of objects differently:

- regular output is in traversal order, whereas bitmap output is grouped by
  type, with objects that are not in a pack at the end;
- regular output appends a space and the path name to non-commit objects,
  bitmap output does not.

Both are normalized to a sorted list of bare object ids before comparing.
"""

__all__ = [
    "TraversalComparator",
    "compare_counts",
    "compare_traversal",
    "normalize_accelerated",
    "normalize_reference",
]

from .errors import ComparisonMismatch, SuspiciousIdentical


def _lines(output: bytes) -> list[bytes]:
    return [line for line in output.splitlines() if line.strip()]


def normalize_reference(output: bytes) -> list[str]:
    """Reduce reference traversal output to sorted object ids."""
    return sorted({line.split(b" ", 1)[0].decode("ascii") for line in _lines(output)})


def normalize_accelerated(output: bytes) -> list[str]:
    """Reduce bitmap traversal output to sorted object ids."""
    return sorted({line.strip().decode("ascii") for line in _lines(output)})


def compare_traversal(
    expected: bytes,
    actual: bytes,
    confirm: bool = True,
    query: str | None = None,
) -> None:
    """Check that two traversals name the same objects.

    Args:
        expected: Output of the reference traversal.
        actual: Output of the bitmap traversal.
        confirm: Fail when the raw outputs are byte-identical. Pass False
            when the two outputs are not expected to be decorated
            differently.
        query: Description of the query, for error messages.

    Raises:
        SuspiciousIdentical: if confirm is set and the raw outputs match.
        ComparisonMismatch: if the normalized object sets differ.
    """
    if confirm and expected == actual:
        raise SuspiciousIdentical(query)
    want = set(normalize_reference(expected))
    got = set(normalize_accelerated(actual))
    if want != got:
        raise ComparisonMismatch(query, missing=want - got, extra=got - want)


def _parse_count(output: bytes, query: str | None) -> int:
    try:
        return int(output.strip())
    except ValueError as e:
        raise ComparisonMismatch(
            query, expected="a count", got=output.decode("utf-8", "replace")
        ) from e


def compare_counts(expected: bytes, actual: bytes, query: str | None = None) -> int:
    """Check that two --count outputs agree.

    Returns:
        The agreed count.

    Raises:
        ComparisonMismatch: if the counts differ or are not numbers.
    """
    want = _parse_count(expected, query)
    got = _parse_count(actual, query)
    if want != got:
        raise ComparisonMismatch(query, expected=want, got=got)
    return want


class TraversalComparator:
    """Compares results of one query run through both traversal paths."""

    def counts(self, expected: bytes, actual: bytes, query: str | None = None) -> int:
        return compare_counts(expected, actual, query=query)

    def traversal(
        self,
        expected: bytes,
        actual: bytes,
        confirm: bool = True,
        query: str | None = None,
    ) -> None:
        compare_traversal(expected, actual, confirm=confirm, query=query)

    def contains(self, output: bytes, oid: str, query: str | None = None) -> None:
        """Check that oid is one of the objects listed in output.

        Raises:
            ComparisonMismatch: if it is not.
        """
        if oid not in normalize_reference(output):
            raise ComparisonMismatch(query, missing=[oid])
