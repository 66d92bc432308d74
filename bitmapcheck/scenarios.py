# scenarios.py -- rev-list queries run with and without bitmaps
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

"""rev-list queries run with and without bitmaps.

Every query is run once as a plain traversal and once with
``--use-bitmap-index``, and the two results are compared.
"""

__all__ = [
    "FULL_BITMAP",
    "PARTIAL_BITMAP",
    "Query",
    "ScenarioMatrix",
    "ScenarioResult",
    "build_queries",
]

import logging
from dataclasses import dataclass

from .compare import TraversalComparator
from .config import HarnessConfig
from .errors import AssertionFailure, BitmapCheckError, SetupFailure
from .git import GitCommandError, GitRepo

logger = logging.getLogger(__name__)

FULL_BITMAP = "full bitmap"
PARTIAL_BITMAP = "partial bitmap"

COUNT = "count"
TRAVERSAL = "traversal"
CONTAINS = "contains"


@dataclass(frozen=True)
class Query:
    """A single rev-list invocation, minus the choice of traversal path."""

    description: str
    args: tuple[str, ...]
    kind: str = COUNT
    # Only meaningful for TRAVERSAL queries.
    confirm: bool = True
    # Object that must be listed, for CONTAINS queries.
    oid: str | None = None

    def reference_args(self) -> list[str]:
        return ["rev-list", *self.args]

    def accelerated_args(self) -> list[str]:
        return ["rev-list", "--use-bitmap-index", *self.args]


def build_queries(
    branch: str, config: HarnessConfig, tagged_blob: str | None = None
) -> list[Query]:
    """Return the queries checked for one branch."""
    second, other = config.branches
    queries = [
        Query("counting commits via bitmap", ("--count", branch)),
        Query(
            "counting partial commits via bitmap",
            ("--count", f"{branch}~{config.range_depth}..{branch}"),
        ),
        Query("counting commits with limit", ("--count", "-n", "1", branch)),
        Query("counting non-linear history", ("--count", f"{other}...{second}")),
        Query(
            "counting commits with limiting",
            ("--count", branch, "--", config.path_filter),
        ),
        Query("counting objects via bitmap", ("--count", "--objects", branch)),
        Query("enumerate commits", (branch,), kind=TRAVERSAL, confirm=False),
        Query("enumerate --objects", ("--objects", branch), kind=TRAVERSAL),
    ]
    if tagged_blob is not None:
        queries.append(
            Query(
                "bitmap --objects handles non-commit objects",
                ("--objects", branch, config.tag_name),
                kind=CONTAINS,
                oid=tagged_blob,
            )
        )
    return queries


@dataclass
class ScenarioResult:
    """Outcome of one query in one repository state."""

    state: str
    branch: str | None
    description: str
    error: BitmapCheckError | None = None
    skipped: bool = False

    @property
    def passed(self) -> bool:
        return self.error is None and not self.skipped

    @property
    def name(self) -> str:
        if self.branch is None:
            return f"{self.description} ({self.state})"
        return f"{self.description} ({self.state}, {self.branch})"


class ScenarioMatrix:
    """Runs the query set for every branch in a given repository state."""

    def __init__(
        self,
        repo: GitRepo,
        config: HarnessConfig | None = None,
        comparator: TraversalComparator | None = None,
    ) -> None:
        self.repo = repo
        self.config = config or HarnessConfig()
        self.comparator = comparator or TraversalComparator()

    def self_check(self, tip: str | None = None) -> None:
        """Have git verify its bitmaps against a full traversal of tip.

        Raises:
            AssertionFailure: if git reports an inconsistent bitmap.
        """
        tip = tip or self.config.self_check_tip
        returncode, stdout, stderr = self.repo.git_status("rev-list", "--test-bitmap", tip)
        if returncode != 0:
            raise AssertionFailure(
                f"rev-list --test-bitmap {tip}",
                "consistent bitmaps",
                (stderr + stdout).decode("utf-8", "replace").strip(),
            )
        logger.info("bitmaps for %s are consistent", tip)

    def run_query(self, query: Query) -> None:
        """Run query through both paths and compare the results.

        Raises:
            GitCommandError: if git fails to run either traversal.
            BitmapCheckError: if the results disagree.
        """
        accelerated = self.repo.git(*query.accelerated_args())
        if query.kind == CONTAINS:
            assert query.oid is not None
            self.comparator.contains(accelerated, query.oid, query=query.description)
            return
        reference = self.repo.git(*query.reference_args())
        if query.kind == COUNT:
            self.comparator.counts(reference, accelerated, query=query.description)
        elif query.kind == TRAVERSAL:
            self.comparator.traversal(
                reference, accelerated, confirm=query.confirm, query=query.description
            )
        else:
            raise ValueError(f"unknown query kind {query.kind!r}")

    def run(self, state: str, tagged_blob: str | None = None) -> list[ScenarioResult]:
        """Run every query for every branch.

        A failing comparison is recorded and the next query runs. When git
        itself fails, the rest of that branch's queries are skipped.
        """
        results = []
        for branch in self.config.branches:
            pending = build_queries(branch, self.config, tagged_blob)
            while pending:
                query = pending.pop(0)
                result = ScenarioResult(state, branch, query.description)
                results.append(result)
                try:
                    self.run_query(query)
                except GitCommandError as e:
                    result.error = SetupFailure(result.name, str(e))
                    logger.error("%s", result.error)
                    results.extend(
                        ScenarioResult(state, branch, q.description, skipped=True)
                        for q in pending
                    )
                    break
                except BitmapCheckError as e:
                    result.error = e
                    logger.warning("FAIL %s: %s", result.name, e)
                else:
                    logger.debug("ok %s", result.name)
        return results
