# graph.py -- Building the fixture commit graph
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

r"""Building the fixture commit graph.

The fixture is shaped so that bitmap selection has to deal with "maximal
commits"::

       other                         second
         *                             *
    (99 commits)                  (99 commits)
         *                             *
         |\                           /|
         | * octo-other  octo-second * |
         |/|\_________  ____________/|\|
         | \          \/  __________/  |
         |  | ________/\ /             |
         *  |/          * merge-right  *
         | _|__________/ \____________ |
         |/ |                         \|
    (l1) *  * merge-left               * (r1)
         | / \________________________ |
         |/                           \|
    (l2) *                             * (r2)
          \___________________________ |
                                      \|
                                       * (base)

Bits are only pushed down first-parent history, so most of these merges are
unimportant to the bitmap writer. Assuming bit 0 for second and bit 1 for
other, the masks end up as::

      second: 1   (maximal, selected)
       other: 01  (maximal, selected)
      (base): 11  (maximal)

The merge branches are deleted before bitmaps are written so they cannot be
picked as bitmap tips, and a hundred plain commits on each side make the
merges uninteresting to the tip selection heuristics.
"""

__all__ = [
    "CommitGraph",
    "Fixture",
    "GraphBuilder",
    "merge_bases",
]

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from dulwich.graph import find_merge_base
from dulwich.repo import Repo

from .bulk import commit_bulk
from .config import HarnessConfig
from .errors import SetupFailure
from .git import GitCommandError, GitRepo

logger = logging.getLogger(__name__)

SCAFFOLD_BRANCHES = ("merge-left", "merge-right", "octo-second", "octo-other")


class CommitGraph:
    """Commit DAG as an adjacency mapping from commit id to parent ids.

    Parents are kept in order, so the first parent of a commit is
    parents[commit][0].
    """

    def __init__(
        self,
        parents: Mapping[str, Iterable[str]],
        branches: Mapping[str, str] | None = None,
    ) -> None:
        self.parents: dict[str, tuple[str, ...]] = {
            commit: tuple(ps) for commit, ps in parents.items()
        }
        self.branches: dict[str, str] = dict(branches or {})

    def __len__(self) -> int:
        return len(self.parents)

    def __contains__(self, commit: object) -> bool:
        return commit in self.parents

    @classmethod
    def from_repo(cls, repo: Repo) -> "CommitGraph":
        """Load every commit reachable from a branch of a dulwich repository."""
        branches = {
            name.decode("utf-8"): sha.decode("ascii")
            for name, sha in repo.refs.as_dict(b"refs/heads").items()
        }
        parents = {}
        if branches:
            include = [sha.encode("ascii") for sha in branches.values()]
            for entry in repo.get_walker(include=include):
                commit = entry.commit
                parents[commit.id.decode("ascii")] = [
                    p.decode("ascii") for p in commit.parents
                ]
        return cls(parents, branches)

    def first_parent(self, commit: str) -> str | None:
        ps = self.parents[commit]
        return ps[0] if ps else None

    def merges(self) -> list[str]:
        return sorted(c for c, ps in self.parents.items() if len(ps) > 1)

    def octopus_merges(self) -> list[str]:
        return sorted(c for c, ps in self.parents.items() if len(ps) > 2)

    def roots(self) -> list[str]:
        return sorted(c for c, ps in self.parents.items() if not ps)

    def ancestors(self, *tips: str) -> set[str]:
        """Return the tips and every commit reachable from them."""
        seen: set[str] = set()
        pending = deque(tips)
        while pending:
            commit = pending.popleft()
            if commit in seen:
                continue
            seen.add(commit)
            pending.extend(self.parents.get(commit, ()))
        return seen


def merge_bases(repo: Repo, a: str, b: str) -> set[str]:
    """Best common ancestors of a and b, as git merge-base --all."""
    bases = find_merge_base(repo, [a.encode("ascii"), b.encode("ascii")])
    return {sha.decode("ascii") for sha in bases}


@dataclass
class Fixture:
    """What GraphBuilder produced, for later stages to refer to."""

    tips: dict[str, str]
    tagged_blob: str
    primary_branch: str
    scaffold: dict[str, str] = field(default_factory=dict)
    graph: CommitGraph | None = None
    # Best common ancestors of the two branch tips.
    merge_bases: set[str] = field(default_factory=set)

    @property
    def bitmap_tip(self) -> str:
        return self.tips[self.primary_branch]


class GraphBuilder:
    """Constructs the fixture history in an empty repository."""

    def __init__(self, repo: GitRepo, config: HarnessConfig | None = None) -> None:
        self.repo = repo
        self.config = config or HarnessConfig()

    def _merge(self, branch: str, start: str, heads: list[str], message: str) -> None:
        self.repo.git("checkout", "-q", "-b", branch, start)
        self.repo.tick()
        self.repo.git("merge", "-q", "--no-ff", "-m", message, *heads)

    def _pull(self, branch: str, other: str) -> None:
        self.repo.git("checkout", "-q", branch)
        self.repo.tick()
        # Fast-forwards: other was started from branch.
        self.repo.git("merge", "-q", "-m", "pull octopus", other)

    def build(self) -> Fixture:
        """Create the fixture history.

        Raises:
            SetupFailure: if any step fails or the result does not have the
                expected shape; no partial fixture is usable.
        """
        try:
            fixture = self._build()
        except GitCommandError as e:
            raise SetupFailure("fixture", str(e)) from e
        second, other = self.config.branches
        with self.repo.open() as r:
            fixture.graph = CommitGraph.from_repo(r)
            fixture.merge_bases = merge_bases(
                r, fixture.tips[second], fixture.tips[other]
            )
        self.verify(fixture)
        logger.info(
            "fixture ready: %d commits, %d merges, bitmap tip %s",
            len(fixture.graph),
            len(fixture.graph.merges()),
            fixture.bitmap_tip,
        )
        return fixture

    def _build(self) -> Fixture:
        cfg = self.config
        second, other = cfg.branches
        repo = self.repo

        logger.info("building history with %s and %s", second, other)
        commit_bulk(repo, cfg.base_commits, id="file")
        repo.git("branch", "-M", second)
        repo.git("checkout", "-q", "-b", other, f"HEAD~{cfg.fork_depth}")
        commit_bulk(repo, cfg.side_commits, id="side")

        # Merges with ambiguous merge-bases
        self._merge("merge-left", f"{other}~2", [f"{second}~2"], "merge-left")
        self._merge("merge-right", f"{second}~1", [f"{other}~1"], "merge-right")
        self._merge(
            "octo-second", second, ["merge-left", "merge-right"], "octopus-second"
        )
        self._merge("octo-other", other, ["merge-left", "merge-right"], "octopus-other")
        self._pull(other, "octo-other")
        self._pull(second, "octo-second")

        scaffold = {name: repo.rev_parse(name) for name in SCAFFOLD_BRANCHES}
        for name in SCAFFOLD_BRANCHES:
            repo.git("branch", "-q", "-D", name)

        logger.info("adding %d padding commits per branch", cfg.padding_commits)
        commit_bulk(repo, cfg.padding_commits, id="file")
        repo.git("checkout", "-q", other)
        commit_bulk(repo, cfg.padding_commits, id="side")
        repo.git("checkout", "-q", second)

        blob = (
            repo.git("hash-object", "-w", "--stdin", input=b"tagged-blob\n")
            .decode("ascii")
            .strip()
        )
        repo.git("tag", cfg.tag_name, blob)

        tips = {branch: repo.rev_parse(branch) for branch in cfg.branches}
        return Fixture(
            tips=tips,
            tagged_blob=blob,
            primary_branch=cfg.primary_branch,
            scaffold=scaffold,
        )

    def verify(self, fixture: Fixture) -> None:
        """Check the loaded graph has the shape the checks rely on.

        Raises:
            SetupFailure: if the shape is wrong.
        """
        graph = fixture.graph
        assert graph is not None
        if sorted(graph.branches) != sorted(self.config.branches):
            raise SetupFailure(
                "fixture",
                f"expected branches {sorted(self.config.branches)}, "
                f"found {sorted(graph.branches)}",
            )
        reachable = graph.ancestors(*fixture.tips.values())
        lost = sorted(
            name for name, sha in fixture.scaffold.items() if sha not in reachable
        )
        if lost:
            raise SetupFailure(
                "fixture", f"merge commits no longer reachable: {', '.join(lost)}"
            )
        octopus = set(graph.octopus_merges())
        if sorted(octopus) != sorted(
            sha for name, sha in fixture.scaffold.items() if name.startswith("octo-")
        ):
            raise SetupFailure("fixture", "expected exactly the two octopus merges")
        if len(graph.roots()) != 1:
            raise SetupFailure("fixture", f"expected one root, found {graph.roots()}")
        if not fixture.merge_bases:
            second, other = self.config.branches
            raise SetupFailure("fixture", f"{second} and {other} share no history")

    def add_unindexed_commits(self) -> str:
        """Layer commits on the checked out branch that no bitmap covers.

        Returns:
            The new tip of the checked out branch.

        Raises:
            SetupFailure: if the commits cannot be created.
        """
        count = self.config.further_commits
        logger.info("adding %d commits not covered by bitmaps", count)
        try:
            return commit_bulk(self.repo, count, id="further")
        except GitCommandError as e:
            raise SetupFailure("further commits", str(e)) from e
