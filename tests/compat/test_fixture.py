# test_fixture.py -- Compatibility tests for the fixture history
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

"""Compatibility tests for bitmapcheck.graph."""

from bitmapcheck.errors import SetupFailure
from bitmapcheck.graph import SCAFFOLD_BRANCHES, CommitGraph, GraphBuilder

from .utils import CompatTestCase


class GraphBuilderTests(CompatTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.repo = self.init_repo()
        self.config = self.make_config(padding_commits=3, further_commits=2)
        self.fixture = GraphBuilder(self.repo, self.config).build()

    def test_refs(self) -> None:
        self.assertEqual(["other", "second"], self.repo.branches())
        self.assertEqual("refs/heads/second", self.repo.symbolic_ref("HEAD"))
        self.assertEqual(
            {
                "second": self.repo.rev_parse("second"),
                "other": self.repo.rev_parse("other"),
            },
            self.fixture.tips,
        )
        self.assertEqual("second", self.fixture.primary_branch)
        self.assertEqual(self.repo.rev_parse("HEAD"), self.fixture.bitmap_tip)

    def test_tagged_blob(self) -> None:
        self.assertEqual(self.fixture.tagged_blob, self.repo.rev_parse("tagged-blob"))
        self.assertEqual(b"blob\n", self.repo.git("cat-file", "-t", "tagged-blob"))
        self.assertEqual(
            b"tagged-blob\n", self.repo.git("cat-file", "blob", "tagged-blob")
        )

    def test_shape(self) -> None:
        graph = self.fixture.graph
        # base and side commits, four merges and the padding on both sides
        self.assertEqual(10 + 10 + 4 + 3 + 3, len(graph))
        self.assertEqual(
            b"%d\n" % len(graph), self.repo.git("rev-list", "--count", "second", "other")
        )
        self.assertEqual(
            sorted(self.fixture.scaffold.values()),
            graph.merges(),
        )
        self.assertEqual(
            sorted(
                [self.fixture.scaffold["octo-second"], self.fixture.scaffold["octo-other"]]
            ),
            graph.octopus_merges(),
        )

    def test_scaffold_branches_deleted(self) -> None:
        self.assertEqual(sorted(SCAFFOLD_BRANCHES), sorted(self.fixture.scaffold))
        for name in SCAFFOLD_BRANCHES:
            self.assertFalse(self.repo.resolves(f"refs/heads/{name}"))

    def test_merge_bases_agree_with_git(self) -> None:
        expected = (
            self.repo.git("merge-base", "--all", "second", "other").decode().split()
        )
        got = self.fixture.merge_bases
        self.assertEqual(sorted(expected), sorted(got))
        self.assertEqual(
            {self.fixture.scaffold["merge-left"], self.fixture.scaffold["merge-right"]},
            got,
        )

    def test_octopus_first_parent_is_branch(self) -> None:
        graph = self.fixture.graph
        octo = self.fixture.scaffold["octo-second"]
        self.assertEqual(
            self.repo.rev_parse(f"{octo}^1"), graph.first_parent(octo)
        )
        self.assertEqual(3, len(graph.parents[octo]))

    def test_reload(self) -> None:
        with self.repo.open() as r:
            graph = CommitGraph.from_repo(r)
        self.assertEqual(self.fixture.graph.parents, graph.parents)
        self.assertEqual(self.fixture.tips, graph.branches)

    def test_add_unindexed_commits(self) -> None:
        old_tip = self.fixture.tips["second"]
        tip = GraphBuilder(self.repo, self.config).add_unindexed_commits()
        self.assertEqual(self.repo.rev_parse("second"), tip)
        self.assertEqual(old_tip, self.repo.rev_parse("second~2"))
        self.assertEqual(
            b"further 2\nfurther 1\n",
            self.repo.git("log", "-2", "--format=%s", "second"),
        )
        self.assertEqual(self.fixture.tips["other"], self.repo.rev_parse("other"))

    def test_build_twice(self) -> None:
        self.assertRaises(SetupFailure, GraphBuilder(self.repo, self.config).build)
