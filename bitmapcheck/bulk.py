# bulk.py -- Creating many commits at once through fast-import
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

"""Creating many commits at once through git fast-import.

Each generated commit adds one file, so a run of ``count`` commits grows the
tree by ``count`` entries. With ``id="file"`` the n-th commit has message
``file n`` and adds ``file-n.t`` containing ``file n``.
"""

__all__ = [
    "BulkCommitSpec",
    "commit_bulk",
    "render_bulk_stream",
]

import logging
from dataclasses import dataclass

from fastimport import commands

from .git import (
    AUTHOR_EMAIL,
    AUTHOR_NAME,
    COMMITTER_EMAIL,
    COMMITTER_NAME,
    TEST_TICK_STEP,
    GitRepo,
)

logger = logging.getLogger(__name__)

# -0700, as seconds east of UTC
TIMEZONE_OFFSET = -7 * 3600


@dataclass(frozen=True)
class BulkCommitSpec:
    """Format strings for the generated commits; %s is the commit number."""

    message: str = "commit %s"
    filename: str = "%s.t"
    contents: str = "content %s"

    @classmethod
    def for_id(cls, id: str) -> "BulkCommitSpec":
        return cls(message=f"{id} %s", filename=f"{id}-%s.t", contents=f"{id} %s")


def render_bulk_stream(
    ref: str,
    count: int,
    spec: BulkCommitSpec,
    start: int = 1,
    from_: str | None = None,
    first_tick: int = 0,
    tick_step: int = 0,
) -> bytes:
    """Render a fast-import stream of count commits on ref.

    Args:
        ref: Full name of the ref the commits are added to.
        count: Number of commits.
        spec: Message, filename and contents templates.
        start: Number of the first commit.
        from_: Commit the first generated commit has as parent; None
            starts a new root.
        first_tick: Commit timestamp of the first commit.
        tick_step: Seconds between two consecutive commits.

    Returns:
        The stream, ready to be fed to git fast-import.
    """
    ref_bytes = ref.encode("utf-8")
    chunks = []
    for i in range(count):
        n = start + i
        timestamp = first_tick + i * tick_step
        author = (
            AUTHOR_NAME.encode("utf-8"),
            AUTHOR_EMAIL.encode("utf-8"),
            timestamp,
            TIMEZONE_OFFSET,
        )
        committer = (
            COMMITTER_NAME.encode("utf-8"),
            COMMITTER_EMAIL.encode("utf-8"),
            timestamp,
            TIMEZONE_OFFSET,
        )
        file_cmd = commands.FileModifyCommand(
            (spec.filename % n).encode("utf-8"),
            0o100644,
            None,
            (spec.contents % n + "\n").encode("utf-8"),
        )
        cmd = commands.CommitCommand(
            ref_bytes,
            str(i + 1).encode("ascii"),
            author,
            committer,
            (spec.message % n + "\n").encode("utf-8"),
            from_.encode("utf-8") if (i == 0 and from_ is not None) else None,
            [],
            [file_cmd],
        )
        chunks.append(bytes(cmd) + b"\n")
    return b"".join(chunks)


def commit_bulk(
    repo: GitRepo,
    count: int,
    id: str | None = None,
    ref: str = "HEAD",
    start: int = 1,
    spec: BulkCommitSpec | None = None,
) -> str:
    """Add count commits to ref, the same way test_commit_bulk does in git.

    The commits go straight into a pack. When ref is HEAD the branch it
    points at is extended and the working tree is checked out again.

    Args:
        repo: Repository to add the commits to.
        count: Number of commits to create.
        id: Shorthand for spec=BulkCommitSpec.for_id(id).
        ref: Ref to extend; HEAD means the current branch.
        start: Number of the first commit.
        spec: Templates for message, filename and contents.

    Returns:
        The id of the last commit created.

    Raises:
        GitCommandError: if git rejects the stream or the checkout fails.
    """
    if spec is None:
        spec = BulkCommitSpec.for_id(id) if id is not None else BulkCommitSpec()
    if count <= 0:
        return repo.rev_parse(ref)

    target = repo.symbolic_ref("HEAD") if ref == "HEAD" else ref
    # fast-import does not know about existing history; chain onto it.
    from_ = f"{target}^0" if repo.resolves(target) else None

    first_tick = repo.tick()
    for _ in range(count - 1):
        repo.tick()
    stream = render_bulk_stream(
        target,
        count,
        spec,
        start=start,
        from_=from_,
        first_tick=first_tick,
        tick_step=TEST_TICK_STEP,
    )
    logger.debug("importing %d commits onto %s", count, target)
    repo.git("-c", "fastimport.unpacklimit=0", "fast-import", "--quiet", input=stream)
    if ref == "HEAD":
        repo.git("checkout", "-q", "-f", "HEAD")
    return repo.rev_parse(target)
