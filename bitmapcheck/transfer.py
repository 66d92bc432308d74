# transfer.py -- Clone and fetch from a bitmapped repository
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

"""Clone and fetch from a bitmapped repository.

``--no-local`` forces the transfers through pack-objects, which is where the
bitmaps are used.
"""

__all__ = ["TransferVerifier"]

import logging
import os
import shutil

from dulwich.errors import ApplyDeltaError, ChecksumMismatch, FileFormatException

from .config import HarnessConfig
from .errors import AssertionFailure, ComparisonMismatch, SetupFailure
from .git import GitCommandError, GitRepo
from .inspectors import pack_blobs

logger = logging.getLogger(__name__)

# What reading the packs of a clone can raise.
_PACK_ERRORS = (
    OSError,
    ValueError,
    ApplyDeltaError,
    ChecksumMismatch,
    FileFormatException,
)


class TransferVerifier:
    """Checks transfers served from the fixture repository.

    clone() must have run before fetch().
    """

    def __init__(
        self,
        repo: GitRepo,
        workdir: str | os.PathLike[str],
        config: HarnessConfig | None = None,
    ) -> None:
        self.repo = repo
        self.config = config or HarnessConfig()
        self.clone_path = os.path.join(workdir, "clone.git")
        self.partial_clone_path = os.path.join(workdir, "partial-clone.git")

    def _clone(self, stage: str, path: str, *options: str) -> GitRepo:
        try:
            if os.path.exists(path):
                shutil.rmtree(path)
            self.repo.git(
                "clone",
                "-q",
                "--no-local",
                "--bare",
                *options,
                os.path.abspath(self.repo.path),
                os.path.abspath(path),
            )
        except (GitCommandError, OSError) as e:
            raise SetupFailure(stage, str(e)) from e
        return GitRepo(path, git_path=self.repo.git_path, bare=True)

    def _check_heads(self, what: str, clone: GitRepo) -> None:
        try:
            expected = self.repo.rev_parse("HEAD")
            got = clone.rev_parse("HEAD")
        except GitCommandError as e:
            raise SetupFailure(what, str(e)) from e
        if expected != got:
            raise ComparisonMismatch(what, expected=expected, got=got)
        logger.info("%s: HEAD is %s on both sides", what, got)

    def clone(self) -> GitRepo:
        """Make a full bare clone and compare its HEAD with the source.

        Raises:
            SetupFailure: if the clone fails.
            ComparisonMismatch: if HEAD differs.
        """
        clone = self._clone("clone", self.clone_path)
        self._check_heads("clone from bitmapped repository", clone)
        return clone

    def partial_clone(self, filter_spec: str = "blob:none") -> GitRepo:
        """Make a filtered clone and check which blobs it received.

        Only the blob behind the tag is reachable without walking a tree,
        so it is the only one a blob:none filter lets through.

        Raises:
            SetupFailure: if the clone fails.
            AssertionFailure: if the clone holds any other set of blobs.
        """
        stage = "partial clone from bitmapped repository"
        try:
            self.repo.set_config("uploadpack.allowfilter", "true")
        except GitCommandError as e:
            raise SetupFailure(stage, str(e)) from e
        try:
            clone = self._clone(stage, self.partial_clone_path, f"--filter={filter_spec}")
        finally:
            self.repo.unset_config("uploadpack.allowfilter")

        try:
            expected = {self.repo.rev_parse(f"refs/tags/{self.config.tag_name}")}
        except GitCommandError as e:
            raise SetupFailure(stage, str(e)) from e
        try:
            got = pack_blobs(clone.object_dir)
        except _PACK_ERRORS as e:
            raise SetupFailure(stage, f"cannot read packs: {e}") from e
        if got != expected:
            raise AssertionFailure(f"{stage}: blobs", sorted(expected), sorted(got))
        logger.info("%s: only %s was transferred", stage, ", ".join(sorted(got)))
        return clone

    def fetch(self, branch: str | None = None) -> None:
        """Fetch branch into the earlier clone and compare HEADs again.

        Raises:
            SetupFailure: if there is no clone or the fetch fails.
            ComparisonMismatch: if HEAD differs afterwards.
        """
        branch = branch or self.config.primary_branch
        stage = "fetch"
        if not os.path.isdir(self.clone_path):
            raise SetupFailure(stage, f"no clone at {self.clone_path}")
        clone = GitRepo(self.clone_path, git_path=self.repo.git_path, bare=True)
        try:
            clone.git("fetch", "-q", "origin", f"{branch}:{branch}")
        except GitCommandError as e:
            raise SetupFailure(stage, str(e)) from e
        self._check_heads(stage, clone)
