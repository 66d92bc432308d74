# utils.py -- Git compatibility utilities
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

"""Utilities for tests that need a real git."""

import os

from bitmapcheck.config import HarnessConfig
from bitmapcheck.git import DEFAULT_GIT, GitRepo, git_version

from .. import SkipTest, TestCase

_DEFAULT_GIT = os.environ.get("BITMAPCHECK_TEST_GIT", DEFAULT_GIT)


def require_git_version(required_version, git_path=_DEFAULT_GIT):
    """Require git version >= version, or skip the calling test."""
    found_version = git_version(git_path=git_path)
    if found_version is None:
        raise SkipTest(f"Test requires git >= {'.'.join(map(str, required_version))}")
    if found_version < required_version:
        raise SkipTest(
            "Test requires git >= {}, found {}".format(
                ".".join(map(str, required_version)),
                ".".join(map(str, found_version)),
            )
        )


class CompatTestCase(TestCase):
    """Test case that requires git for compatibility checks.

    Subclasses can change the git version required by overriding
    min_git_version.
    """

    # GIT_CONFIG_GLOBAL
    min_git_version: tuple[int, ...] = (2, 32, 0)

    def setUp(self) -> None:
        super().setUp()
        require_git_version(self.min_git_version)
        for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_TRACE"):
            self.overrideEnv(name, None)

    def make_config(self, **kwargs) -> HarnessConfig:
        return HarnessConfig(git_path=_DEFAULT_GIT, **kwargs)

    def init_repo(self, bare: bool = False) -> GitRepo:
        return GitRepo.init(
            os.path.join(self.mkdtemp(), "repo"), git_path=_DEFAULT_GIT, bare=bare
        )
