# config.py -- Settings for a bitmapcheck run
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

"""Settings for a bitmapcheck run.

Settings can be read from a file in git-config syntax::

    [core]
        git = /usr/local/bin/git
    [fixture]
        padding-commits = 100
    [matrix]
        branches = second other
        path-filter = 1.t
    [bitmap]
        mode = midx
        self-check-tip = HEAD
"""

__all__ = [
    "BITMAP_MODES",
    "HarnessConfig",
]

import os
from dataclasses import dataclass, replace

from dulwich.config import Config, ConfigFile

from .git import DEFAULT_GIT

BITMAP_MODES = ("pack", "midx")


def _get_str(config: Config, section: str, name: str) -> str | None:
    try:
        return config.get((section.encode("ascii"),), name.encode("ascii")).decode(
            "utf-8"
        )
    except KeyError:
        return None


def _get_int(config: Config, section: str, name: str) -> int | None:
    value = _get_str(config, section, name)
    if value is None:
        return None
    try:
        result = int(value)
    except ValueError as e:
        raise ValueError(f"{section}.{name}: expected an integer, got {value!r}") from e
    if result < 0:
        raise ValueError(f"{section}.{name}: must not be negative")
    return result


@dataclass(frozen=True)
class HarnessConfig:
    """Tunables of the fixture, the query matrix and bitmap writing.

    The defaults reproduce the topology the checks are designed around; the
    commit counts in particular should only be lowered for quick local runs.
    """

    git_path: str = DEFAULT_GIT
    # The first branch is the one left checked out, and the bitmap tip.
    branches: tuple[str, str] = ("second", "other")
    base_commits: int = 10
    side_commits: int = 10
    fork_depth: int = 5
    padding_commits: int = 100
    further_commits: int = 10
    range_depth: int = 5
    path_filter: str = "1.t"
    tag_name: str = "tagged-blob"
    bitmap_mode: str = "pack"
    self_check_tip: str = "HEAD"

    def __post_init__(self) -> None:
        if self.bitmap_mode not in BITMAP_MODES:
            raise ValueError(
                f"unknown bitmap mode {self.bitmap_mode!r}; "
                f"expected one of {', '.join(BITMAP_MODES)}"
            )
        if len(self.branches) != 2 or self.branches[0] == self.branches[1]:
            raise ValueError("exactly two distinct branches are required")
        if self.fork_depth >= self.base_commits:
            raise ValueError("fork-depth must be smaller than base-commits")
        # merge-left starts at other~2 and merges second~2
        if min(self.base_commits - self.fork_depth, self.side_commits) < 3:
            raise ValueError("both branches need at least 3 commits of their own")

    @property
    def primary_branch(self) -> str:
        return self.branches[0]

    @property
    def secondary_branch(self) -> str:
        return self.branches[1]

    def with_overrides(self, **kwargs) -> "HarnessConfig":
        """Return a copy with every non-None keyword argument applied."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})

    @classmethod
    def from_config(cls, config: Config) -> "HarnessConfig":
        """Build settings from a parsed git-config style configuration."""
        branches = _get_str(config, "matrix", "branches")
        kwargs = {
            "git_path": _get_str(config, "core", "git"),
            "branches": tuple(branches.split()) if branches is not None else None,
            "base_commits": _get_int(config, "fixture", "base-commits"),
            "side_commits": _get_int(config, "fixture", "side-commits"),
            "fork_depth": _get_int(config, "fixture", "fork-depth"),
            "padding_commits": _get_int(config, "fixture", "padding-commits"),
            "further_commits": _get_int(config, "fixture", "further-commits"),
            "tag_name": _get_str(config, "fixture", "tag-name"),
            "range_depth": _get_int(config, "matrix", "range-depth"),
            "path_filter": _get_str(config, "matrix", "path-filter"),
            "bitmap_mode": _get_str(config, "bitmap", "mode"),
            "self_check_tip": _get_str(config, "bitmap", "self-check-tip"),
        }
        return cls().with_overrides(**kwargs)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "HarnessConfig":
        """Read settings from a git-config style file."""
        return cls.from_config(ConfigFile.from_path(path))
