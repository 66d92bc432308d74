# pipeline.py -- Ordered stages of a bitmapcheck run
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

"""Ordered stages of a bitmapcheck run.

All stages share one repository on disk and later stages depend on what
earlier ones did to it, so each stage names the stages it requires. A stage
whose requirements did not pass is skipped; a failing fatal stage ends the
run.

The stages, in order:

    fixture          build the commit graph                     (fatal)
    bitmaps          write a bitmap index                       (fatal)
    self-check       rev-list --test-bitmap
    full-bitmap      query matrix with every commit bitmapped
    clone            bare clone
    partial-clone    blob:none clone
    further-commits  commits no bitmap covers
    partial-bitmap   query matrix again
    fetch            fetch into the earlier clone
"""

__all__ = [
    "BitmapCheck",
    "Report",
    "Stage",
    "StageResult",
    "run_stages",
    "write_bitmaps",
]

import glob
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .config import BITMAP_MODES, HarnessConfig
from .errors import BitmapCheckError, SetupFailure
from .git import GitCommandError, GitRepo
from .graph import Fixture, GraphBuilder
from .inspectors import midx_bitmap_path
from .scenarios import FULL_BITMAP, PARTIAL_BITMAP, ScenarioMatrix, ScenarioResult
from .transfer import TransferVerifier

logger = logging.getLogger(__name__)

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"


def write_bitmaps(repo: GitRepo, mode: str = "pack") -> str:
    """Repack everything into one pack and write a bitmap index for it.

    Returns:
        Path of the bitmap file.

    Raises:
        SetupFailure: if git fails or no bitmap appears.
    """
    if mode not in BITMAP_MODES:
        raise ValueError(f"unknown bitmap mode {mode!r}")
    try:
        if mode == "pack":
            repo.git("repack", "-q", "-adb")
            bitmaps = glob.glob(os.path.join(repo.pack_dir, "pack-*.bitmap"))
            if len(bitmaps) != 1:
                raise SetupFailure(
                    "bitmaps", f"expected one pack bitmap, found {len(bitmaps)}"
                )
            path = bitmaps[0]
        else:
            repo.git("repack", "-q", "-ad")
            repo.git("multi-pack-index", "write", "--bitmap")
            path = midx_bitmap_path(repo.object_dir)
            if not os.path.isfile(path):
                raise SetupFailure("bitmaps", f"{path} was not written")
    except (GitCommandError, OSError, ValueError) as e:
        raise SetupFailure("bitmaps", str(e)) from e
    logger.info("wrote %s", os.path.basename(path))
    return path


@dataclass(frozen=True)
class Stage:
    """One step of the run and the steps it depends on."""

    name: str
    run: Callable[[], Sequence[ScenarioResult] | None]
    requires: tuple[str, ...] = ()
    fatal: bool = False


@dataclass
class StageResult:
    name: str
    status: str
    error: BaseException | None = None
    scenarios: list[ScenarioResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == PASSED


@dataclass
class Report:
    """Outcome of every stage of a run."""

    stages: list[StageResult] = field(default_factory=list)
    aborted: bool = False

    @property
    def passed(self) -> bool:
        return not self.aborted and all(s.passed for s in self.stages)

    def __getitem__(self, name: str) -> StageResult:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def failures(self) -> list[str]:
        failed = []
        for stage in self.stages:
            if stage.error is not None:
                failed.append(f"{stage.name}: {stage.error}")
            failed.extend(str(s.error) for s in stage.scenarios if s.error is not None)
        return failed

    def format(self) -> str:
        lines = []
        for stage in self.stages:
            if not stage.scenarios:
                tag = {PASSED: "ok", FAILED: "FAIL", SKIPPED: "skip"}[stage.status]
                line = f"{tag:4} {stage.name}"
                if stage.error is not None:
                    line += f": {stage.error}"
                lines.append(line)
                continue
            for scenario in stage.scenarios:
                if scenario.skipped:
                    tag = "skip"
                else:
                    tag = "ok" if scenario.passed else "FAIL"
                line = f"{tag:4} {scenario.name}"
                if scenario.error is not None:
                    line += f": {scenario.error}"
                lines.append(line)
        total = sum(max(1, len(s.scenarios)) for s in self.stages)
        lines.append(
            f"{'passed' if self.passed else 'FAILED'}: "
            f"{len(self.failures())} failure(s) in {total} check(s)"
        )
        return "\n".join(lines)


def run_stages(stages: Sequence[Stage]) -> Report:
    """Run stages in order, honouring their requirements.

    Check failures and errors from the filesystem fail only the stage that
    raised them; anything else propagates.
    """
    report = Report()
    status: dict[str, str] = {}
    for stage in stages:
        missing = [r for r in stage.requires if status.get(r) != PASSED]
        if missing:
            logger.warning("skipping %s: %s did not pass", stage.name, ", ".join(missing))
            status[stage.name] = SKIPPED
            report.stages.append(StageResult(stage.name, SKIPPED))
            continue
        logger.info("running %s", stage.name)
        try:
            scenarios = list(stage.run() or ())
        except (BitmapCheckError, OSError) as e:
            logger.error("%s failed: %s", stage.name, e)
            result = StageResult(stage.name, FAILED, error=e)
        else:
            failed = any(not s.passed for s in scenarios)
            result = StageResult(
                stage.name, FAILED if failed else PASSED, scenarios=scenarios
            )
        status[stage.name] = result.status
        report.stages.append(result)
        if stage.fatal and result.status != PASSED:
            logger.error("%s is required by every later stage; stopping", stage.name)
            report.aborted = True
            break
    return report


class BitmapCheck:
    """A complete run against a fresh repository under workdir."""

    def __init__(
        self, workdir: str | os.PathLike[str], config: HarnessConfig | None = None
    ) -> None:
        self.workdir = os.fspath(workdir)
        self.config = config or HarnessConfig()
        self.repo = GitRepo(
            os.path.join(self.workdir, "repo"), git_path=self.config.git_path
        )
        self.fixture: Fixture | None = None
        self.matrix = ScenarioMatrix(self.repo, self.config)
        self.transfer = TransferVerifier(self.repo, self.workdir, self.config)

    def _build_fixture(self) -> None:
        try:
            GitRepo.init(self.repo.path, git_path=self.config.git_path)
        except GitCommandError as e:
            raise SetupFailure("fixture", str(e)) from e
        self.fixture = GraphBuilder(self.repo, self.config).build()

    def _write_bitmaps(self) -> None:
        write_bitmaps(self.repo, self.config.bitmap_mode)

    def _self_check(self) -> list[ScenarioResult]:
        result = ScenarioResult(
            FULL_BITMAP, None, f"rev-list --test-bitmap {self.config.self_check_tip}"
        )
        try:
            self.matrix.self_check()
        except GitCommandError as e:
            result.error = SetupFailure(result.name, str(e))
        except BitmapCheckError as e:
            result.error = e
        return [result]

    def _matrix(self, state: str) -> list[ScenarioResult]:
        assert self.fixture is not None
        return self.matrix.run(state, self.fixture.tagged_blob)

    def _further_commits(self) -> None:
        GraphBuilder(self.repo, self.config).add_unindexed_commits()

    def _clone(self) -> None:
        self.transfer.clone()

    def _partial_clone(self) -> None:
        self.transfer.partial_clone()

    def _fetch(self) -> None:
        self.transfer.fetch()

    def stages(self) -> list[Stage]:
        return [
            Stage("fixture", self._build_fixture, fatal=True),
            Stage("bitmaps", self._write_bitmaps, ("fixture",), fatal=True),
            Stage("self-check", self._self_check, ("bitmaps",)),
            Stage("full-bitmap", lambda: self._matrix(FULL_BITMAP), ("bitmaps",)),
            Stage("clone", self._clone, ("bitmaps",)),
            Stage("partial-clone", self._partial_clone, ("bitmaps",)),
            Stage("further-commits", self._further_commits, ("bitmaps",)),
            Stage(
                "partial-bitmap",
                lambda: self._matrix(PARTIAL_BITMAP),
                ("bitmaps", "further-commits"),
            ),
            Stage("fetch", self._fetch, ("clone", "further-commits")),
        ]

    def run(self) -> Report:
        os.makedirs(self.workdir, exist_ok=True)
        return run_stages(self.stages())
