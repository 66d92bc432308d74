# git.py -- Running the git executable
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

"""Utilities for driving the git executable.

Everything bitmapcheck knows about the object store under test goes through
the functions in this module: the store is only ever reached by running git.
"""

__all__ = [
    "DEFAULT_GIT",
    "GitCommandError",
    "GitRepo",
    "git_version",
    "run_git",
    "run_git_or_fail",
]

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence

from dulwich.repo import Repo

DEFAULT_GIT = "git"

# Same clock as git's own test suite, so fixtures are reproducible.
TEST_TICK_START = 1112911993
TEST_TICK_STEP = 60

AUTHOR_NAME = "A U Thor"
AUTHOR_EMAIL = "author@example.com"
COMMITTER_NAME = "C O Mitter"
COMMITTER_EMAIL = "committer@example.com"
TIMEZONE = "-0700"

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, output: bytes) -> None:
        """Initialize a GitCommandError.

        Args:
            args: Arguments passed to git, without the executable.
            returncode: Exit status of the command.
            output: Diagnostic output written by git.
        """
        self.args_ = list(args)
        self.returncode = returncode
        self.output = output
        message = f"git {' '.join(self.args_)} exited with status {returncode}"
        detail = output.decode("utf-8", "replace").strip()
        if detail:
            message += f": {detail}"
        Exception.__init__(self, message)


def git_version(git_path: str = DEFAULT_GIT) -> tuple[int, ...] | None:
    """Attempt to determine the version of git currently installed.

    Args:
        git_path: Path to the git executable; defaults to the version in
            the system path.

    Returns:
        A tuple of ints of the form (major, minor, point), or None if no
        git installation was found.
    """
    try:
        _, output, _ = run_git(["--version"], git_path=git_path, capture_stdout=True)
    except OSError:
        return None
    version_prefix = b"git version "
    if not output or not output.startswith(version_prefix):
        return None

    parts = output[len(version_prefix) :].split(b".")
    nums = []
    for part in parts[:3]:
        try:
            nums.append(int(part))
        except ValueError:
            break
    if not nums:
        return None
    while len(nums) < 3:
        nums.append(0)
    return tuple(nums)


def run_git(
    args: Sequence[str],
    git_path: str = DEFAULT_GIT,
    input: bytes | None = None,
    capture_stdout: bool = False,
    **popen_kwargs,
) -> tuple[int, bytes | None, bytes | None]:
    """Run a git command.

    Input is piped from the input parameter and output is sent to the standard
    streams, unless capture_stdout is set.

    Args:
        args: A list of args to the git command.
        git_path: Path to to the git executable.
        input: Input data to be sent to stdin.
        capture_stdout: Whether to capture and return stdout and stderr.
        popen_kwargs: Additional kwargs for subprocess.Popen;
            stdin/stdout args are ignored.

    Returns:
        A tuple of (returncode, stdout contents, stderr contents). Streams
        that were not captured are returned as None.

    Raises:
        OSError: if the git executable was not found.
    """
    argv = [git_path, *args]
    popen_kwargs["stdin"] = subprocess.PIPE
    if capture_stdout:
        popen_kwargs["stdout"] = subprocess.PIPE
        popen_kwargs.setdefault("stderr", subprocess.PIPE)
    else:
        popen_kwargs.pop("stdout", None)
    logger.debug("running %s", " ".join(argv))
    p = subprocess.Popen(argv, **popen_kwargs)
    stdout, stderr = p.communicate(input=input)
    return (p.returncode, stdout, stderr)


def run_git_or_fail(
    args: Sequence[str],
    git_path: str = DEFAULT_GIT,
    input: bytes | None = None,
    **popen_kwargs,
) -> bytes:
    """Run a git command, capture its output, and fail if git fails.

    Raises:
        GitCommandError: if git exits with a non-zero status.
    """
    returncode, stdout, stderr = run_git(
        args, git_path=git_path, input=input, capture_stdout=True, **popen_kwargs
    )
    if returncode != 0:
        raise GitCommandError(args, returncode, (stderr or b"") + (stdout or b""))
    assert stdout is not None
    return stdout


class GitRepo:
    """Handle on a scratch repository that is manipulated by running git.

    The handle carries the environment every command runs with: a fixed
    identity, no system or global configuration, and commit dates taken from
    a clock that advances explicitly through tick().
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        git_path: str = DEFAULT_GIT,
        bare: bool = False,
        tick: int = TEST_TICK_START,
    ) -> None:
        self.path = os.fspath(path)
        self.git_path = git_path
        self.bare = bare
        self._tick = tick

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r})"

    @classmethod
    def init(
        cls,
        path: str | os.PathLike[str],
        git_path: str = DEFAULT_GIT,
        bare: bool = False,
    ) -> "GitRepo":
        """Create a new repository at path and return a handle on it."""
        os.makedirs(path, exist_ok=True)
        repo = cls(path, git_path=git_path, bare=bare)
        if bare:
            repo.git("init", "-q", "--bare")
        else:
            repo.git("init", "-q")
        return repo

    @property
    def git_dir(self) -> str:
        if self.bare:
            return self.path
        return os.path.join(self.path, ".git")

    @property
    def object_dir(self) -> str:
        return os.path.join(self.git_dir, "objects")

    @property
    def pack_dir(self) -> str:
        return os.path.join(self.object_dir, "pack")

    def environ(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return the environment git commands of this repository run with."""
        env = dict(os.environ if base is None else base)
        for name in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
            env.pop(name, None)
        date = f"{self._tick} {TIMEZONE}"
        env.update(
            {
                "GIT_AUTHOR_NAME": AUTHOR_NAME,
                "GIT_AUTHOR_EMAIL": AUTHOR_EMAIL,
                "GIT_AUTHOR_DATE": date,
                "GIT_COMMITTER_NAME": COMMITTER_NAME,
                "GIT_COMMITTER_EMAIL": COMMITTER_EMAIL,
                "GIT_COMMITTER_DATE": date,
                "GIT_CONFIG_NOSYSTEM": "1",
                "GIT_CONFIG_GLOBAL": os.devnull,
                "GIT_MERGE_AUTOEDIT": "no",
                "GIT_TERMINAL_PROMPT": "0",
            }
        )
        return env

    @property
    def current_tick(self) -> int:
        return self._tick

    def tick(self) -> int:
        """Advance the commit clock, like test_tick in git's test suite."""
        self._tick += TEST_TICK_STEP
        return self._tick

    def git(self, *args: str, input: bytes | None = None) -> bytes:
        """Run git in this repository and return its standard output.

        Raises:
            GitCommandError: if git exits with a non-zero status.
        """
        return run_git_or_fail(
            list(args),
            git_path=self.git_path,
            input=input,
            cwd=self.path,
            env=self.environ(),
        )

    def git_status(
        self, *args: str, input: bytes | None = None
    ) -> tuple[int, bytes, bytes]:
        """Run git in this repository without failing on a non-zero exit.

        Returns:
            Tuple of (returncode, stdout, stderr)
        """
        returncode, stdout, stderr = run_git(
            list(args),
            git_path=self.git_path,
            input=input,
            capture_stdout=True,
            cwd=self.path,
            env=self.environ(),
        )
        return (returncode, stdout or b"", stderr or b"")

    def rev_parse(self, rev: str) -> str:
        return self.git("rev-parse", "--verify", "--end-of-options", rev).decode(
            "ascii"
        ).strip()

    def resolves(self, rev: str) -> bool:
        """Check whether rev names an existing object."""
        returncode, _, _ = self.git_status("rev-parse", "--quiet", "--verify", rev)
        return returncode == 0

    def symbolic_ref(self, name: str = "HEAD") -> str:
        return self.git("symbolic-ref", name).decode("utf-8").strip()

    def set_config(self, key: str, value: str) -> None:
        self.git("config", key, value)

    def unset_config(self, key: str) -> None:
        # Exit status 5 means the key was not set.
        returncode, stdout, stderr = self.git_status("config", "--unset-all", key)
        if returncode not in (0, 5):
            raise GitCommandError(["config", "--unset-all", key], returncode, stderr)

    def branches(self) -> list[str]:
        output = self.git("for-each-ref", "--format=%(refname:short)", "refs/heads/")
        return output.decode("utf-8").split()

    def open(self) -> Repo:
        """Open the repository with dulwich for in-process inspection."""
        return Repo(self.path)
