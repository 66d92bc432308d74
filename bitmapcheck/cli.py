# cli.py -- Command line interface for bitmapcheck
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

"""Command line interface for bitmapcheck."""

__all__ = [
    "Command",
    "commands",
    "main",
]

import argparse
import logging
import os
import shutil
import signal
import sys
import tempfile
import types
from collections.abc import Sequence

from .config import BITMAP_MODES, HarnessConfig
from .errors import BitmapCheckError
from .git import DEFAULT_GIT, GitCommandError, GitRepo, git_version
from .graph import GraphBuilder
from .inspectors import have_delta, midx_checksum
from .log_utils import default_logging_config
from .pipeline import BitmapCheck

logger = logging.getLogger(__name__)


def signal_int(signal: int, frame: types.FrameType | None) -> None:
    """Handle interrupt signal by exiting."""
    sys.exit(1)


def _load_config(parsed_args: argparse.Namespace) -> HarnessConfig:
    if parsed_args.config is not None:
        config = HarnessConfig.from_file(parsed_args.config)
    else:
        config = HarnessConfig()
    return config.with_overrides(
        git_path=parsed_args.git,
        bitmap_mode=getattr(parsed_args, "bitmap_mode", None),
    )


def _add_config_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Read settings from this git-config file")
    parser.add_argument("--git", help="git executable to test")


class Command:
    """A bitmapcheck subcommand."""

    def run(self, args: Sequence[str]) -> int | None:
        """Run the command."""
        raise NotImplementedError(self.run)


class cmd_run(Command):
    """Build the fixture and compare bitmap and regular traversals."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="bitmapcheck run")
        _add_config_options(parser)
        parser.add_argument(
            "--bitmap-mode",
            choices=BITMAP_MODES,
            help="Write a pack bitmap or a multi-pack-index bitmap",
        )
        parser.add_argument(
            "--directory", help="Work in this directory instead of a temporary one"
        )
        parser.add_argument(
            "--keep", action="store_true", help="Do not remove the temporary directory"
        )
        parsed_args = parser.parse_args(args)
        try:
            config = _load_config(parsed_args)
        except (OSError, ValueError) as e:
            logger.error("invalid configuration: %s", e)
            return 2

        version = git_version(config.git_path)
        if version is None:
            logger.error("unable to run %s", config.git_path)
            return 2
        logger.info("testing git %s", ".".join(map(str, version)))

        workdir = parsed_args.directory or tempfile.mkdtemp(prefix="bitmapcheck-")
        try:
            report = BitmapCheck(workdir, config).run()
        finally:
            if parsed_args.keep or parsed_args.directory:
                logger.info("work directory kept at %s", workdir)
            else:
                shutil.rmtree(workdir, ignore_errors=True)
        sys.stdout.write(report.format() + "\n")
        return 0 if report.passed else 1


class cmd_build_fixture(Command):
    """Build the fixture repository and leave it in place."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="bitmapcheck build-fixture")
        _add_config_options(parser)
        parser.add_argument("path", help="Directory to create the repository in")
        parsed_args = parser.parse_args(args)
        try:
            config = _load_config(parsed_args)
        except (OSError, ValueError) as e:
            logger.error("invalid configuration: %s", e)
            return 2
        if os.path.exists(parsed_args.path) and os.listdir(parsed_args.path):
            logger.error("%s is not empty", parsed_args.path)
            return 1
        try:
            repo = GitRepo.init(parsed_args.path, git_path=config.git_path)
            fixture = GraphBuilder(repo, config).build()
        except (OSError, GitCommandError, BitmapCheckError) as e:
            logger.error("%s", e)
            return 1
        for branch, tip in fixture.tips.items():
            sys.stdout.write(f"{tip} refs/heads/{branch}\n")
        sys.stdout.write(f"{fixture.tagged_blob} refs/tags/{config.tag_name}\n")
        return 0


class cmd_have_delta(Command):
    """Check which object another object is stored as a delta against."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="bitmapcheck have-delta")
        parser.add_argument("-C", dest="path", default=".", help="Repository path")
        parser.add_argument("--git", default=DEFAULT_GIT, help="git executable to use")
        parser.add_argument("object", help="Object to inspect")
        parser.add_argument("base", help="Expected delta base")
        parsed_args = parser.parse_args(args)
        repo = GitRepo(parsed_args.path, git_path=parsed_args.git)
        try:
            have_delta(repo, parsed_args.object, parsed_args.base)
        except (OSError, GitCommandError, BitmapCheckError) as e:
            logger.error("%s", e)
            return 1
        return 0


class cmd_midx_checksum(Command):
    """Print the checksum of a multi-pack-index."""

    def run(self, args: Sequence[str]) -> int:
        parser = argparse.ArgumentParser(prog="bitmapcheck midx-checksum")
        parser.add_argument(
            "object_dir", nargs="?", default=".git/objects", help="Object directory"
        )
        parsed_args = parser.parse_args(args)
        try:
            checksum = midx_checksum(parsed_args.object_dir)
        except (OSError, ValueError) as e:
            logger.error("%s", e)
            return 1
        sys.stdout.write(checksum + "\n")
        return 0


commands = {
    "build-fixture": cmd_build_fixture,
    "have-delta": cmd_have_delta,
    "midx-checksum": cmd_midx_checksum,
    "run": cmd_run,
}


def main(argv: Sequence[str] | None = None) -> int | None:
    """Main entry point for the bitmapcheck CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code or None
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="bitmapcheck",
        description="Check git reachability bitmaps against regular traversal",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every git invocation"
    )
    parser.add_argument(
        "command",
        nargs="?",
        help=f"Command to run. Available: {', '.join(sorted(commands))}",
    )
    parser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    global_args = parser.parse_args(argv)
    if global_args.command is None:
        parser.print_help()
        return 1

    default_logging_config(verbose=global_args.verbose)

    try:
        cmd_kls = commands[global_args.command]
    except KeyError:
        logging.fatal("No such subcommand: %s", global_args.command)
        return 1
    return cmd_kls().run(global_args.args)


def _main() -> None:
    signal.signal(signal.SIGINT, signal_int)
    sys.exit(main())


if __name__ == "__main__":
    _main()
