# inspectors.py -- Point queries against repository internals
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

"""Point queries against repository internals.

These back individual assertions; they are not part of the query matrix.
"""

__all__ = [
    "MIDX_FILENAME",
    "delta_base",
    "have_delta",
    "midx_bitmap_path",
    "midx_checksum",
    "pack_blobs",
    "pack_objects",
]

import os
from collections.abc import Iterator

from dulwich.midx import load_midx
from dulwich.object_store import DiskObjectStore

from .errors import AssertionFailure
from .git import GitRepo

MIDX_FILENAME = "multi-pack-index"


def delta_base(repo: GitRepo, oid: str) -> str:
    """Return the object oid is stored as a delta against.

    Objects that are not deltified report the null object id.
    """
    output = repo.git("cat-file", "--batch-check=%(deltabase)", input=f"{oid}\n".encode())
    return output.decode("ascii").strip()


def have_delta(repo: GitRepo, oid: str, expected_base: str) -> None:
    """Assert that oid is stored as a delta against expected_base.

    cat-file may find _any_ copy of an object in the repository. The caller
    is responsible for making sure there is only one, e.g. by running
    "git repack -ad" or by having just fetched a copy.

    Raises:
        AssertionFailure: if the delta base differs.
    """
    got = delta_base(repo, oid)
    if got != expected_base:
        raise AssertionFailure(f"delta base of {oid}", expected_base, got)


def midx_checksum(object_dir: str | os.PathLike[str] = ".git/objects") -> str:
    """Return the trailing checksum of the multi-pack-index in object_dir.

    Raises:
        FileNotFoundError: if there is no multi-pack-index.
        ValueError: if the file is not a valid multi-pack-index.
    """
    path = os.path.join(object_dir, "pack", MIDX_FILENAME)
    midx = load_midx(path)
    try:
        hash_size = midx.hash_size
    finally:
        midx.close()
    with open(path, "rb") as f:
        f.seek(-hash_size, os.SEEK_END)
        return f.read(hash_size).hex()


def midx_bitmap_path(object_dir: str | os.PathLike[str]) -> str:
    """Return where git keeps the bitmap of the current multi-pack-index."""
    checksum = midx_checksum(object_dir)
    return os.path.join(object_dir, "pack", f"{MIDX_FILENAME}-{checksum}.bitmap")


def pack_objects(object_dir: str | os.PathLike[str]) -> Iterator[tuple[str, str]]:
    """Yield (object id, type name) for every object in every pack.

    Objects stored as deltas are reported with the type of the object they
    resolve to.
    """
    store = DiskObjectStore(os.fspath(object_dir))
    try:
        for pack in store.packs:
            for obj in pack.iterobjects():
                yield (obj.id.decode("ascii"), obj.type_name.decode("ascii"))
    finally:
        store.close()


def pack_blobs(object_dir: str | os.PathLike[str]) -> set[str]:
    """Return the ids of all blobs stored in packs."""
    return {oid for oid, type_name in pack_objects(object_dir) if type_name == "blob"}
