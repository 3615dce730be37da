"""
Shared pytest fixtures.

Provides sample source trees, codec parametrization and helpers to compare
extracted trees with their sources.
"""

import os
from pathlib import Path
from typing import Dict

import pytest

from dirpack import TarCodec, ZipCodec


# ==================== Helpers ====================

def snapshot(root: Path) -> Dict[str, bytes]:
    """
    Map every node below `root` to its content.

    Directories map to None and get a trailing "/" in their key.
    """
    result = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames:
            rel = os.path.relpath(os.path.join(dirpath, name), root).replace(os.sep, "/")
            result[rel + "/"] = None
        for name in filenames:
            path = os.path.join(dirpath, name)
            rel = os.path.relpath(path, root).replace(os.sep, "/")
            with open(path, "rb") as f:
                result[rel] = f.read()
    return result


def write_files(root: Path, files: Dict[str, bytes]) -> Path:
    """Create `files` (relative name -> bytes) below `root`."""
    for name, data in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return root


# ==================== Fixtures ====================

SAMPLE_FILES = {
    "a.txt": b"alpha\n",
    "b.log": b"log line 1\nlog line 2\n",
    "dir/c.txt": b"charlie",
    "dir/sub/d.bin": bytes(range(256)) * 40,
    "dir/sub/empty.txt": b"",
}


@pytest.fixture
def sample_tree(tmp_path) -> Path:
    """
    A source tree with nested directories, a binary file, an empty file
    and an empty directory.
    """
    root = write_files(tmp_path / "src", SAMPLE_FILES)
    (root / "dir" / "hollow").mkdir()
    return root


@pytest.fixture
def destination(tmp_path) -> Path:
    dest = tmp_path / "dest"
    dest.mkdir()
    return dest


@pytest.fixture(params=["tar", "tar.gz", "zip"])
def codec(request):
    """Every bundled codec flavour."""
    return {
        "tar": TarCodec(),
        "tar.gz": TarCodec("gz"),
        "zip": ZipCodec(),
    }[request.param]


@pytest.fixture
def archive_path(tmp_path, codec) -> Path:
    """A container path whose extension matches `codec`."""
    return tmp_path / f"archive.{codec.name}"
