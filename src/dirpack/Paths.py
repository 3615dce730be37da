"""Entry name helpers shared by the builder and the reader."""

import fnmatch
import os
from pathlib import Path, PurePosixPath

from .Errors import UnsafeEntryError


def relative_name(base: Path, path: Path, is_dir: bool = False) -> str:
    """Return the container name of `path` relative to `base`.

    Args:
        base (Path): Canonical path of the source root.
        path (Path): A node below `base`.
        is_dir (bool): Append a trailing ``/`` when True.

    Returns:
        str: Posix style relative name, e.g. ``"sub/file.txt"`` or ``"sub/"``.
    """
    name = os.path.relpath(path, base).replace(os.sep, "/")
    if is_dir:
        name += "/"
    return name


def last_segment(name: str) -> str:
    """Return the final path segment of an entry name.

    ``"dir/c.txt"`` gives ``"c.txt"`` and ``"dir/sub/"`` gives ``"sub"``.
    """
    return name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def matches(pattern: str | None, name: str) -> bool:
    """Test a glob pattern against the last segment of `name`.

    An empty or missing pattern matches everything. Matching is case
    sensitive on every platform.
    """
    if not pattern:
        return True
    return fnmatch.fnmatchcase(last_segment(name), pattern)


def normalize_entry_name(name: str) -> PurePosixPath:
    """Validate an entry name read from a container.

    Backslashes are treated as separators and ``.`` segments are dropped, so
    ``"./"`` normalizes to the empty relative path.

    Raises:
        UnsafeEntryError: For absolute names or ``..`` segments.
    """
    posix = PurePosixPath(name.replace("\\", "/"))
    if posix.is_absolute() or (posix.parts and posix.parts[0].endswith(":")):
        raise UnsafeEntryError(name, "absolute paths are not allowed")

    parts = []
    for part in posix.parts:
        if part in ("", "."):
            continue
        if part == "..":
            raise UnsafeEntryError(name, "path traversal is not allowed")
        parts.append(part)

    return PurePosixPath(*parts)


def target_path(destination: Path, name: str, flat: bool = False, is_dir: bool = False) -> Path:
    """Compute where an entry is written below `destination`.

    In flat mode only the last segment is kept, so entries from different
    directories with the same file name land on the same target. A directory
    entry naming the archive root (``"./"``) maps to `destination` itself.

    Raises:
        UnsafeEntryError: For unsafe names, or a file entry with an empty name.
    """
    relative = normalize_entry_name(name)
    if not relative.parts:
        if is_dir:
            return destination
        raise UnsafeEntryError(name, "empty path")
    if flat:
        return destination / relative.name
    return destination.joinpath(*relative.parts)
