"""Codec protocol definitions.

This module declares the entry model and the interfaces a concrete archive
format (tar, zip, ...) must implement so the builder and reader can drive it.
The engine only ever talks to these protocols; the format specific framing
of headers, checksums and padding lives entirely in the codec.
"""

import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Protocol


@dataclass(frozen=True)
class ArchiveEntry:
    """One named record inside a container.

    Attributes:
        name (str): Relative posix path. Directory names end with ``/``.
        is_dir (bool): True for directory entries.
        size (int): Declared payload size in bytes (0 for directories).
        mtime (float): Modification time as a POSIX timestamp.
        mode (int): Permission bits (without the file type bits).
    """
    name: str
    is_dir: bool = False
    size: int = 0
    mtime: float = 0.0
    mode: int = 0o644

    @classmethod
    def from_path(cls, name: str, path: Path) -> "ArchiveEntry":
        """Build an entry for `path` stored under `name`.

        Symlinks are followed, so a link to a file is stored as a regular
        file holding the target's bytes.

        Args:
            name (str): Entry name inside the container.
            path (Path): Filesystem node to describe.

        Returns:
            ArchiveEntry: The entry, with a trailing ``/`` added to directory names.
        """
        st = os.stat(path)
        is_dir = stat.S_ISDIR(st.st_mode)
        if is_dir and not name.endswith("/"):
            name += "/"
        return cls(
            name=name,
            is_dir=is_dir,
            size=0 if is_dir else st.st_size,
            mtime=st.st_mtime,
            mode=stat.S_IMODE(st.st_mode),
        )


class ContainerWriter(Protocol):
    """Append-only view of a container being written.

    Usage is ``put_entry`` followed, for files, by any number of ``write``
    calls and one ``close_entry``. Writers are context managers; leaving the
    block closes the writer but not the sink it wraps.
    """

    def put_entry(self, entry: ArchiveEntry) -> None:
        """Write the header for `entry` and make it the current entry.

        Raises:
            DuplicateEntryError: If the codec rejects a repeated name.
        """
        ...

    def write(self, data: bytes) -> int:
        """Append payload bytes to the current entry."""
        ...

    def close_entry(self) -> None:
        """Finish the current entry (padding, trailing descriptors)."""
        ...

    def close(self) -> None:
        """Finish the container (end-of-archive markers, central directory)."""
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ContainerReader(Protocol):
    """Forward-only view of a container being read."""

    def next_entry(self) -> Optional[ArchiveEntry]:
        """Advance to the next entry, skipping any unread payload.

        Returns:
            ArchiveEntry | None: The entry, or None once the container is exhausted.
        """
        ...

    def read(self, size: int = -1) -> bytes:
        """Read payload bytes of the current entry (b"" at its end)."""
        ...

    def close(self) -> None:
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ArchiveCodec(Protocol):
    """Format specific provider used by the builder and the reader.

    Attributes:
        name (str): Short format name, e.g. ``"tar"`` or ``"zip"``.
    """
    name: str

    def build_entry(self, name: str, path: Path) -> ArchiveEntry:
        """Describe the filesystem node `path` as an entry called `name`."""
        ...

    def open_output(self, sink: BinaryIO) -> ContainerWriter:
        """Wrap a writable byte sink into a container writer."""
        ...

    def open_input(self, source: BinaryIO) -> ContainerReader:
        """Wrap a readable byte source into a container reader."""
        ...
