"""Archive builder.

Walks directory trees in preorder and appends one entry per filesystem node
to a container through an `ArchiveCodec`. The codec owns the byte level
format; this module owns traversal, naming and payload streaming.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Tuple

from .ArchiveEngine import codec_for_path
from .Errors import DuplicateEntryError
from .Paths import relative_name
from .Protocols import ArchiveCodec, ArchiveEntry, ContainerWriter

logger = logging.getLogger(__name__)

BUFFER_SIZE = 128 * 1024  # 128 KB

ProgressCallback = Callable[[int], None]


def _children(directory: Path) -> List[Path]:
    # Materialized so the scandir handle is released before we descend.
    with os.scandir(directory) as it:
        return [Path(e.path) for e in it]


def _identity(path: Path) -> Tuple[int, int]:
    st = os.stat(path)
    return st.st_dev, st.st_ino


def walk_tree(base: Path, exclude: Optional[Path] = None) -> Iterator[Tuple[Path, bool]]:
    """Yield ``(path, is_dir)`` for every node below `base`, in preorder.

    Siblings come in filesystem enumeration order. An explicit stack of
    child iterators replaces recursion, so tree depth is not bounded by the
    interpreter's recursion limit. Symlinked directories are followed, but a
    directory is only descended into once per walk. Nodes that are neither
    directories nor regular files are skipped with a warning.

    Args:
        base (Path): Directory to walk. Not yielded itself.
        exclude (Path | None): A path to leave out, typically the container
            being written when it lies inside the tree.
    """
    visited = {_identity(base)}
    stack = [iter(_children(base))]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            continue
        if exclude is not None and child == exclude:
            continue

        is_dir = child.is_dir()
        if not is_dir and not child.is_file():
            # FIFOs, sockets, devices and dangling links have no payload to stream.
            logger.warning("Skipping %s (not a regular file or directory)", child)
            continue
        yield child, is_dir

        if is_dir:
            key = _identity(child)
            if key in visited:
                logger.warning("Not descending into %s again (directory already visited)", child)
                continue
            visited.add(key)
            stack.append(iter(_children(child)))


class ArchiveBuilder:
    """
    Builds a container from one or more filesystem roots.

    Attributes:
        archive_path (Path): Container file that is created or overwritten.
        codec (ArchiveCodec): Codec framing the entries; picked from the
            extension of `archive_path` when not given.
    """

    def __init__(self, archive_path, codec: Optional[ArchiveCodec] = None) -> None:
        self.archive_path = Path(archive_path)
        self.codec = codec or codec_for_path(self.archive_path)

    def inflate(self, *roots, progress_callback: Optional[ProgressCallback] = None) -> Path:
        """Write every root into the container.

        A single regular file produces a one-entry container named after the
        file, and a duplicate-entry rejection from the codec is ignored in
        that case. Directory roots are walked in full; there a duplicate entry
        aborts the call with `DuplicateEntryError`.

        Args:
            *roots (str | Path): Directories or files to add, in order.
            progress_callback (callable | None): Called with the number of
                payload bytes written after each chunk.

        Returns:
            Path: The container path.

        Raises:
            ValueError: If no root is given.
            FileNotFoundError: If a root does not exist. Raised before the
                container is opened.
            DuplicateEntryError: If the codec rejects a repeated entry name
                while adding directory roots.
            OSError: On any read or write failure. The partially written
                container is left on disk.
        """
        if not roots:
            raise ValueError("At least one source is required")
        paths = [Path(root) for root in roots]
        for path in paths:
            if not path.exists():
                raise FileNotFoundError(f"Source not found: {path}")

        if len(paths) == 1 and paths[0].is_file():
            return self._inflate_file(paths[0], progress_callback)

        own_path = self.archive_path.resolve()
        count = 0
        with open(self.archive_path, "wb") as sink, self.codec.open_output(sink) as writer:
            for root in paths:
                base = root.resolve()
                if base.is_file():
                    self._add(writer, self.codec.build_entry(base.name, base), base, progress_callback)
                    count += 1
                    continue

                for path, is_dir in walk_tree(base, exclude=own_path):
                    entry = self.codec.build_entry(relative_name(base, path, is_dir), path)
                    self._add(writer, entry, path, progress_callback)
                    count += 1

        logger.info("Wrote %d entries to %s", count, self.archive_path)
        return self.archive_path

    def _inflate_file(self, path: Path, progress_callback: Optional[ProgressCallback]) -> Path:
        entry = self.codec.build_entry(path.name, path)
        with open(self.archive_path, "wb") as sink, self.codec.open_output(sink) as writer:
            try:
                writer.put_entry(entry)
            except DuplicateEntryError as e:
                logger.debug("Ignoring duplicate entry for single file inflate: %s", e)
                return self.archive_path
            self._copy(path, writer, progress_callback)

        logger.info("Wrote %s to %s", entry.name, self.archive_path)
        return self.archive_path

    def _add(
        self,
        writer: ContainerWriter,
        entry: ArchiveEntry,
        path: Path,
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        logger.debug("Adding %s", entry.name)
        writer.put_entry(entry)
        if not entry.is_dir:
            self._copy(path, writer, progress_callback)

    @staticmethod
    def _copy(path: Path, writer: ContainerWriter, progress_callback: Optional[ProgressCallback]) -> None:
        # The flow is local file -> codec writer -> container
        with open(path, "rb") as source:
            while chunk := source.read(BUFFER_SIZE):
                writer.write(chunk)
                if progress_callback:
                    progress_callback(len(chunk))
        writer.close_entry()
