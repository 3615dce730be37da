"""Archive reader.

Pulls entries from a container one at a time and decides, per entry,
whether to materialize it below a destination directory. Also answers
existence queries and single-entry retrievals without extracting anything.
"""

import io
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import httpx

from .ArchiveEngine import codec_for_path
from .FileIO import open_source, source_exists
from .Paths import matches, target_path
from .Protocols import ArchiveCodec, ArchiveEntry, ContainerReader

logger = logging.getLogger(__name__)

CHUNK_SIZE = 128 * 1024  # 128 KB


class ArchiveReader:
    """
    Reads a container sequentially, entry by entry.

    Attributes:
        source (str | Path): Local container path or http(s) URL.
        codec (ArchiveCodec): Codec parsing the container.
        transport (httpx.BaseTransport | None): Optional transport for remote sources.
    """

    def __init__(
        self,
        source,
        codec: Optional[ArchiveCodec] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Args:
            source (str | Path): Local container path or http(s) URL.
            codec (ArchiveCodec | None): Codec to use; picked from the source's
                extension when omitted.
            transport (httpx.BaseTransport | None): Passed to the HTTP client for
                remote sources.

        Raises:
            FileNotFoundError: If the container does not exist.
            UnknownFormatError: If no codec is given and the extension is unknown.
        """
        self.source = source
        self.transport = transport
        if not source_exists(source, transport):
            raise FileNotFoundError(f"File not found {source}")
        self.codec = codec or codec_for_path(source)

    @contextmanager
    def _open(self) -> Iterator[ContainerReader]:
        with open_source(self.source, self.transport) as raw, self.codec.open_input(raw) as reader:
            yield reader

    def _entries(self, reader: ContainerReader) -> Iterator[ArchiveEntry]:
        while (entry := reader.next_entry()) is not None:
            yield entry

    def deflate(
        self,
        destination,
        pattern: Optional[str] = None,
        flat: bool = False,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> None:
        """Extract the container below `destination`.

        Directory entries are always created in structure-preserving mode,
        whatever the pattern. File entries whose last path segment does not
        match `pattern` are skipped. In flat mode every selected file lands
        directly in `destination`; when two entries share a file name the
        one read last wins.

        Args:
            destination (str | Path): Existing directory to extract into.
            pattern (str | None): Glob tested against each entry's last path segment.
            flat (bool): Drop the directory part of entry names.
            progress_callback (callable | None): Called with the number of bytes
                written after each chunk.

        Raises:
            ValueError: If `destination` is missing or not a directory.
            UnsafeEntryError: If an entry name points outside `destination`.
            OSError: On read or write failures. Files already extracted stay.
        """
        destination = Path(destination)
        if not destination.is_dir():
            raise ValueError(f"Invalid destination: {destination.resolve()}")

        extracted = 0
        with self._open() as reader:
            for entry in self._entries(reader):
                if entry.is_dir:
                    if not flat:
                        target_path(destination, entry.name, is_dir=True).mkdir(parents=True, exist_ok=True)
                    continue

                if not matches(pattern, entry.name):
                    logger.debug("Skipping %s", entry.name)
                    continue

                target = target_path(destination, entry.name, flat)
                logger.debug("Extracting file %s", target)
                target.parent.mkdir(parents=True, exist_ok=True)
                with open(target, "wb") as target_file:
                    # The flow is container -> codec reader -> local file
                    while chunk := reader.read(CHUNK_SIZE):
                        target_file.write(chunk)
                        if progress_callback:
                            progress_callback(len(chunk))
                extracted += 1

        logger.info("Extracted %d files from %s", extracted, self.source)

    def deflate_entry(self, pattern: str) -> Optional[io.BytesIO]:
        """Return the payload of the first entry matching `pattern`.

        Directory entries take part in the search. A matching directory yields
        an empty buffer, the same as an empty file.

        Args:
            pattern (str): Glob tested against each entry's last path segment.

        Returns:
            io.BytesIO | None: A buffer positioned at the start of the payload,
            or None when no entry matches.

        Raises:
            ValueError: If `pattern` is empty.
        """
        if not pattern:
            raise ValueError("A pattern is required")

        with self._open() as reader:
            for entry in self._entries(reader):
                if not matches(pattern, entry.name):
                    continue
                logger.debug("Found %s for pattern %s", entry.name, pattern)
                buffer = io.BytesIO()
                while chunk := reader.read(CHUNK_SIZE):
                    buffer.write(chunk)
                buffer.seek(0)
                return buffer
        return None

    def entry_exists(self, pattern: str) -> bool:
        """Tell whether any entry's last path segment matches `pattern`.

        Directory entries count. Scanning stops at the first match and
        nothing is written.

        Raises:
            ValueError: If `pattern` is empty.
        """
        if not pattern:
            raise ValueError("A pattern is required")

        with self._open() as reader:
            return any(matches(pattern, entry.name) for entry in self._entries(reader))

    def get_entries(self) -> List[ArchiveEntry]:
        """Return every entry in container order."""
        with self._open() as reader:
            return list(self._entries(reader))
