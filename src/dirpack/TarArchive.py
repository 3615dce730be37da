"""Tar codec.

Streams POSIX tar containers through the stdlib `tarfile` module in its
pipe modes (``w|`` and ``r|``), so neither the sink nor the source has to be
seekable. An optional compression is fixed by the caller when the codec is
created.
"""

import logging
import tarfile
from pathlib import Path
from typing import BinaryIO, Optional

from .Protocols import ArchiveCodec, ArchiveEntry, ContainerReader, ContainerWriter

logger = logging.getLogger(__name__)

TAR_COMPRESSION_TYPES = {
    None: "",  # No compression
    "gz": "gz",  # GZIP compressed
    "bz2": "bz2",  # BZIP2 compressed
    "xz": "xz",  # XZ compressed
}


class TarWriter(ContainerWriter):
    """Incremental tar writer.

    `tarfile.TarFile.addfile` wants the whole payload as one file object;
    this writer emits the header, the payload chunks and the block padding
    separately, keeping the TarFile's offset in step so `close()` writes a
    correct end-of-archive record.
    """

    def __init__(self, sink: BinaryIO, compression: Optional[str] = None) -> None:
        self.archive = tarfile.open(fileobj=sink, mode=f"w|{TAR_COMPRESSION_TYPES[compression]}")
        self._current: Optional[tarfile.TarInfo] = None
        self._written = 0

    def put_entry(self, entry: ArchiveEntry) -> None:
        if self._current is not None:
            self.close_entry()

        info = tarfile.TarInfo(entry.name)
        info.type = tarfile.DIRTYPE if entry.is_dir else tarfile.REGTYPE
        info.size = 0 if entry.is_dir else entry.size
        info.mtime = int(entry.mtime)
        info.mode = entry.mode

        buf = info.tobuf(self.archive.format, self.archive.encoding, self.archive.errors)
        self.archive.fileobj.write(buf)
        self.archive.offset += len(buf)

        if not entry.is_dir:
            self._current = info
            self._written = 0

    def write(self, data: bytes) -> int:
        if self._current is None:
            raise OSError("No tar entry is open for writing")
        if self._written + len(data) > self._current.size:
            raise OSError(f"{self._current.name}: payload exceeds declared size {self._current.size}")
        self.archive.fileobj.write(data)
        self._written += len(data)
        self.archive.offset += len(data)
        return len(data)

    def _pad(self) -> None:
        remainder = self._written % tarfile.BLOCKSIZE
        if remainder:
            padding = tarfile.BLOCKSIZE - remainder
            self.archive.fileobj.write(tarfile.NUL * padding)
            self.archive.offset += padding

    def close_entry(self) -> None:
        """Pad the current entry to a block boundary.

        Raises:
            OSError: If fewer bytes were written than the header declares
                (the file shrank while it was being read, for instance).
        """
        if self._current is None:
            return
        info, written = self._current, self._written
        self._pad()
        self._current = None
        if written != info.size:
            raise OSError(f"{info.name}: wrote {written} bytes, header declares {info.size}")

    def close(self) -> None:
        if self.archive.closed:
            return
        if self._current is not None:
            # Leave the half written entry as is; only keep the blocks aligned.
            self._pad()
            self._current = None
        self.archive.close()


class TarReader(ContainerReader):
    """Forward-only tar reader over `tarfile`'s stream mode."""

    def __init__(self, source: BinaryIO, compression: Optional[str] = None) -> None:
        self.archive = tarfile.open(fileobj=source, mode=f"r|{TAR_COMPRESSION_TYPES[compression]}")
        self._payload = None

    def next_entry(self) -> Optional[ArchiveEntry]:
        if self._payload is not None:
            self._payload.close()
            self._payload = None

        # tarfile skips whatever is left of the previous member's payload.
        info = self.archive.next()
        if info is None:
            return None

        if info.isdir():
            return ArchiveEntry(name=info.name.rstrip("/") + "/", is_dir=True, mtime=info.mtime, mode=info.mode)

        if info.isfile():
            self._payload = self.archive.extractfile(info)
        else:
            logger.debug("Entry %s is not a regular file, reading it as empty", info.name)
        return ArchiveEntry(name=info.name, size=info.size if info.isfile() else 0, mtime=info.mtime, mode=info.mode)

    def read(self, size: int = -1) -> bytes:
        if self._payload is None:
            return b""
        return self._payload.read(size)

    def close(self) -> None:
        if self._payload is not None:
            self._payload.close()
            self._payload = None
        self.archive.close()


class TarCodec(ArchiveCodec):
    """
    Tar codec using the stdlib tarfile module.

    Attributes:
        name (str): ``"tar"`` or ``"tar.<compression>"``.
        compression (str | None): One of the keys of TAR_COMPRESSION_TYPES.
    """

    def __init__(self, compression: Optional[str] = None) -> None:
        if compression not in TAR_COMPRESSION_TYPES:
            raise ValueError(f"Unsupported tar compression: {compression}")
        self.compression = compression
        self.name = f"tar.{compression}" if compression else "tar"

    def build_entry(self, name: str, path: Path) -> ArchiveEntry:
        return ArchiveEntry.from_path(name, path)

    def open_output(self, sink: BinaryIO) -> TarWriter:
        return TarWriter(sink, self.compression)

    def open_input(self, source: BinaryIO) -> TarReader:
        return TarReader(source, self.compression)
