"""Zip codec.

Provides a codec around the standard library `zipfile.ZipFile` class. The
writer refuses repeated entry names (zipfile itself only warns), which is how
duplicate entries surface as `DuplicateEntryError` to the builder.
"""

import time
import zipfile
from pathlib import Path
from typing import BinaryIO, Optional, Set

from .Errors import DuplicateEntryError
from .Protocols import ArchiveCodec, ArchiveEntry, ContainerReader, ContainerWriter

# Zip timestamps are DOS dates and cannot express anything outside this range.
MIN_DATE_TIME = (1980, 1, 1, 0, 0, 0)
MAX_DATE_TIME = (2107, 12, 31, 23, 59, 58)

S_IFDIR = 0o040000
S_IFREG = 0o100000
MSDOS_DIRECTORY = 0x10


def _date_time(mtime: float) -> tuple:
    date_time = time.localtime(mtime)[:6]
    return min(max(date_time, MIN_DATE_TIME), MAX_DATE_TIME)


class ZipWriter(ContainerWriter):
    """
    Zip writer streaming each entry through `ZipFile.open(..., "w")`.

    Attributes:
        archive (zipfile.ZipFile): The ZipFile being written.
    """

    def __init__(self, sink: BinaryIO, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.archive = zipfile.ZipFile(sink, "w", compression=compression)
        self.compression = compression
        self._handle = None
        self._names: Set[str] = set()

    def put_entry(self, entry: ArchiveEntry) -> None:
        """Start a new entry.

        Raises:
            DuplicateEntryError: If an entry with the same name was already written.
        """
        if self._handle is not None:
            self.close_entry()
        if entry.name in self._names:
            raise DuplicateEntryError(entry.name)
        self._names.add(entry.name)

        zinfo = zipfile.ZipInfo(entry.name, date_time=_date_time(entry.mtime))
        if entry.is_dir:
            zinfo.external_attr = ((S_IFDIR | entry.mode) << 16) | MSDOS_DIRECTORY
            self.archive.writestr(zinfo, b"")
            return

        zinfo.external_attr = (S_IFREG | entry.mode) << 16
        zinfo.compress_type = self.compression
        # zipfile uses the declared size to decide on zip64 headers up front.
        zinfo.file_size = entry.size
        self._handle = self.archive.open(zinfo, "w")

    def write(self, data: bytes) -> int:
        if self._handle is None:
            raise OSError("No zip entry is open for writing")
        return self._handle.write(data)

    def close_entry(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            handle.close()

    def close(self) -> None:
        self.close_entry()
        self.archive.close()


class ZipReader(ContainerReader):
    """Reads zip entries in central directory order."""

    def __init__(self, source: BinaryIO) -> None:
        self.archive = zipfile.ZipFile(source)
        self._members = iter(self.archive.infolist())
        self._handle = None

    def next_entry(self) -> Optional[ArchiveEntry]:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

        info = next(self._members, None)
        if info is None:
            return None

        mode = (info.external_attr >> 16) & 0o7777
        mtime = time.mktime(info.date_time + (0, 0, -1))
        if info.is_dir():
            return ArchiveEntry(name=info.filename, is_dir=True, mtime=mtime, mode=mode or 0o755)

        self._handle = self.archive.open(info)
        return ArchiveEntry(name=info.filename, size=info.file_size, mtime=mtime, mode=mode or 0o644)

    def read(self, size: int = -1) -> bytes:
        if self._handle is None:
            return b""
        return self._handle.read(size)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        self.archive.close()


class ZipCodec(ArchiveCodec):
    """Zip codec, deflate compressed by default."""

    name = "zip"

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self.compression = compression

    def build_entry(self, name: str, path: Path) -> ArchiveEntry:
        return ArchiveEntry.from_path(name, path)

    def open_output(self, sink: BinaryIO) -> ZipWriter:
        return ZipWriter(sink, self.compression)

    def open_input(self, source: BinaryIO) -> ZipReader:
        return ZipReader(source)
