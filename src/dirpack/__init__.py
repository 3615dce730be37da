"""dirpack package initializer.

This module provides the package-level public surface of the `dirpack`
archive engine:

- __version__: Package version string.
- ArchiveBuilder / ArchiveReader: pack a directory tree into a container and
  unpack it again.
- ArchiveCodec, ArchiveEntry: the codec protocol and entry model that format
  providers implement.
- TarCodec / ZipCodec: the bundled codec providers.
- get_codec / codec_for_path: pick a codec by name or by file extension.
- cli: The CLI entrypoint function (click group) exposed for programmatic use.

Example:
    from dirpack import ArchiveBuilder, ArchiveReader
    ArchiveBuilder("site.tar").inflate("public/")
    ArchiveReader("site.tar").deflate("restored/", pattern="*.html")
"""

# Public version string
__version__ = "0.1.0"

from .Errors import DuplicateEntryError, UnsafeEntryError, UnknownFormatError
from .Protocols import ArchiveCodec, ArchiveEntry, ContainerReader, ContainerWriter
from .TarArchive import TarCodec
from .ZipArchive import ZipCodec
from .ArchiveEngine import get_codec, codec_for_path
from .FileIO import RemoteStream
from .Builder import ArchiveBuilder
from .Reader import ArchiveReader

# Expose the CLI command object so callers can reuse or register it in other tools.
from .CLI import cli

__all__ = [
    "__version__",
    "ArchiveBuilder",
    "ArchiveReader",
    "ArchiveCodec",
    "ArchiveEntry",
    "ContainerReader",
    "ContainerWriter",
    "TarCodec",
    "ZipCodec",
    "get_codec",
    "codec_for_path",
    "RemoteStream",
    "DuplicateEntryError",
    "UnsafeEntryError",
    "UnknownFormatError",
    "cli",
]
