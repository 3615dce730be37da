"""Codec registry.

Maps format names and container file extensions to codec providers. The
format is always chosen explicitly (by name or by extension); container
contents are never sniffed.
"""

import logging
from pathlib import PurePosixPath
from typing import Callable, Dict, List
from urllib.parse import urlsplit

from .Errors import UnknownFormatError
from .FileIO import is_remote
from .Protocols import ArchiveCodec
from .TarArchive import TarCodec
from .ZipArchive import ZipCodec

logger = logging.getLogger(__name__)

CODECS: Dict[str, Callable[[], ArchiveCodec]] = {
    "tar": TarCodec,
    "tar.gz": lambda: TarCodec("gz"),
    "tar.bz2": lambda: TarCodec("bz2"),
    "tar.xz": lambda: TarCodec("xz"),
    "zip": ZipCodec,
}

# Longest suffixes first so ".tar.gz" wins over ".gz".
EXTENSIONS = {
    ".tar.gz": "tar.gz",
    ".tgz": "tar.gz",
    ".tar.bz2": "tar.bz2",
    ".tbz2": "tar.bz2",
    ".tar.xz": "tar.xz",
    ".txz": "tar.xz",
    ".tar": "tar",
    ".zip": "zip",
}


def available_formats() -> List[str]:
    """Names accepted by `get_codec`."""
    return list(CODECS)


def get_codec(format_name: str) -> ArchiveCodec:
    """Return a fresh codec for a format name such as ``"tar"`` or ``"zip"``.

    Raises:
        UnknownFormatError: If no codec is registered under that name.
    """
    try:
        factory = CODECS[format_name.lower()]
    except KeyError:
        raise UnknownFormatError(format_name) from None
    return factory()


def codec_for_path(location) -> ArchiveCodec:
    """Pick a codec from the extension of a container path or URL.

    Args:
        location (str | Path): Local path or http(s) URL. For URLs only the
            path component is looked at, so query strings do not matter.

    Raises:
        UnknownFormatError: If the extension is not recognised.
    """
    name = urlsplit(str(location)).path if is_remote(location) else str(location)
    name = PurePosixPath(name.replace("\\", "/")).name.lower()
    for suffix, format_name in EXTENSIONS.items():
        if name.endswith(suffix):
            logger.debug("Using %s codec for %s", format_name, location)
            return get_codec(format_name)
    raise UnknownFormatError(str(location))
