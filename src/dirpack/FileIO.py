"""Container sources.

A container is read either from a local file or from an HTTP(S) URL. Remote
containers are wrapped in `RemoteStream`, an io.RawIOBase-compatible stream
that fetches byte ranges on demand so the tar and zip codecs can consume a
remote archive without downloading it first.

Functions:
    is_remote: Tell URLs from local paths.
    source_exists: Existence check performed before any stream is opened.
    open_source: Open a binary stream over a local path or URL.
"""

import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

MIN_FETCH_SIZE = 1 * 1024 * 1024  # 1 MiB
LARGE_REQUEST_THRESHOLD = 4 * 1024 * 1024  # 4 MiB
DEFAULT_FETCH_SIZE = 8 * 1024 * 1024  # 8 MiB
TAIL_PREFETCH_SIZE = 256 * 1024  # 256 KiB

MISSING_STATUS_CODES = (404, 410)

HEADERS = {
    "User-Agent": "dirpack",
    "Accept": "*/*",
    "Connection": "keep-alive",
}


def is_remote(location) -> bool:
    """Return True when `location` is an http:// or https:// URL."""
    if isinstance(location, os.PathLike):
        return False
    return urlsplit(str(location)).scheme in ("http", "https")


def _make_client(transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    return httpx.Client(
        headers=HEADERS,
        follow_redirects=True,
        timeout=httpx.Timeout(10.0, read=300.0),
        transport=transport,
    )


def source_exists(location, transport: Optional[httpx.BaseTransport] = None) -> bool:
    """Check that a container source exists without opening a stream on it.

    Args:
        location (str | Path): Local path or http(s) URL.
        transport (httpx.BaseTransport | None): Optional transport for the HTTP client.

    Returns:
        bool: False for a missing local file or a 404/410 response.

    Raises:
        httpx.HTTPError: For any other network or HTTP failure.
    """
    if not is_remote(location):
        return Path(location).is_file()

    with _make_client(transport) as client:
        with client.stream("GET", str(location), headers={"Range": "bytes=0-0"}) as r:
            if r.status_code in MISSING_STATUS_CODES:
                return False
            r.raise_for_status()
    return True


def open_source(location, transport: Optional[httpx.BaseTransport] = None) -> BinaryIO:
    """Open a readable binary stream over a container source.

    The caller owns the returned stream and must close it.
    """
    if is_remote(location):
        return RemoteStream(str(location), transport=transport)
    return open(location, "rb")


class RemoteStream(io.RawIOBase):
    """File-like stream backed by an HTTP resource using Range requests.

    The stream keeps a single cached region plus a small cached tail of the
    resource. Sequential formats such as tar walk the region cache forward;
    zip reads its central directory from the tail first.

    Attributes:
        url (str): Remote resource URL.
        buffer_size (int): Preferred size in bytes for range fetches.
        pos (int): Current logical read position.
        client (httpx.Client): Keep-alive client used for every request.
    """

    def __init__(
        self,
        url: str,
        buffer_size: int = DEFAULT_FETCH_SIZE,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Create a RemoteStream.

        Args:
            url (str): HTTP(S) URL of the resource.
            buffer_size (int): Preferred fetch size in bytes.
            transport (httpx.BaseTransport | None): Optional transport, mainly for tests.

        Raises:
            FileNotFoundError: If the server answers 404 or 410.
            httpx.HTTPStatusError: For other error statuses.
        """
        self.url = url
        self.buffer_size = buffer_size
        self.pos: int = 0
        self._size: int = 0

        self._buffer: bytes = b""
        self._buffer_start: int = 0
        self._tail: bytes = b""
        self._tail_start: int = 0

        self.client = _make_client(transport)

        # A one byte ranged GET tells us the total size without relying on HEAD.
        try:
            with self.client.stream("GET", self.url, headers={"Range": "bytes=0-0"}) as r:
                if r.status_code in MISSING_STATUS_CODES:
                    raise FileNotFoundError(f"Remote container not found: {self.url}")
                r.raise_for_status()
                content_range = r.headers.get("Content-Range")
                if content_range:
                    # Content-Range: bytes 0-0/12345
                    self._size = int(content_range.split("/")[-1])
                else:
                    self._size = int(r.headers.get("Content-Length", 0))
        except BaseException:
            self.client.close()
            raise

        logger.debug("Remote container %s has %d bytes", self.url, self._size)

    @property
    def size(self) -> int:
        """Content length reported by the server, or 0 if unknown."""
        return self._size

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def tell(self) -> int:
        return self.pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move the logical position. No request is made until the next read."""
        if whence == io.SEEK_SET:
            self.pos = offset
        elif whence == io.SEEK_CUR:
            self.pos += offset
        elif whence == io.SEEK_END:
            self.pos = self.size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        return self.pos

    def _get_range(self, start: int, end: int) -> bytes:
        # end is inclusive per the Range header
        response = self.client.get(self.url, headers={"Range": f"bytes={start}-{end}"})
        response.raise_for_status()
        data = response.content
        if response.status_code == 200:
            # Server ignored the range and sent the whole resource.
            data = data[start:end + 1]
        if not data and end >= start:
            raise EOFError("Server returned empty content for non-zero range request.")
        return data

    def _fetch(self, size: int) -> None:
        """Replace the region cache with a region starting at `pos`."""
        fetch_size = max(size, MIN_FETCH_SIZE) if size <= LARGE_REQUEST_THRESHOLD else max(size, self.buffer_size)
        fetch_size = min(fetch_size, self.size - self.pos)
        self._buffer = self._get_range(self.pos, self.pos + fetch_size - 1)
        self._buffer_start = self.pos

    def _fetch_tail(self) -> None:
        tail_size = min(TAIL_PREFETCH_SIZE, self.size)
        self._tail_start = self.size - tail_size
        self._tail = self._get_range(self._tail_start, self.size - 1)

    @staticmethod
    def _slice(data: bytes, start: int, pos: int, size: int) -> bytes | None:
        if start <= pos and pos + size <= start + len(data):
            offset = pos - start
            return data[offset:offset + size]
        return None

    def read(self, size: int = -1) -> bytes:
        """Read up to `size` bytes (all remaining bytes when -1).

        Raises:
            httpx.HTTPError: On network errors while fetching a range.
        """
        if size is None or size < 0 or self.pos + size > self.size:
            size = self.size - self.pos
        if size <= 0:
            return b""

        # Reads near the end are served from the tail cache.
        if self.pos >= self.size - TAIL_PREFETCH_SIZE:
            if not self._tail:
                self._fetch_tail()
            data = self._slice(self._tail, self._tail_start, self.pos, size)
            if data is not None:
                self.pos += len(data)
                return data

        data = self._slice(self._buffer, self._buffer_start, self.pos, size)
        if data is None:
            self._fetch(size)
            data = self._slice(self._buffer, self._buffer_start, self.pos, size)
            if data is None:
                # Short range response; hand back what we got.
                data = self._buffer[self.pos - self._buffer_start:]
        self.pos += len(data)
        return data

    def readinto(self, b) -> int:
        data = self.read(len(b))
        b[:len(data)] = data
        return len(data)

    def close(self) -> None:
        """Close the HTTP client and the stream."""
        if not self.closed:
            self.client.close()
        super().close()
