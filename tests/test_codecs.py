"""
Codec provider tests.

Exercises the tar and zip writers/readers directly, below the builder and
reader.
"""

import io
import tarfile
import zipfile

import pytest

from dirpack import ArchiveEntry, DuplicateEntryError, TarCodec, UnknownFormatError, ZipCodec
from dirpack.ArchiveEngine import available_formats, codec_for_path, get_codec


def write_container(codec, entries):
    """Write (entry, payload) pairs into an in-memory container."""
    sink = io.BytesIO()
    with codec.open_output(sink) as writer:
        for entry, payload in entries:
            writer.put_entry(entry)
            if not entry.is_dir:
                writer.write(payload)
                writer.close_entry()
    return sink.getvalue()


def read_container(codec, data):
    """Return [(entry, payload)] read back from container bytes."""
    result = []
    with codec.open_input(io.BytesIO(data)) as reader:
        while (entry := reader.next_entry()) is not None:
            result.append((entry, reader.read()))
    return result


ENTRIES = [
    (ArchiveEntry("dir/", is_dir=True, mode=0o755, mtime=1_700_000_000), b""),
    (ArchiveEntry("dir/c.txt", size=7, mtime=1_700_000_000), b"charlie"),
    (ArchiveEntry("a.txt", size=0, mtime=1_700_000_000), b""),
]


class TestCodecRoundTrip:

    def test_entries_come_back_in_order(self, codec):
        data = write_container(codec, ENTRIES)
        back = read_container(codec, data)

        assert [e.name for e, _ in back] == ["dir/", "dir/c.txt", "a.txt"]
        assert [e.is_dir for e, _ in back] == [True, False, False]
        assert back[1][1] == b"charlie"
        assert back[1][0].size == 7

    def test_unread_payload_is_skipped(self, codec):
        data = write_container(codec, [
            (ArchiveEntry("big.bin", size=10_000), b"x" * 10_000),
            (ArchiveEntry("small.txt", size=2), b"ok"),
        ])
        with codec.open_input(io.BytesIO(data)) as reader:
            assert reader.next_entry().name == "big.bin"
            assert reader.read(3) == b"xxx"
            assert reader.next_entry().name == "small.txt"
            assert reader.read() == b"ok"
            assert reader.next_entry() is None

    def test_empty_container(self, codec):
        assert read_container(codec, write_container(codec, [])) == []

    def test_sink_is_not_closed(self, codec):
        sink = io.BytesIO()
        codec.open_output(sink).close()
        assert not sink.closed


class TestTarCodec:

    def test_output_is_a_standard_tar(self):
        data = write_container(TarCodec(), ENTRIES)
        with tarfile.open(fileobj=io.BytesIO(data)) as tar:
            assert tar.getnames() == ["dir", "dir/c.txt", "a.txt"]
            assert tar.extractfile("dir/c.txt").read() == b"charlie"

    def test_gzip_output(self):
        data = write_container(TarCodec("gz"), ENTRIES)
        assert data[:2] == b"\x1f\x8b"

    def test_short_payload_raises(self):
        with pytest.raises(OSError, match="header declares"):
            with TarCodec().open_output(io.BytesIO()) as writer:
                writer.put_entry(ArchiveEntry("short.txt", size=10))
                writer.write(b"abc")
                writer.close_entry()

    def test_long_payload_raises(self):
        with TarCodec().open_output(io.BytesIO()) as writer:
            writer.put_entry(ArchiveEntry("long.txt", size=2))
            with pytest.raises(OSError):
                writer.write(b"abc")

    def test_write_without_entry_raises(self):
        with TarCodec().open_output(io.BytesIO()) as writer:
            with pytest.raises(OSError):
                writer.write(b"abc")

    def test_unknown_compression(self):
        with pytest.raises(ValueError):
            TarCodec("lz4")


class TestZipCodec:

    def test_output_is_a_standard_zip(self):
        data = write_container(ZipCodec(), ENTRIES)
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["dir/", "dir/c.txt", "a.txt"]
            assert zf.read("dir/c.txt") == b"charlie"

    def test_duplicate_entry_rejected(self):
        with ZipCodec().open_output(io.BytesIO()) as writer:
            writer.put_entry(ArchiveEntry("a.txt", size=0))
            writer.close_entry()
            with pytest.raises(DuplicateEntryError) as exc_info:
                writer.put_entry(ArchiveEntry("a.txt", size=0))
        assert exc_info.value.name == "a.txt"
        assert isinstance(exc_info.value, OSError)

    def test_old_timestamps_are_clamped(self):
        data = write_container(ZipCodec(), [(ArchiveEntry("old.txt", size=1, mtime=0), b"o")])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.getinfo("old.txt").date_time[0] >= 1980


class TestRegistry:

    @pytest.mark.parametrize("location, name", [
        ("backup.tar", "tar"),
        ("backup.TAR.GZ", "tar.gz"),
        ("backup.tgz", "tar.gz"),
        ("backup.tar.bz2", "tar.bz2"),
        ("backup.txz", "tar.xz"),
        ("backup.zip", "zip"),
        ("https://example.com/files/backup.zip?token=abc", "zip"),
    ])
    def test_codec_for_path(self, location, name):
        assert codec_for_path(location).name == name

    def test_unknown_extension(self):
        with pytest.raises(UnknownFormatError):
            codec_for_path("backup.rar")

    def test_get_codec(self):
        assert isinstance(get_codec("ZIP"), ZipCodec)
        assert get_codec("tar.xz").compression == "xz"
        assert "tar" in available_formats()

    def test_unknown_format(self):
        with pytest.raises(UnknownFormatError):
            get_codec("7z")
