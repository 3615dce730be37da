"""
CLI tests using click's CliRunner.
"""

import tarfile
import zipfile

import pytest
from click.testing import CliRunner

from dirpack import ArchiveBuilder, ArchiveEntry
from dirpack.CLI import cli, _selected_size

from conftest import snapshot, write_files


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def abc_archive(tmp_path):
    root = write_files(tmp_path / "abc", {"a.txt": b"A", "b.log": b"B", "dir/c.txt": b"C"})
    return ArchiveBuilder(tmp_path / "abc.tar").inflate(root)


class TestPack:

    def test_pack_directory(self, runner, sample_tree, tmp_path):
        archive = tmp_path / "out.tar"
        result = runner.invoke(cli, ["pack", str(archive), str(sample_tree)])

        assert result.exit_code == 0, result.output
        with tarfile.open(archive) as tar:
            assert "dir/sub/d.bin" in tar.getnames()

    def test_pack_with_explicit_format(self, runner, sample_tree, tmp_path):
        archive = tmp_path / "out.bin"
        result = runner.invoke(cli, ["pack", "--format", "zip", str(archive), str(sample_tree)])

        assert result.exit_code == 0, result.output
        assert zipfile.is_zipfile(archive)

    def test_pack_unknown_extension(self, runner, sample_tree, tmp_path):
        result = runner.invoke(cli, ["pack", str(tmp_path / "out.bin"), str(sample_tree)])
        assert result.exit_code == 2

    def test_pack_missing_source(self, runner, tmp_path):
        result = runner.invoke(cli, ["pack", str(tmp_path / "out.tar"), str(tmp_path / "missing")])
        assert result.exit_code != 0
        assert not (tmp_path / "out.tar").exists()


class TestUnpack:

    def test_unpack_with_confirmation(self, runner, abc_archive, tmp_path):
        output = tmp_path / "restored"
        result = runner.invoke(cli, ["unpack", str(abc_archive), "-o", str(output)], input="y\n")

        assert result.exit_code == 0, result.output
        assert snapshot(output) == {"a.txt": b"A", "b.log": b"B", "dir/": None, "dir/c.txt": b"C"}

    def test_unpack_cancelled(self, runner, abc_archive, tmp_path):
        output = tmp_path / "restored"
        result = runner.invoke(cli, ["unpack", str(abc_archive), "-o", str(output)], input="n\n")

        assert result.exit_code == 0
        assert "cancelled" in result.output
        assert not output.exists()

    def test_unpack_pattern_flat(self, runner, abc_archive, tmp_path):
        output = tmp_path / "restored"
        result = runner.invoke(cli, ["unpack", str(abc_archive), "-o", str(output),
                                     "--pattern", "*.txt", "--flat", "--yes"])

        assert result.exit_code == 0, result.output
        assert snapshot(output) == {"a.txt": b"A", "c.txt": b"C"}

    def test_unpack_flat_from_environment(self, runner, abc_archive, tmp_path):
        output = tmp_path / "restored"
        result = runner.invoke(cli, ["unpack", str(abc_archive), "-o", str(output), "--yes"],
                               env={"DIRPACK_UNPACK_FLAT": "1"})

        assert result.exit_code == 0, result.output
        assert "c.txt" in snapshot(output)

    def test_unpack_missing_archive(self, runner, tmp_path):
        result = runner.invoke(cli, ["unpack", str(tmp_path / "missing.tar"), "--yes"])
        assert result.exit_code == 2


class TestQueries:

    def test_list(self, runner, abc_archive):
        result = runner.invoke(cli, ["list", str(abc_archive)])

        assert result.exit_code == 0, result.output
        assert "c.txt" in result.output

    def test_exists(self, runner, abc_archive):
        assert runner.invoke(cli, ["exists", str(abc_archive), "*.log"]).exit_code == 0
        assert runner.invoke(cli, ["exists", str(abc_archive), "*.md"]).exit_code == 1

    def test_cat(self, runner, abc_archive):
        result = runner.invoke(cli, ["cat", str(abc_archive), "c.txt"])

        assert result.exit_code == 0
        assert result.stdout_bytes == b"C"

    def test_cat_no_match(self, runner, abc_archive):
        assert runner.invoke(cli, ["cat", str(abc_archive), "*.md"]).exit_code == 1

    def test_verbose_flag(self, runner, abc_archive):
        result = runner.invoke(cli, ["--verbose", "exists", str(abc_archive), "a.txt"])
        assert result.exit_code == 0


class TestSelectedSize:

    ENTRIES = [
        ArchiveEntry("dir/", is_dir=True),
        ArchiveEntry("dir/a.txt", size=10),
        ArchiveEntry("dir/b.log", size=200),
        ArchiveEntry("c.txt", size=5),
    ]

    def test_no_pattern_counts_every_file(self):
        assert _selected_size(self.ENTRIES, None) == 215

    def test_pattern_counts_only_matching_files(self):
        assert _selected_size(self.ENTRIES, "*.txt") == 15

    def test_pattern_matching_nothing(self):
        assert _selected_size(self.ENTRIES, "*.md") == 0


class TestCorruptContainers:

    @pytest.fixture(params=["bad.tar", "bad.zip"])
    def corrupt_archive(self, request, tmp_path):
        path = tmp_path / request.param
        path.write_bytes(b"this is not an archive\n" * 64)
        return path

    def test_unpack_reports_error(self, runner, corrupt_archive, tmp_path):
        result = runner.invoke(cli, ["unpack", str(corrupt_archive), "-o", str(tmp_path / "out"), "--yes"])

        assert result.exit_code == 2
        assert "Error" in result.output
        assert not isinstance(result.exception, (tarfile.TarError, zipfile.BadZipFile))

    def test_list_reports_error(self, runner, corrupt_archive):
        result = runner.invoke(cli, ["list", str(corrupt_archive)])

        assert result.exit_code == 2
        assert "Error" in result.output

    def test_exists_reports_error(self, runner, corrupt_archive):
        assert runner.invoke(cli, ["exists", str(corrupt_archive), "a.txt"]).exit_code == 2
