"""dirpack CLI entrypoint.

This module provides the `dirpack` click command group:

- ``pack``: build a container from directories or a single file.
- ``unpack``: extract a container, optionally filtered and flattened.
- ``list``: show the entries of a container.
- ``exists``: exit 0 when an entry matches a pattern, 1 otherwise.
- ``cat``: write the first matching file to stdout.

Usage example (from shell):
    dirpack pack backup.tar ./project
    dirpack unpack backup.tar -o restored/ --pattern '*.py' --flat --yes

Every option can also be set through a ``DIRPACK_<COMMAND>_<OPTION>``
environment variable. Archive handling is delegated to `ArchiveBuilder` and
`ArchiveReader`; this module only deals with user interaction and progress.
"""

import logging
import sys
import tarfile
import zipfile
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, DownloadColumn, TransferSpeedColumn
from rich.table import Table

from .ArchiveEngine import available_formats, codec_for_path, get_codec
from .Builder import ArchiveBuilder, walk_tree
from .Paths import matches
from .Reader import ArchiveReader

# A single console instance for the CLI UI (rich handles colors/formatting)
console = Console()
error_console = Console(stderr=True)

# Failures reported as an ``Error:`` line instead of a traceback. Corrupt
# containers raise tarfile/zipfile errors and remote sources raise httpx ones,
# none of which are OSErrors.
ARCHIVE_ERRORS = (OSError, ValueError, tarfile.TarError, zipfile.BadZipFile, httpx.HTTPError)

format_option = click.option(
    "--format", "-f", "format_name",
    type=click.Choice(available_formats(), case_sensitive=False),
    default=None,
    help="Archive format. Defaults to the one implied by the archive's extension.")


def _setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("dirpack")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=error_console, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _codec(archive, format_name):
    return get_codec(format_name) if format_name else codec_for_path(archive)


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
        transient=True,
    )


def _payload_size(sources) -> int:
    total = 0
    for source in sources:
        if source.is_file():
            total += source.stat().st_size
            continue
        for path, is_dir in walk_tree(source.resolve()):
            if not is_dir:
                total += path.stat().st_size
    return total


def _selected_size(entries, pattern) -> int:
    # Bytes deflate() will write for this pattern, directories excluded.
    return sum(entry.size for entry in entries if not entry.is_dir and matches(pattern, entry.name))


def _fail(e: Exception) -> None:
    # Surface the error to the user, then leave with a non-zero status.
    error_console.print(f"[red]Error:[/red] {e}")
    raise SystemExit(2)


def _entry_table(entries) -> Table:
    table = Table(title="Archive Contents")
    table.add_column("Entry", justify="left")
    table.add_column("Type", justify="left")
    table.add_column("Size", justify="right")
    for entry in entries:
        table.add_row(entry.name, "dir" if entry.is_dir else "file", "" if entry.is_dir else str(entry.size))
    return table


@click.group(context_settings=dict(help_option_names=["-h", "--help"], auto_envvar_prefix="DIRPACK"))
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log every entry as it is processed.")
def cli(verbose: bool):
    """Pack directory trees into tar/zip containers and unpack them again."""
    _setup_logging(verbose)


@cli.command()
@click.argument("archive", type=click.Path(dir_okay=False, writable=True, path_type=Path))
@click.argument("sources", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@format_option
def pack(archive: Path, sources, format_name):
    """Write SOURCES (directories or a single file) into ARCHIVE."""
    try:
        builder = ArchiveBuilder(archive, _codec(archive, format_name))
        with _progress() as progress:
            task = progress.add_task("Packing files...", total=_payload_size(sources))
            builder.inflate(*sources, progress_callback=lambda n: progress.update(task, advance=n))
        console.print(f"Wrote [bold]{archive}[/bold].")
    except ARCHIVE_ERRORS as e:
        _fail(e)


@cli.command()
@click.argument("archive", type=str)
@click.option("--output", "-o",
              type=click.Path(file_okay=False, dir_okay=True, writable=True, path_type=Path),
              default=Path("extracted"),
              help="Output directory for extracted files")
@click.option("--pattern", "-p", type=str, default=None, help="Only extract files whose name matches this glob")
@click.option("--flat", is_flag=True, default=False, help="Put every file directly in the output directory")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation")
@format_option
def unpack(archive: str, output: Path, pattern, flat: bool, yes: bool, format_name):
    """Extract ARCHIVE (a path or an http(s) URL) into a directory."""
    try:
        with console.status("Reading archive..."):
            reader = ArchiveReader(archive, _codec(archive, format_name))
            entries = reader.get_entries()

        console.print(_entry_table(entries))
        if not yes and not click.confirm(f"Extract these entries to '{output}'?"):
            console.print("Extraction cancelled.")
            return

        output.mkdir(parents=True, exist_ok=True)
        total = _selected_size(entries, pattern)
        with _progress() as progress:
            task = progress.add_task("Extracting files...", total=total)
            reader.deflate(output, pattern, flat, progress_callback=lambda n: progress.update(task, advance=n))
        console.print("Extraction complete.")
    except ARCHIVE_ERRORS as e:
        _fail(e)


@cli.command(name="list")
@click.argument("archive", type=str)
@format_option
def list_entries(archive: str, format_name):
    """Show the entries of ARCHIVE."""
    try:
        reader = ArchiveReader(archive, _codec(archive, format_name))
        console.print(_entry_table(reader.get_entries()))
    except ARCHIVE_ERRORS as e:
        _fail(e)


@cli.command()
@click.argument("archive", type=str)
@click.argument("pattern", type=str)
@format_option
def exists(archive: str, pattern: str, format_name):
    """Exit with status 0 if an entry of ARCHIVE matches PATTERN, 1 otherwise."""
    try:
        found = ArchiveReader(archive, _codec(archive, format_name)).entry_exists(pattern)
    except ARCHIVE_ERRORS as e:
        _fail(e)
    console.print("found" if found else "not found")
    sys.exit(0 if found else 1)


@cli.command()
@click.argument("archive", type=str)
@click.argument("pattern", type=str)
@format_option
def cat(archive: str, pattern: str, format_name):
    """Write the first entry of ARCHIVE matching PATTERN to stdout."""
    try:
        payload = ArchiveReader(archive, _codec(archive, format_name)).deflate_entry(pattern)
    except ARCHIVE_ERRORS as e:
        _fail(e)
    if payload is None:
        error_console.print(f"No entry matches '{pattern}'")
        sys.exit(1)
    stdout = click.get_binary_stream("stdout")
    stdout.write(payload.getvalue())
    stdout.flush()
