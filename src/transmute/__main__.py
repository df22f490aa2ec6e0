"""
CLI entrypoints for transmute.

The CLI is built using Typer and wraps the conversion engine for use from a
shell. It can be accessed through the `transmute` command after installation,
or by running this module directly with `python -m transmute`.

Commands:
    formats: List the known formats, optionally filtered
    detect: Detect the format of a file
    route: Show candidate conversion paths between two formats
    targets: List the formats reachable from a source format
    convert: Convert files to another format
    snapshot: Print or write the capability snapshot of the current handlers

Usage:
    $ transmute --help
    $ transmute formats --direction to --category data
    $ transmute convert table.csv --to html --output-dir out
"""

import asyncio
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Annotated, Optional

import click
import typer  # type: ignore[import-not-found]

from transmute.capabilities import write_snapshot
from transmute.catalog import detect_input_format
from transmute.engine import Engine, get_engine
from transmute.errors import TransmuteError, UnresolvedFormatError
from transmute.formats import Format
from transmute.logging import configure_logger
from transmute.settings import settings

__all__ = ["app"]

app = typer.Typer(
    name="transmute",
    help="Transmute - Multi-step file format conversion",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool):
    """
    Print the version of the transmute package and exit.

    :param value: True if the --version option was given
    """
    if value:
        try:
            installed = pkg_version("transmute")
        except PackageNotFoundError:
            installed = "unknown"
        typer.echo(f"transmute version: {installed}")
        raise typer.Exit


@app.callback()
def transmute(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: Annotated[
        Optional[str],
        typer.Option(
            "--log-level",
            help="Console log level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = None,
):
    """
    Transmute - convert files between formats through chains of handlers.
    """
    if log_level:
        settings.logging.console_log_level = log_level
    configure_logger(settings.logging)


def _load_engine() -> Engine:
    return asyncio.run(get_engine())


def _resolve(engine: Engine, token: str, direction: str) -> Format:
    fmt = engine.catalog.find(token, direction)  # type: ignore[arg-type]
    if fmt is None:
        raise UnresolvedFormatError(token)

    return fmt


def _fail(message: str, err: Exception):
    typer.echo(f"✗ {message}: {err}", err=True)
    raise typer.Exit(1) from err


@app.command()
def formats(
    direction: Annotated[
        Optional[str],
        typer.Option(
            help="Only formats usable as input (from) or output (to)",
            click_type=click.Choice(["from", "to"]),
        ),
    ] = None,
    category: Annotated[
        Optional[str], typer.Option(help="Only formats of this category")
    ] = None,
    search: Annotated[
        Optional[str],
        typer.Option(help="Search format ids, names, extensions and mime types"),
    ] = None,
):
    """
    List the formats known to the installed handlers, grouped by category.
    """
    engine = _load_engine()
    selected = engine.catalog.filter(direction, category, search)  # type: ignore[arg-type]

    if not selected:
        typer.echo("No matching formats.")
        return

    groups: dict[str, list[Format]] = {}
    for fmt in selected:
        groups.setdefault(fmt.primary_category, []).append(fmt)

    for group in sorted(groups):
        typer.echo(f"[{group}]")
        for fmt in groups[group]:
            flags = ("r" if fmt.from_ else "-") + ("w" if fmt.to else "-")
            lossless = " lossless" if fmt.lossless else ""
            typer.echo(
                f"  {fmt.format:<8} {flags} .{fmt.extension:<6} {fmt.mime:<24} "
                f"{fmt.name}{lossless}"
            )


@app.command()
def detect(
    file: Annotated[Path, typer.Argument(help="File to inspect")],
    mime: Annotated[
        Optional[str], typer.Option(help="Mime type of the file if known")
    ] = None,
):
    """
    Detect the input format of a file from its extension and mime type.
    """
    engine = _load_engine()
    fmt = detect_input_format(file, engine.catalog, mime=mime)

    if fmt is None:
        _fail("Detection failed", UnresolvedFormatError(str(file)))

    typer.echo(f"{fmt.format} ({fmt.name}, {fmt.mime or 'no mime'})")


@app.command()
def route(
    source: Annotated[str, typer.Argument(help="Input format id, extension or mime")],
    target: Annotated[str, typer.Argument(help="Output format id, extension or mime")],
    advanced: Annotated[
        bool,
        typer.Option("--advanced", help="Include multi-hop routes"),
    ] = False,
    limit: Annotated[int, typer.Option(help="Maximum number of routes to show")] = 10,
):
    """
    Show the candidate conversion paths between two formats in the order they
    would be tried.
    """
    engine = _load_engine()

    try:
        source_vertex = engine.graph.anchor(_resolve(engine, source, "from"))
        target_vertex = engine.graph.anchor(_resolve(engine, target, "to"))
    except TransmuteError as err:
        _fail("Cannot route", err)

    paths = engine.graph.search_paths(
        source_vertex, target_vertex, simple=not advanced, max_paths=limit
    )
    found = 0
    for found, path in enumerate(paths, start=1):
        typer.echo(f"{found:>3}. {path.describe()}")

    if not found:
        typer.echo("No conversion path found.")


@app.command()
def targets(
    source: Annotated[str, typer.Argument(help="Input format id, extension or mime")],
    max_hops: Annotated[
        Optional[int], typer.Option(help="Longest route to follow, in hops")
    ] = None,
):
    """
    List every format a source format can be converted to.
    """
    engine = _load_engine()

    try:
        source_format = _resolve(engine, source, "from")
    except TransmuteError as err:
        _fail("Cannot list targets", err)

    reachable = engine.graph.reachable_formats(source_format, max_hops=max_hops)
    if not reachable:
        typer.echo(f"No formats reachable from {source_format.format}.")
        return

    for fmt in reachable:
        typer.echo(f"{fmt.format:<8} {fmt.name}")


@app.command()
def convert(
    files: Annotated[list[Path], typer.Argument(help="Files to convert")],
    to: Annotated[str, typer.Option("--to", help="Output format")],
    from_: Annotated[
        Optional[str],
        typer.Option(
            "--from", help="Input format, detected from the first file if omitted"
        ),
    ] = None,
    advanced: Annotated[
        bool,
        typer.Option("--advanced", help="Explore multi-hop routes from the start"),
    ] = False,
    output_dir: Annotated[
        Path, typer.Option(help="Directory where converted files are written")
    ] = Path("."),
):
    """
    Convert files to another format, trying alternative handler chains until
    one succeeds.

    Examples:
        transmute convert table.csv --to html
        transmute convert notes.md --to html --output-dir site
        transmute convert data.json --from json --to txt --advanced
    """
    engine = _load_engine()

    try:
        if from_:
            input_format = _resolve(engine, from_, "from")
        else:
            detected = detect_input_format(files[0], engine.catalog)
            if detected is None:
                raise UnresolvedFormatError(str(files[0]))
            input_format = detected
        output_format = _resolve(engine, to, "to")

        result = asyncio.run(
            engine.convert(
                files,
                input_format,
                output_format,
                simple=not advanced,
                on_progress=lambda percent, message: typer.echo(
                    f"[{percent:5.1f}%] {message}", err=True
                ),
            )
        )
    except (TransmuteError, OSError) as err:
        _fail("Conversion failed", err)

    output_dir.mkdir(parents=True, exist_ok=True)
    for file in result.files:
        destination = output_dir / file.name
        destination.write_bytes(file.bytes)
        typer.echo(f"✓ {destination}")
    typer.echo(f"Path used: {result.path.describe()}")


@app.command()
def snapshot(
    output: Annotated[
        Optional[Path],
        typer.Option(help="File to write the snapshot to, printed if omitted"),
    ] = None,
):
    """
    Dump the capability cache of the installed handlers so it can be used as the
    engine snapshot (TRANSMUTE__ENGINE__SNAPSHOT_PATH) to skip initialization.
    """
    engine = _load_engine()

    if output is None:
        typer.echo(engine.snapshot())
        return

    write_snapshot(engine.cache, output)
    typer.echo(f"✓ Wrote snapshot for {len(engine.cache)} handlers to {output}")


if __name__ == "__main__":
    app()
