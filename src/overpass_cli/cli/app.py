"""
Main CLI application entry point.

This module contains the Typer application that reads a query, builds the
final OverpassQL text and either prints it or sends it to the server.
"""

from functools import partial
from typing import List, Optional, Sequence
import asyncio
import logging
import os
import re
import sys

import typer
from pydantic import ValidationError
from rich.console import Console

from overpass_cli import VERSION, PACKAGE_NAME
from overpass_cli.config.settings import DEFAULT_SERVER, OverpassCliSettings, get_settings
from overpass_cli.core.client import InputError, OutputError, OverpassClient, OverpassError, QueryError
from overpass_cli.core.query import Format, OutputMode, QuerySettings, build_query
from overpass_cli.ui.output import print_error, write_response
from overpass_cli.utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Create the main Typer application
app = typer.Typer(
    name="overpass",
    help="Query an Overpass API server from the command line.",
    add_completion=False,
    rich_markup_mode="rich",
)

# Rich console for diagnostics
err_console = Console(stderr=True)

_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def _takes_bbox_value(arg: str) -> bool:
    return bool(_NUMBER.match(arg))


def _takes_time_value(arg: str) -> bool:
    return not arg.startswith("-")


# option -> (maximum number of values, predicate for values after the first)
VARIADIC_OPTIONS = {
    "--bbox": (4, _takes_bbox_value),
    "--diff": (2, _takes_time_value),
    "--adiff": (2, _takes_time_value),
}


def normalize_args(args: Sequence[str]) -> List[str]:
    """
    Expand space separated multi-value options into repeated options.

    ``--bbox 1 2 3 4`` becomes ``--bbox 1 --bbox 2 --bbox 3 --bbox 4`` and
    ``--diff FROM TO`` becomes ``--diff FROM --diff TO`` so that the values
    can be collected by ordinary repeatable options. Negative numbers are
    accepted as bbox values.
    """
    result: List[str] = []
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1
        if arg == "--":
            result.append(arg)
            result.extend(args[i:])
            break
        if arg not in VARIADIC_OPTIONS:
            result.append(arg)
            continue

        max_values, accepts = VARIADIC_OPTIONS[arg]
        taken = 0
        while taken < max_values and i < len(args):
            value = args[i]
            # the first value is always consumed, like a plain option
            if taken > 0 and not accepts(value):
                break
            result.extend([arg, value])
            i += 1
            taken += 1
        if taken == 0:
            result.append(arg)
    return result


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        typer.echo(f"{PACKAGE_NAME} {VERSION}")
        raise typer.Exit()


def _check_exclusive(date: Optional[str], diff: Optional[List[str]], adiff: Optional[List[str]]) -> None:
    given = [name for name, value in (("--date", date), ("--diff", diff), ("--adiff", adiff)) if value]
    if len(given) > 1:
        raise typer.BadParameter(f"{' and '.join(given)} cannot be used together")


def read_query(query: Optional[str]) -> str:
    """Return the query argument, or all of stdin when it was not given."""
    if query is not None:
        return query.strip()
    if sys.stdin.isatty():
        err_console.print("[dim]Reading query from stdin, end with Ctrl-D[/dim]")
    try:
        return sys.stdin.read().strip()
    except UnicodeDecodeError as e:
        raise InputError(f"Query on stdin is not valid UTF-8: {e}", original_error=e) from e


def _detach_stdout() -> None:
    # keep the interpreter from failing again when it flushes stdout at exit
    try:
        fd = sys.stdout.fileno()
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, fd)
        os.close(devnull)
    except (OSError, ValueError) as e:
        logger.debug(f"Could not redirect stdout to {os.devnull}: {e}")


async def send_query(query: str, settings: OverpassCliSettings) -> None:
    """Send the query and write the response to stdout."""
    client = OverpassClient(settings.server, timeout=settings.timeout)
    content_type = await client.interpret(query, partial(write_response, sink=sys.stdout.buffer))
    logger.info(f"Received {content_type} response")


@app.command()
def main_command(
    query: Optional[str] = typer.Argument(
        None, help="OverpassQL query string, read from stdin when omitted", show_default=False
    ),
    output_format: Optional[Format] = typer.Option(
        None, "--format", "-f", help="Output format", case_sensitive=False
    ),
    out: Optional[OutputMode] = typer.Option(
        None, "--out", "-o", help="Output type of the appended out statement", case_sensitive=False
    ),
    bbox: Optional[List[float]] = typer.Option(
        None,
        "--bbox",
        metavar="MIN_LON MIN_LAT MAX_LON MAX_LAT",
        help="Global bounding box, implicitly applies to all statements",
    ),
    date: Optional[str] = typer.Option(
        None, "--date", metavar="ISO8601", help="Return results for a time in the past"
    ),
    diff: Optional[List[str]] = typer.Option(
        None, "--diff", metavar="FROM TO", help="Compare results at two different times, TO defaults to now"
    ),
    adiff: Optional[List[str]] = typer.Option(
        None, "--adiff", metavar="FROM TO", help="Like --diff, but returns an augmented diff"
    ),
    server: Optional[str] = typer.Option(
        None, "--server", metavar="URL", help=f"Server URL, defaults to {DEFAULT_SERVER}"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Construct and print the query but do not send it"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Build an OverpassQL query and run it against an Overpass API server.

    The response is written to stdout; JSON responses are pretty-printed.
    """
    _check_exclusive(date, diff, adiff)
    if bbox and len(bbox) != 4:
        raise typer.BadParameter("expected MIN_LON MIN_LAT MAX_LON MAX_LAT", param_hint="'--bbox'")
    for name, values in (("--diff", diff), ("--adiff", adiff)):
        if values and len(values) > 2:
            raise typer.BadParameter("expected FROM and an optional TO", param_hint=f"'{name}'")

    try:
        settings = get_settings(server=server, log_level="DEBUG" if verbose else None)
    except ValidationError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2)
    setup_logging(settings.log_level)
    logger.debug(f"Effective settings: {settings.to_dict()}")

    try:
        query_settings = QuerySettings(
            bbox=tuple(bbox) if bbox else None,
            format=output_format,
            date=date,
            diff=diff or None,
            adiff=adiff or None,
        )
        text = build_query(read_query(query), query_settings, out or settings.default_output)
    except QueryError as e:
        print_error(e)
        raise typer.Exit(2)
    except OverpassError as e:
        print_error(e)
        raise typer.Exit(1)

    if dry_run:
        try:
            typer.echo(text)
        except BrokenPipeError as e:
            print_error(OutputError(original_error=e))
            _detach_stdout()
            raise typer.Exit(1)
        raise typer.Exit()

    try:
        asyncio.run(send_query(text, settings))
    except OutputError as e:
        print_error(e)
        _detach_stdout()
        raise typer.Exit(1)
    except BrokenPipeError as e:
        print_error(OutputError(original_error=e))
        _detach_stdout()
        raise typer.Exit(1)
    except OverpassError as e:
        print_error(e)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("[dim]Interrupted[/dim]")
        raise typer.Exit(130)


def main() -> None:
    """Console script entry point."""
    app(args=normalize_args(sys.argv[1:]), prog_name="overpass")


if __name__ == "__main__":
    main()
