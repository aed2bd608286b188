"""Logging setup for Overpass CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"


def setup_logging(level: str = "WARNING") -> None:
    """
    Configure the root logger to write through Rich to stderr.

    stdout is reserved for query text and response data, so log records
    never go there.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # aiohttp logs every connection at DEBUG
    logging.getLogger("aiohttp").setLevel(max(logging.getLogger().level, logging.INFO))
