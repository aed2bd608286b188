"""
Rendering of server responses and errors.

Response data goes to stdout untouched, except JSON which is re-indented
while it streams. Everything meant for the user rather than for a pipe goes
to stderr through Rich.
"""

from typing import BinaryIO, Optional
import logging
import re

import aiohttp
from rich.console import Console
from rich.markup import escape

from overpass_cli.core.client.errors import (
    OutputError,
    OverpassError,
    ResponseFormatError,
    create_user_friendly_message,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
CHUNK_SIZE = 64 * 1024

# Rich console for diagnostics, never for response data
err_console = Console(stderr=True)

_STRING_SPECIAL = re.compile(rb'["\\]')
_WHITESPACE = frozenset(b" \t\r\n")
_OPENERS = frozenset(b"{[")
_CLOSERS = frozenset(b"}]")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_COMMA = ord(",")
_COLON = ord(":")


class JsonReindenter:
    """
    Incremental JSON pretty-printer.

    Works on the token level: whitespace between tokens is replaced by a
    two-space indented layout, while strings, numbers and literals are
    copied byte for byte, so coordinates such as ``52.5163420`` keep their
    digits. Only the bracket structure is checked, not full JSON grammar.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent
        self._depth = 0
        self._started = False
        self._in_string = False
        self._escape = False
        # a container was just opened and its first token is not known yet
        self._pending_open = False
        self._stack = bytearray()

    def _newline(self, out: bytearray) -> None:
        out += b"\n" + b" " * (self.indent * self._depth)

    def feed(self, data: bytes) -> bytes:
        """Consume a chunk of the document and return its re-indented form."""
        out = bytearray()
        i = 0
        n = len(data)
        while i < n:
            if self._in_string:
                if self._escape:
                    out.append(data[i])
                    self._escape = False
                    i += 1
                    continue
                match = _STRING_SPECIAL.search(data, i)
                if match is None:
                    out += data[i:]
                    break
                j = match.start()
                out += data[i:j + 1]
                if data[j] == _BACKSLASH:
                    self._escape = True
                else:
                    self._in_string = False
                i = j + 1
                continue

            c = data[i]
            i += 1
            if c in _WHITESPACE:
                continue

            if not self._started:
                if c not in _OPENERS:
                    raise ResponseFormatError(
                        f"Server sent invalid JSON: unexpected {chr(c)!r} at start of document",
                        content_type=JSON_CONTENT_TYPE,
                    )
                self._started = True
            elif self._depth == 0:
                raise ResponseFormatError(
                    "Server sent invalid JSON: data after end of document",
                    content_type=JSON_CONTENT_TYPE,
                )

            if self._pending_open:
                self._pending_open = False
                if c in _CLOSERS:
                    self._close(c, out, empty=True)
                    continue
                self._newline(out)

            if c in _OPENERS:
                out.append(c)
                self._stack.append(c)
                self._depth += 1
                self._pending_open = True
            elif c in _CLOSERS:
                self._close(c, out, empty=False)
            elif c == _COMMA:
                out.append(c)
                self._newline(out)
            elif c == _COLON:
                out += b": "
            elif c == _QUOTE:
                out.append(c)
                self._in_string = True
            else:
                out.append(c)
        return bytes(out)

    def _close(self, c: int, out: bytearray, empty: bool) -> None:
        expected = ord("}") if self._stack and self._stack[-1] == ord("{") else ord("]")
        if not self._stack or c != expected:
            raise ResponseFormatError(
                f"Server sent invalid JSON: unbalanced {chr(c)!r}",
                content_type=JSON_CONTENT_TYPE,
            )
        self._stack.pop()
        self._depth -= 1
        if not empty:
            self._newline(out)
        out.append(c)

    def close(self) -> bytes:
        """Finish the document, returning the trailing newline."""
        if not self._started or self._depth or self._in_string:
            raise ResponseFormatError(
                "Server sent invalid JSON: document is incomplete",
                content_type=JSON_CONTENT_TYPE,
            )
        return b"\n"


def format_json(data: bytes) -> bytes:
    """Re-indent a complete JSON document with two spaces."""
    reindenter = JsonReindenter()
    return reindenter.feed(data) + reindenter.close()


async def write_response(response: aiohttp.ClientResponse, sink: BinaryIO) -> None:
    """
    Write a response body to ``sink`` as it arrives.

    JSON bodies are pretty-printed; any other content type is copied as is.

    Raises:
        ResponseFormatError: If a JSON body is malformed
        OutputError: If the sink was closed, e.g. by ``| head``
    """
    reindenter = JsonReindenter() if response.content_type == JSON_CONTENT_TYPE else None
    written = 0
    try:
        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
            sink.write(reindenter.feed(chunk) if reindenter else chunk)
            written += len(chunk)
        if reindenter:
            sink.write(reindenter.close())
        sink.flush()
    except BrokenPipeError as e:
        raise OutputError(original_error=e) from e
    logger.debug(f"Wrote {written} bytes of {response.content_type}")


def print_error(error: Exception, console: Optional[Console] = None) -> None:
    """Display an error on stderr."""
    console = console or err_console
    console.print(f"[red]Error:[/red] {escape(str(error))}")

    if isinstance(error, OverpassError):
        body = error.details.get("body")
        if body:
            console.print(f"[dim]{escape(body)}[/dim]")
        hint = create_user_friendly_message(error)
        if hint != error.message:
            console.print(f"[dim]{escape(hint)}[/dim]")
