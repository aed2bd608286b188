"""
OverpassQL query construction.

This module turns a user supplied query plus command-line options into the
final query text sent to the server. It only manipulates strings: a leading
settings block is prepended, the query is terminated with a semicolon and
an ``out`` statement is appended when the query has none.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple
import logging
import re

from .client.errors import QueryError

logger = logging.getLogger(__name__)

BBox = Tuple[float, float, float, float]

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_OUT_STATEMENT = re.compile(r"out(\s|$)")


class Format(str, Enum):
    """Response formats understood by the ``[out:...]`` setting."""
    XML = "xml"
    JSON = "json"


class OutputMode(str, Enum):
    """Verbosity of the ``out`` statement."""
    IDS = "ids"
    SKEL = "skel"
    BODY = "body"
    TAGS = "tags"
    META = "meta"
    CENTER = "center"
    GEOM = "geom"


DEFAULT_OUTPUT = OutputMode.BODY


def format_bbox(min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> str:
    """
    Format a bounding box for the ``[bbox:...]`` setting.

    Coordinates are taken in lon/lat order, the way they are given on the
    command line, and emitted in the south,west,north,east order Overpass
    expects.

    Raises:
        QueryError: If a coordinate is out of range or the box is inverted
    """
    for name, value in (("MIN_LAT", min_lat), ("MAX_LAT", max_lat)):
        if not -90.0 <= value <= 90.0:
            raise QueryError(f"{name} must be between -90 and 90, got {value}", field="bbox")
    for name, value in (("MIN_LON", min_lon), ("MAX_LON", max_lon)):
        if not -180.0 <= value <= 180.0:
            raise QueryError(f"{name} must be between -180 and 180, got {value}", field="bbox")
    if min_lat > max_lat:
        raise QueryError(f"MIN_LAT ({min_lat}) is greater than MAX_LAT ({max_lat})", field="bbox")

    # min_lon > max_lon is allowed: Overpass reads it as crossing the antimeridian
    return f"{min_lat},{min_lon},{max_lat},{max_lon}"


def normalize_timestamp(value: str) -> str:
    """
    Normalize an ISO 8601 timestamp to the form Overpass accepts.

    Date-only values mean midnight, naive values are taken as UTC and aware
    values are converted to UTC.

    Raises:
        QueryError: If the value is not ISO 8601
    """
    text = value.strip().strip('"')
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as e:
        raise QueryError(f"Invalid ISO 8601 timestamp: {value!r}", original_error=e) from e

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def _quote_timestamps(values: List[str]) -> str:
    return ",".join(f'"{normalize_timestamp(v)}"' for v in values)


@dataclass
class QuerySettings:
    """Values that end up in the leading settings block of a query."""
    bbox: Optional[BBox] = None
    format: Optional[Format] = None
    date: Optional[str] = None
    diff: Optional[List[str]] = None
    adiff: Optional[List[str]] = None

    def to_settings(self) -> Dict[str, str]:
        """Return the ordered setting name to value mapping, skipping unset values."""
        settings: Dict[str, str] = {}

        if self.bbox is not None:
            settings["bbox"] = format_bbox(*self.bbox)

        if self.format is not None:
            settings["out"] = Format(self.format).value

        if self.date is not None:
            settings["date"] = _quote_timestamps([self.date])

        if self.diff:
            settings["diff"] = _quote_timestamps(self.diff)

        if self.adiff:
            settings["adiff"] = _quote_timestamps(self.adiff)

        return settings


def render_settings(settings: Dict[str, str]) -> str:
    """Render settings as ``[key:value]`` pairs."""
    return "".join(f"[{key}:{value}]" for key, value in settings.items())


def prepend_settings(query: str, settings: Dict[str, str]) -> str:
    """Prefix the query with a settings statement unless it already has one."""
    if not settings:
        return query
    if query.startswith("["):
        logger.warning(f"Query already starts with a settings block, ignoring: {render_settings(settings)}")
        return query
    return f"{render_settings(settings)};\n{query}"


def ensure_terminated(query: str) -> str:
    """Make sure the query ends with a semicolon."""
    query = query.rstrip()
    if not query.endswith(";"):
        query = f"{query};"
    return query


def _last_statement(query: str) -> str:
    statements = ensure_terminated(query).split(";")
    # the terminating semicolon leaves an empty final element
    return statements[-2].strip() if len(statements) > 1 else ""


def has_output_statement(query: str) -> bool:
    """Check whether the last statement of the query is an ``out`` statement."""
    return bool(_OUT_STATEMENT.match(_last_statement(query)))


def ensure_output(query: str, mode: Optional[OutputMode] = None) -> str:
    """Append an ``out`` statement if the query does not end with one."""
    query = ensure_terminated(query)
    if has_output_statement(query):
        if mode is not None:
            logger.debug(f"Query already has an out statement, not adding 'out {OutputMode(mode).value}'")
        return query
    out = OutputMode(mode or DEFAULT_OUTPUT)
    return f"{query}\nout {out.value};"


def build_query(
    query: str,
    settings: Optional[QuerySettings] = None,
    output: Optional[OutputMode] = None,
) -> str:
    """
    Build the final query text.

    Args:
        query: Query as supplied by the user
        settings: Values for the leading settings block
        output: Verbosity of the appended out statement

    Returns:
        The query ready to be sent to the server

    Raises:
        QueryError: If the query is empty or a setting is invalid
    """
    query = query.strip()
    if not query:
        raise QueryError("Query is empty")

    rendered = settings.to_settings() if settings else {}
    query = prepend_settings(query, rendered)
    query = ensure_terminated(query)
    query = ensure_output(query, output)

    logger.debug(f"Built query:\n{query}")
    return query
