"""Tests for OverpassQL query construction."""

import pytest

from overpass_cli.core.client.errors import QueryError
from overpass_cli.core.query import (
    Format,
    OutputMode,
    QuerySettings,
    build_query,
    ensure_output,
    ensure_terminated,
    format_bbox,
    has_output_statement,
    normalize_timestamp,
    prepend_settings,
    render_settings,
)


class TestEnsureTerminated:
    """Test trailing semicolon insertion."""

    def test_adds_missing_semicolon(self) -> None:
        """Test a semicolon is appended to an unterminated query."""
        assert ensure_terminated("node(1)") == "node(1);"

    def test_keeps_existing_semicolon(self) -> None:
        """Test a terminated query is left alone."""
        assert ensure_terminated("node(1);") == "node(1);"

    def test_is_idempotent(self) -> None:
        """Test terminating twice gives the same result."""
        once = ensure_terminated("way[highway]")
        assert ensure_terminated(once) == once

    def test_ignores_trailing_whitespace(self) -> None:
        """Test trailing whitespace does not hide the semicolon."""
        assert ensure_terminated("node(1);\n") == "node(1);"


class TestOutputStatement:
    """Test detection and insertion of the out statement."""

    def test_detects_out_with_mode(self) -> None:
        """Test out followed by a mode is detected."""
        assert has_output_statement("node(1);out meta;")

    def test_detects_bare_out(self) -> None:
        """Test a bare out statement is detected."""
        assert has_output_statement("node(1);out;")

    def test_detects_out_after_newline(self) -> None:
        """Test out on its own indented line is detected."""
        assert has_output_statement("node(1);\n  out geom;")

    def test_detects_out_split_across_lines(self) -> None:
        """Test out separated from its mode by a newline is detected."""
        assert has_output_statement("node(1);\nout\nmeta;")
        assert has_output_statement("node(1);out\tcenter;")

    def test_detects_out_in_unterminated_query(self) -> None:
        """Test out is found even before the semicolon is added."""
        assert has_output_statement("node(1); out skel")

    def test_rejects_non_out_statement(self) -> None:
        """Test statements merely containing 'out' are not mistaken for it."""
        assert not has_output_statement("node(1);")
        assert not has_output_statement("node[name=outpost];")
        assert not has_output_statement("node(1);outer;")

    def test_out_earlier_in_query_does_not_count(self) -> None:
        """Test only the last statement is inspected."""
        assert not has_output_statement("node(1);out;way(2);")

    def test_appends_default_body(self) -> None:
        """Test 'out body' is appended by default."""
        assert ensure_output("node(1);") == "node(1);\nout body;"

    def test_appends_requested_mode(self) -> None:
        """Test the requested output mode is appended."""
        assert ensure_output("node(1);", OutputMode.GEOM) == "node(1);\nout geom;"

    def test_existing_out_is_not_replaced(self) -> None:
        """Test a query's own out statement is kept."""
        assert ensure_output("node(1);out ids;", OutputMode.META) == "node(1);out ids;"

    def test_multiline_out_is_not_duplicated(self) -> None:
        """Test an out statement spanning lines does not get a second one."""
        query = "node(1);\nout\nmeta;"
        assert ensure_output(query, OutputMode.BODY) == query

    def test_is_idempotent(self) -> None:
        """Test ensuring output twice gives the same result."""
        once = ensure_output("node(1);", OutputMode.TAGS)
        assert ensure_output(once, OutputMode.TAGS) == once


class TestSettings:
    """Test the settings block."""

    def test_bbox_is_reordered_to_south_west_north_east(self) -> None:
        """Test lon/lat input is written in Overpass order."""
        assert format_bbox(13.3, 52.5, 13.4, 52.6) == "52.5,13.3,52.6,13.4"

    def test_bbox_accepts_negative_coordinates(self) -> None:
        """Test southern and western coordinates are accepted."""
        assert format_bbox(-74.1, -40.5, -73.9, -40.2) == "-40.5,-74.1,-40.2,-73.9"

    def test_bbox_accepts_antimeridian_crossing(self) -> None:
        """Test a box whose west edge is east of its east edge is accepted."""
        assert format_bbox(179.0, -10.0, -179.0, 10.0) == "-10.0,179.0,10.0,-179.0"

    @pytest.mark.parametrize(
        "bbox",
        [
            (0.0, -91.0, 1.0, 1.0),
            (0.0, 0.0, 1.0, 90.5),
            (-181.0, 0.0, 1.0, 1.0),
            (0.0, 10.0, 1.0, 5.0),
        ],
    )
    def test_invalid_bbox(self, bbox) -> None:
        """Test out of range or inverted boxes are rejected."""
        with pytest.raises(QueryError) as exc_info:
            format_bbox(*bbox)
        assert exc_info.value.details["field"] == "bbox"

    def test_settings_order_and_rendering(self) -> None:
        """Test settings render in bbox, out, date order."""
        settings = QuerySettings(
            bbox=(1.0, 2.0, 3.0, 4.0),
            format=Format.JSON,
            date="2020-01-01T00:00:00Z",
        ).to_settings()

        assert list(settings) == ["bbox", "out", "date"]
        assert render_settings(settings) == (
            '[bbox:2.0,1.0,4.0,3.0][out:json][date:"2020-01-01T00:00:00Z"]'
        )

    def test_diff_with_one_and_two_values(self) -> None:
        """Test diff and adiff accept one or two timestamps."""
        one = QuerySettings(diff=["2020-01-01T00:00:00Z"]).to_settings()
        two = QuerySettings(adiff=["2020-01-01T00:00:00Z", "2021-01-01T00:00:00Z"]).to_settings()

        assert one == {"diff": '"2020-01-01T00:00:00Z"'}
        assert two == {"adiff": '"2020-01-01T00:00:00Z","2021-01-01T00:00:00Z"'}

    def test_empty_settings(self) -> None:
        """Test no flags produce no settings."""
        assert QuerySettings().to_settings() == {}

    def test_prepend_settings(self) -> None:
        """Test the settings block is placed before the query."""
        result = prepend_settings("node(1);", {"out": "json"})
        assert result == "[out:json];\nnode(1);"

    def test_prepend_nothing_without_settings(self) -> None:
        """Test the query is unchanged when there are no settings."""
        assert prepend_settings("node(1);", {}) == "node(1);"

    def test_existing_settings_block_wins(self) -> None:
        """Test a query with its own settings block is not given a second one."""
        query = "[out:xml][timeout:25];node(1);"
        assert prepend_settings(query, {"out": "json"}) == query


class TestNormalizeTimestamp:
    """Test ISO 8601 timestamp normalization."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2012-09-14T15:00:00Z", "2012-09-14T15:00:00Z"),
            ("2012-09-14T15:00:00", "2012-09-14T15:00:00Z"),
            ("2012-09-14", "2012-09-14T00:00:00Z"),
            ("2012-09-14T17:00:00+02:00", "2012-09-14T15:00:00Z"),
            ('"2012-09-14T15:00:00Z"', "2012-09-14T15:00:00Z"),
        ],
    )
    def test_valid_timestamps(self, value: str, expected: str) -> None:
        """Test accepted timestamp forms are converted to UTC with a Z suffix."""
        assert normalize_timestamp(value) == expected

    @pytest.mark.parametrize("value", ["yesterday", "2012-13-01", ""])
    def test_invalid_timestamps(self, value: str) -> None:
        """Test unparseable timestamps are rejected."""
        with pytest.raises(QueryError):
            normalize_timestamp(value)


class TestBuildQuery:
    """Test complete query construction."""

    def test_plain_query(self) -> None:
        """Test a bare statement gets a semicolon and an out statement."""
        assert build_query("node(1)") == "node(1);\nout body;"

    def test_query_with_settings(self) -> None:
        """Test settings, statement and out statement are combined."""
        query = build_query(
            "node[amenity=cafe]",
            QuerySettings(format=Format.JSON, bbox=(13.3, 52.5, 13.4, 52.6)),
        )
        assert query == (
            "[bbox:52.5,13.3,52.6,13.4][out:json];\n"
            "node[amenity=cafe];\n"
            "out body;"
        )

    def test_complete_query_is_unchanged(self) -> None:
        """Test a query that already has settings and out is passed through."""
        query = "[out:json];\nnode(1);\nout meta;"
        assert build_query(query, QuerySettings(format=Format.XML)) == query

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        """Test leading and trailing whitespace is removed."""
        assert build_query("  node(1);\n\n", output=OutputMode.IDS) == "node(1);\nout ids;"

    def test_build_is_idempotent(self) -> None:
        """Test building an already built query changes nothing."""
        settings = QuerySettings(format=Format.JSON)
        once = build_query("way(5)", settings, OutputMode.CENTER)
        assert build_query(once, settings, OutputMode.CENTER) == once

    def test_empty_query(self) -> None:
        """Test an empty query is rejected."""
        with pytest.raises(QueryError):
            build_query("   \n")
