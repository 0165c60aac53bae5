# tests/test_sources.py
"""
Tests for CSV / JSON source parsing.
"""
import pytest

from semexplore import (
    SemexploreError,
    SourceType,
    execute_join,
    load_source,
    parse_csv,
    parse_file,
    parse_json,
)
from semexplore.sources import source_type_for


class TestParseCSV:
    def test_typed_cells(self):
        """Numbers arrive as numbers and empty cells as None."""
        rows, columns = parse_csv("id,name,score\n1,Alice,9.5\n2,,\n")

        assert columns == ["id", "name", "score"]
        assert rows == [
            {"id": 1, "name": "Alice", "score": 9.5},
            {"id": 2, "name": None, "score": None},
        ]

    def test_booleans(self):
        rows, _ = parse_csv("flag\nTrue\nFalse\n")
        assert [r["flag"] for r in rows] == [True, False]

    def test_blank_lines_skipped(self):
        rows, _ = parse_csv("a\n1\n\n2\n")
        assert [r["a"] for r in rows] == [1, 2]

    def test_empty_input(self):
        assert parse_csv("") == ([], [])
        assert parse_csv("   \n") == ([], [])

    def test_header_only(self):
        rows, columns = parse_csv("a,b\n")
        assert rows == []
        assert columns == ["a", "b"]

    def test_malformed_raises(self):
        with pytest.raises(SemexploreError, match="Could not parse CSV"):
            parse_csv("a,b\n1,2\n1,2,3\n")

    def test_mixed_column_typed_per_cell(self):
        """One text cell does not turn the numbers in its column into text."""
        rows, _ = parse_csv("id\n1\nx\n2.5\n")
        assert [r["id"] for r in rows] == [1, "x", 2.5]
        assert type(rows[0]["id"]) is int

    def test_na_markers_stay_text(self):
        rows, _ = parse_csv("v\nNA\nnull\nN/A\n\"\"\n")
        assert [r["v"] for r in rows] == ["NA", "null", "N/A", None]

    def test_mixed_column_joins_on_numbers(self, make_bundle, make_join):
        """A numeric id next to a text id still matches a numeric id on the other side."""
        left_rows, _ = parse_csv("id\n1\nx\n")
        right_rows, _ = parse_csv("id\n1\n2\n")
        left = make_bundle("left", left_rows, mappings=[("id", "row_id")])
        right = make_bundle("right", right_rows, mappings=[("id", "row_id")])
        result = execute_join(left, right, make_join())

        assert len(result) == 1
        assert result.rows[0].left == {"id": 1}


class TestParseJSON:
    def test_array_of_objects(self):
        rows, columns = parse_json('[{"id": 1, "ok": true, "tag": null}, {"id": 2, "extra": "x"}]')

        assert columns == ["id", "ok", "tag"]
        assert rows[0] == {"id": 1, "ok": True, "tag": None}
        assert rows[1]["extra"] == "x"

    def test_single_object(self):
        rows, columns = parse_json('{"a": 1}')
        assert rows == [{"a": 1}]
        assert columns == ["a"]

    def test_empty_array(self):
        assert parse_json("[]") == ([], [])

    def test_non_object_record(self):
        with pytest.raises(SemexploreError, match="record 1 is not an object"):
            parse_json('[{"a": 1}, 2]')

    def test_invalid_json(self):
        with pytest.raises(SemexploreError, match="Could not parse JSON"):
            parse_json("{nope")


class TestLoadSource:
    def test_type_from_extension(self):
        assert source_type_for("data.JSON") is SourceType.JSON
        assert source_type_for("data.csv") is SourceType.CSV
        assert source_type_for("README") is SourceType.CSV

    def test_parse_file_dispatch(self):
        assert parse_file("x.json", '[{"a": "1"}]')[0] == [{"a": "1"}]
        assert parse_file("x.csv", "a\n1\n")[0] == [{"a": 1}]

    def test_load_source_keeps_raw_text(self):
        text = "id,parent\na,\nb,a\n"
        source = load_source("org.csv", text)

        assert source.type is SourceType.CSV
        assert source.file_name == "org.csv"
        assert source.raw_data == text
        assert source.columns == ("id", "parent")
        assert source.parsed_data[1] == {"id": "b", "parent": "a"}
