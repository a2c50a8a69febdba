"""Tests for linedtables.assemble - dense rows from irregular cells."""

from linedtables.assemble import append_rows, assemble_rows, band_edges
from linedtables.models import TableCell


def _cell(x0, y0, x1, y1, text=""):
    return TableCell(x0, y0, x1, y1, text=text)


class TestBandEdges:
    def test_sorted_distinct(self):
        assert band_edges([30, 10, 20, 10], 1.0) == [10, 20, 30]

    def test_collapse_within_tolerance(self):
        assert band_edges([10.0, 10.5, 20.0, 20.9], 1.0) == [10.0, 20.0]

    def test_empty(self):
        assert band_edges([], 1.0) == []


class TestAssembleRows:
    def test_regular_grid(self):
        cells = [
            _cell(0, 0, 50, 20, "a"),
            _cell(50, 0, 100, 20, "b"),
            _cell(0, 20, 50, 40, "c"),
            _cell(50, 20, 100, 40, "d"),
        ]
        assert assemble_rows(cells, 1.0) == [["a", "b"], ["c", "d"]]

    def test_column_span_duplicates_text(self):
        cells = [
            _cell(0, 0, 100, 20, "wide"),
            _cell(0, 20, 50, 40, "c"),
            _cell(50, 20, 100, 40, "d"),
        ]
        assert assemble_rows(cells, 1.0) == [["wide", "wide"], ["c", "d"]]

    def test_row_span_duplicates_text(self):
        cells = [
            _cell(0, 0, 50, 40, "tall"),
            _cell(50, 0, 100, 20, "b"),
            _cell(50, 20, 100, 40, "d"),
        ]
        assert assemble_rows(cells, 1.0) == [["tall", "b"], ["tall", "d"]]

    def test_uncovered_slot_is_empty(self):
        cells = [
            _cell(0, 0, 50, 20, "a"),
            _cell(50, 0, 100, 20, "b"),
            _cell(0, 20, 50, 40, "c"),
        ]
        assert assemble_rows(cells, 1.0) == [["a", "b"], ["c", ""]]

    def test_empty_rows_kept_by_default(self):
        cells = [_cell(0, 0, 50, 20, "a"), _cell(0, 20, 50, 40, " ")]
        assert assemble_rows(cells, 1.0) == [["a"], [" "]]

    def test_remove_empty_rows(self):
        cells = [
            _cell(0, 0, 50, 20, "a"),
            _cell(0, 20, 50, 40, ""),
            _cell(0, 40, 50, 60, "c"),
        ]
        assert assemble_rows(cells, 1.0, remove_empty_rows=True) == [["a"], ["c"]]

    def test_no_extra_row_at_bottom_line(self):
        """The bottom ruled line closes the last row instead of opening one."""
        cells = [_cell(0, 0, 50, 20, "a"), _cell(0, 20, 50, 40.5, "b")]
        assert assemble_rows(cells, 1.0, remove_empty_rows=True) == [["a"], ["b"]]

    def test_near_edges_collapse(self):
        cells = [
            _cell(0, 0, 50, 20, "a"),
            _cell(50.4, 0.3, 100, 20, "b"),
        ]
        assert assemble_rows(cells, 1.0) == [["a", "b"]]

    def test_no_cells(self):
        assert assemble_rows([], 1.0) == []


class TestAppendRows:
    def test_plain_append(self):
        table = [["a", "b"]]
        append_rows(table, [["c", "d"]])
        assert table == [["a", "b"], ["c", "d"]]

    def test_wrapped_row_merged(self):
        table = [["h1", "h2"], ["a", "start"]]
        append_rows(
            table,
            [["", "end"], ["x", "y"]],
            merge_wrapped_rows=True,
            continuation=True,
        )
        assert table == [["h1", "h2"], ["a", "start\nend"], ["x", "y"]]

    def test_merge_uses_line_ending(self):
        table = [["a", "start"]]
        append_rows(table, [["", "end"]], True, " ", continuation=True)
        assert table == [["a", "start end"]]

    def test_merge_into_blank_cell(self):
        table = [["a", ""]]
        append_rows(table, [[" ", "end"]], True, continuation=True)
        assert table == [["a", "end"]]

    def test_no_merge_on_first_page(self):
        table = [["a", "b"]]
        append_rows(table, [["", "c"]], merge_wrapped_rows=True, continuation=False)
        assert table == [["a", "b"], ["", "c"]]

    def test_no_merge_when_disabled(self):
        table = [["a", "b"]]
        append_rows(table, [["", "c"]], merge_wrapped_rows=False, continuation=True)
        assert table == [["a", "b"], ["", "c"]]

    def test_no_merge_when_first_column_filled(self):
        table = [["a", "b"]]
        append_rows(table, [["x", "c"]], merge_wrapped_rows=True, continuation=True)
        assert table == [["a", "b"], ["x", "c"]]

    def test_no_merge_on_column_mismatch(self):
        table = [["a", "b"]]
        append_rows(table, [["", "c", "d"]], merge_wrapped_rows=True, continuation=True)
        assert table == [["a", "b"], ["", "c", "d"]]

    def test_no_merge_into_empty_table(self):
        table = []
        append_rows(table, [["", "c"]], merge_wrapped_rows=True, continuation=True)
        assert table == [["", "c"]]
