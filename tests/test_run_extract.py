"""Tests for scripts/run_extract.py, loaded by path."""

from __future__ import annotations

import importlib.util
import json
import pathlib
import sys

import pytest
from reportlab.pdfgen import canvas

from linedtables import ConfigValidationError, IngestError

_script_path = pathlib.Path(__file__).resolve().parent.parent / "scripts" / "run_extract.py"
_spec = importlib.util.spec_from_file_location("run_extract", _script_path)
run_extract_module = importlib.util.module_from_spec(_spec)
sys.modules["run_extract"] = run_extract_module
_spec.loader.exec_module(run_extract_module)
run_extract = run_extract_module.run_extract


@pytest.fixture
def grid_pdf(tmp_path) -> pathlib.Path:
    """One 2 x 2 ruled table at the top of a 400 x 300 page."""
    path = tmp_path / "grid.pdf"
    c = canvas.Canvas(str(path), pagesize=(400, 300))
    c.setLineWidth(0.5)
    for y in (280, 260, 240):
        c.line(20, y, 220, y)
    for x in (20, 120, 220):
        c.line(x, 280, x, 240)
    c.setFont("Helvetica", 10)
    for y, row in ((266, ("RWY", "09")), (246, ("SFC", "ASPH"))):
        for x, text in zip((24, 124), row):
            c.drawString(x, y, text)
    c.save()
    return path


@pytest.fixture
def definitions(tmp_path) -> pathlib.Path:
    path = tmp_path / "tables.json"
    path.write_text(json.dumps({"tables": [{"name": "runways"}]}), encoding="utf-8")
    return path


class TestRunExtract:
    def test_writes_tables_and_document_summary(self, grid_pdf, definitions, tmp_path, capsys):
        out = tmp_path / "out"
        assert run_extract(grid_pdf, definitions, out) == 0

        summary = json.loads((out / "grid_states.json").read_text(encoding="utf-8"))
        assert summary["pdf"]["num_pages"] == 1
        assert summary["pdf"]["pages"][0]["width"] == 400.0
        (state,) = summary["tables"]
        assert state["table"] == "runways"
        assert state["rows"] == [["RWY", "09"], ["SFC", "ASPH"]]

        tables = json.loads((out / "grid_tables.json").read_text(encoding="utf-8"))
        assert tables
        assert (out / "grid_00_runways.csv").exists()
        assert "grid.pdf: 1 pages from page 0" in capsys.readouterr().out

    def test_start_page_past_end(self, grid_pdf, definitions, tmp_path):
        out = tmp_path / "out"
        with pytest.raises(IngestError, match="Start page 3"):
            run_extract(grid_pdf, definitions, out, start_page=3)
        assert not out.exists()

    def test_not_a_pdf(self, definitions, tmp_path):
        bogus = tmp_path / "grid.pdf"
        bogus.write_bytes(b"plain text")
        with pytest.raises(IngestError, match="Cannot open PDF"):
            run_extract(bogus, definitions, tmp_path / "out")

    def test_bad_definitions(self, grid_pdf, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text(json.dumps([{"name": "t", "colour": "#fff"}]), encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="colour"):
            run_extract(grid_pdf, path, tmp_path / "out")

    def test_empty_table_status(self, grid_pdf, tmp_path):
        path = tmp_path / "tables.json"
        path.write_text(
            json.dumps([{"name": "t", "heading_colors": ["#ff0000"]}]), encoding="utf-8"
        )
        assert run_extract(grid_pdf, path, tmp_path / "out") == 1
