"""Unit tests for linedtables.ingest.decoder - pdfplumber page decoding."""

from __future__ import annotations

from types import MappingProxyType
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakePage
from linedtables.geometry import PageGeometry
from linedtables.ingest import IngestError
from linedtables.ingest.decoder import (
    DEFAULT_CHAR_MAP,
    PdfPlumberDecoder,
    font_space_ems,
    rotate_point,
    rotated_size,
)

# ── helpers ────────────────────────────────────────────────────────────


def _make_line(x0=0, top=0, x1=100, bottom=0):
    return {"x0": x0, "top": top, "x1": x1, "bottom": bottom, "stroking_color": (0,)}


def _make_rect(x0=0, top=0, x1=100, bottom=50, fill=False, stroke=True, non_stroking_color=None):
    return {
        "x0": x0,
        "top": top,
        "x1": x1,
        "bottom": bottom,
        "fill": fill,
        "stroke": stroke,
        "non_stroking_color": non_stroking_color,
    }


def _make_char(text, x0, top, x1, bottom, size=10.0, baseline=None, fontname=None, page_height=800.0):
    char = {"text": text, "x0": x0, "top": top, "x1": x1, "bottom": bottom, "size": size}
    if baseline is not None:
        # Upright text matrix translated to the glyph origin, PDF user space
        char["matrix"] = (size, 0, 0, size, x0, page_height - baseline)
    if fontname is not None:
        char["fontname"] = fontname
    return char


def _mock_pdf(*pages):
    pdf_obj = MagicMock()
    pdf_obj.pages = list(pages)
    return pdf_obj


def _mock_page(lines=None, rects=None, curves=None, chars=None, width=600.0, height=800.0):
    page = MagicMock()
    page.width = width
    page.height = height
    page.lines = lines or []
    page.rects = rects or []
    page.curves = curves or []
    page.chars = chars or []
    return page


@pytest.fixture
def pdf_file(tmp_path):
    f = tmp_path / "tables.pdf"
    f.write_bytes(b"%PDF-1.4\n%%EOF")
    return f


def _decode(pdf_file, page, rotation=0, **kwargs):
    sink = FakePage()
    with patch("linedtables.ingest.decoder.pdfplumber") as mock_pdfplumber:
        mock_pdfplumber.open.return_value = _mock_pdf(page)
        with PdfPlumberDecoder(pdf_file, **kwargs) as decoder:
            info = decoder.decode_page(0, sink, rotation)
    return sink, info


# ── Rotation ───────────────────────────────────────────────────────────


class TestRotation:
    def test_zero_turns(self):
        assert rotate_point(10, 20, 0, 600, 800) == (10, 20)

    def test_one_ccw_turn(self):
        # Top-right corner moves to the top-left
        assert rotate_point(600, 0, 1, 600, 800) == (0, 0)
        # Top-left corner moves to the bottom-left
        assert rotate_point(0, 0, 1, 600, 800) == (0, 600)

    def test_four_turns_identity(self):
        assert rotate_point(123, 456, 4, 600, 800) == (123, 456)

    def test_two_turns(self):
        assert rotate_point(10, 20, 2, 600, 800) == (590, 780)

    def test_rotated_size(self):
        assert rotated_size(600, 800, 1) == (800, 600)
        assert rotated_size(600, 800, 2) == (600, 800)


# ── Decoding ───────────────────────────────────────────────────────────


class TestDecodeLines:
    def test_line_emitted(self, pdf_file):
        sink, info = _decode(pdf_file, _mock_page(lines=[_make_line(10, 50, 200, 50)]))
        assert sink.calls("add_line") == [((10.0, 50.0), (200.0, 50.0))]
        assert (info.width, info.height) == (600.0, 800.0)

    def test_stroked_rect_becomes_edges(self, pdf_file):
        sink, _ = _decode(pdf_file, _mock_page(rects=[_make_rect(10, 100, 210, 120)]))
        edges = sink.calls("add_line")
        assert len(edges) == 4
        assert ((10.0, 100.0), (210.0, 100.0)) in edges
        assert ((10.0, 120.0), (10.0, 100.0)) in edges
        assert sink.calls("add_filled_region") == []

    def test_filled_rect_becomes_region(self, pdf_file):
        rect = _make_rect(10, 20, 210, 40, fill=True, stroke=False, non_stroking_color=(0.75,))
        sink, _ = _decode(pdf_file, _mock_page(rects=[rect]))
        ((color, region),) = sink.calls("add_filled_region")
        assert color == 0xBFBFBF
        assert region.bbox() == (10, 20, 210, 40)
        assert sink.calls("add_line") == []

    def test_filled_and_stroked(self, pdf_file):
        rect = _make_rect(fill=True, stroke=True, non_stroking_color=(1, 0, 0))
        sink, _ = _decode(pdf_file, _mock_page(rects=[rect]))
        assert sink.calls("add_filled_region")[0][0] == 0xFF0000
        assert len(sink.calls("add_line")) == 4

    def test_pattern_fill_has_no_colour(self, pdf_file):
        rect = _make_rect(fill=True, stroke=False, non_stroking_color="P0")
        sink, _ = _decode(pdf_file, _mock_page(rects=[rect]))
        assert sink.calls("add_filled_region")[0][0] is None

    def test_curves_ignored(self, pdf_file):
        sink, _ = _decode(pdf_file, _mock_page(curves=[{"pts": [(0, 0), (5, 5)]}]))
        assert sink.events == []


class TestDecodeChars:
    def test_glyph_on_text_matrix_baseline(self, pdf_file):
        # Box bottom includes the descent; the matrix gives the baseline
        char = _make_char("g", 10, 90, 15, 100, baseline=98.0)
        sink, _ = _decode(pdf_file, _mock_page(chars=[char]))
        assert sink.calls("add_glyph") == [(10.0, 98.0, "g", 5.0, 2.5)]

    def test_box_bottom_without_matrix(self, pdf_file):
        sink, _ = _decode(pdf_file, _mock_page(chars=[_make_char("a", 10, 90, 15, 100)]))
        assert sink.calls("add_glyph") == [(10.0, 100.0, "a", 5.0, 2.5)]

    def test_mixed_sizes_share_baseline(self, pdf_file):
        page = _mock_page(
            chars=[
                _make_char("T", 10, 92.3, 14.9, 99.7, size=8.0, baseline=98.0),
                _make_char("1", 20, 85.2, 27.8, 101.0, size=14.0, baseline=98.0),
            ]
        )
        sink, _ = _decode(pdf_file, page)
        assert [g[1] for g in sink.calls("add_glyph")] == [98.0, 98.0]

    def test_space_width_from_font_spaces(self, pdf_file):
        page = _mock_page(
            chars=[
                _make_char("a", 10, 90, 15, 100, fontname="Helvetica"),
                _make_char(" ", 15, 90, 17.78, 100, fontname="Helvetica"),
                _make_char("b", 30, 90, 35, 100, fontname="Courier"),
            ]
        )
        sink, _ = _decode(pdf_file, page)
        a, space, b = sink.calls("add_glyph")
        assert a[4] == pytest.approx(2.78)
        assert space[4] == pytest.approx(2.78)
        # No space drawn in Courier: fixed estimate
        assert b[4] == 2.5

    def test_space_width_em(self, pdf_file):
        page = _mock_page(chars=[_make_char("a", 10, 90, 15, 100, size=12.0)])
        sink, _ = _decode(pdf_file, page, space_width_em=0.5)
        assert sink.calls("add_glyph")[0][4] == 6.0

    def test_ligature_split(self, pdf_file):
        sink, _ = _decode(pdf_file, _mock_page(chars=[_make_char("fi", 10, 90, 20, 100)]))
        assert [(g[0], g[2], g[3]) for g in sink.calls("add_glyph")] == [
            (10.0, "f", 5.0),
            (15.0, "i", 5.0),
        ]

    def test_cid_fallback_to_code(self, pdf_file):
        sink, _ = _decode(pdf_file, _mock_page(chars=[_make_char("(cid:65)", 10, 90, 15, 100)]))
        assert sink.calls("add_glyph")[0][2] == "A"

    def test_cid_char_map(self, pdf_file):
        page = _mock_page(chars=[_make_char("(cid:3)", 10, 90, 15, 100)])
        sink, _ = _decode(pdf_file, page, char_map={3: "°"})
        assert sink.calls("add_glyph")[0][2] == "°"

    def test_empty_text_skipped(self, pdf_file):
        sink, _ = _decode(pdf_file, _mock_page(chars=[_make_char("", 10, 90, 15, 100)]))
        assert sink.calls("add_glyph") == []

    def test_feeds_page_geometry(self, pdf_file):
        geometry = PageGeometry()
        page = _mock_page(
            lines=[_make_line(10, 100, 210, 100)],
            chars=[_make_char("x", 15, 105, 20, 115)],
        )
        with patch("linedtables.ingest.decoder.pdfplumber") as mock_pdfplumber:
            mock_pdfplumber.open.return_value = _mock_pdf(page)
            with PdfPlumberDecoder(pdf_file) as decoder:
                decoder.decode_page(0, geometry)
        assert geometry.horizontal.keys() == [100.0]
        assert geometry.glyph_count() == 1


class TestDecodeRotation:
    def test_rotated_page(self, pdf_file):
        page = _mock_page(
            lines=[_make_line(600, 0, 600, 100)],
            chars=[_make_char("a", 10, 90, 15, 100)],
        )
        sink, info = _decode(pdf_file, page, rotation=1)
        assert (info.width, info.height) == (800.0, 600.0)
        # A vertical line on the right edge becomes a horizontal line at the top
        assert sink.calls("add_line") == [((0.0, 0.0), (100.0, 0.0))]
        x, y, char, width, _ = sink.calls("add_glyph")[0]
        assert (x, y, char, width) == (90.0, 590.0, "a", 10.0)

    def test_rotated_baseline(self, pdf_file):
        # Text running up the page: its baseline is the vertical x = 20
        char = _make_char("a", 12, 90, 20, 95)
        char["matrix"] = (0, 10, -10, 0, 20, 800 - 95)
        sink, _ = _decode(pdf_file, _mock_page(chars=[char]), rotation=1)
        x, y, _, width, _ = sink.calls("add_glyph")[0]
        assert (x, y, width) == (90.0, 580.0, 5.0)


class TestFontSpaceEms:
    def test_mean_per_font(self):
        chars = [
            _make_char(" ", 0, 0, 2.5, 10, fontname="F1"),
            _make_char(" ", 0, 0, 3.5, 10, fontname="F1"),
            _make_char(" ", 0, 0, 6.0, 20, fontname="F2"),
        ]
        assert font_space_ems(chars) == pytest.approx({"F1": 0.3, "F2": 0.3})

    def test_ignores_zero_width_and_non_space(self):
        chars = [
            _make_char(" ", 5, 0, 5, 10, fontname="F1"),
            _make_char("x", 0, 0, 5, 10, fontname="F1"),
        ]
        assert font_space_ems(chars) == {}


class TestDecoderLifecycle:
    def test_missing_file(self, tmp_path):
        with pytest.raises(IngestError, match="not found"):
            PdfPlumberDecoder(tmp_path / "missing.pdf")

    def test_open_failure_wrapped(self, pdf_file):
        with patch("linedtables.ingest.decoder.pdfplumber") as mock_pdfplumber:
            mock_pdfplumber.open.side_effect = ValueError("bad xref")
            with pytest.raises(IngestError, match="bad xref"):
                PdfPlumberDecoder(pdf_file).page_count

    def test_page_count_and_close(self, pdf_file):
        with patch("linedtables.ingest.decoder.pdfplumber") as mock_pdfplumber:
            pdf_obj = _mock_pdf(_mock_page(), _mock_page())
            mock_pdfplumber.open.return_value = pdf_obj
            with PdfPlumberDecoder(pdf_file) as decoder:
                assert decoder.page_count == 2
            pdf_obj.close.assert_called_once()
            assert mock_pdfplumber.open.call_count == 1

    def test_page_errors_propagate(self, pdf_file):
        page = _mock_page(lines=[{"x0": 0}])
        with patch("linedtables.ingest.decoder.pdfplumber") as mock_pdfplumber:
            mock_pdfplumber.open.return_value = _mock_pdf(page)
            with PdfPlumberDecoder(pdf_file) as decoder:
                with pytest.raises(KeyError):
                    decoder.decode_page(0, FakePage())

    def test_char_map_is_read_only(self, pdf_file):
        decoder = PdfPlumberDecoder(pdf_file, char_map={1: "x"})
        assert isinstance(decoder.char_map, MappingProxyType)
        with pytest.raises(TypeError):
            decoder.char_map[2] = "y"  # type: ignore[index]

    def test_default_char_map_shared_and_immutable(self, pdf_file):
        assert PdfPlumberDecoder(pdf_file).char_map is DEFAULT_CHAR_MAP
        assert isinstance(DEFAULT_CHAR_MAP, MappingProxyType)
