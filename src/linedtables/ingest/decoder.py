"""Page decoding: feed a page's lines, filled rectangles and glyphs to a sink.

The table engine only needs already-decoded primitives in display
coordinates (origin top-left, Y increasing down the page).  A
:class:`PageDecoder` supplies them page by page to a :class:`PageSink`,
normally a :class:`~linedtables.geometry.PageGeometry`.

:class:`PdfPlumberDecoder` is the pdfplumber-backed implementation:

* ``page.lines`` become line segments;
* ``page.rects`` become filled regions (when filled) and/or four edge lines
  (when stroked);
* ``page.chars`` become glyphs positioned at their left edge and on the
  baseline of their text matrix, with a space width measured from the
  font's own space glyphs on the page where it draws any;
* curves are ignored.

Pages whose rotation metadata is wrong can be turned by extra
counter-clockwise quarter turns before anything reaches the sink.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

import pdfplumber

from ..models import Rect, pdf_color_key
from .ingest import IngestError, PageInfo, validate_pdf_path

logger = logging.getLogger("linedtables.decoder")

Point = Tuple[float, float]

# Glyphs pdfplumber reports as "(cid:N)" because the font has no Unicode
# mapping.  Unmapped codes fall back to chr(N).
DEFAULT_CHAR_MAP: Mapping[int, str] = MappingProxyType({})

_CID_RE = re.compile(r"\(cid:(\d+)\)")


class PageSink(Protocol):
    """Receiver of one page's primitives."""

    def add_line(self, p0: Point, p1: Point) -> None: ...

    def add_filled_region(self, color: Optional[int], rect: Rect) -> None: ...

    def add_glyph(
        self,
        x: float,
        y: float,
        char: str,
        width: float,
        estimated_space_width: float,
    ) -> None: ...


class PageDecoder(Protocol):
    """Source of pages for :class:`~linedtables.extract.TableExtractor`."""

    @property
    def page_count(self) -> int: ...

    def decode_page(
        self, index: int, sink: PageSink, extra_quadrant_rotation: int = 0
    ) -> PageInfo: ...


# ── Extra rotation ─────────────────────────────────────────────────────


def rotate_point(
    x: float, y: float, quadrants: int, width: float, height: float
) -> Point:
    """Turn ``(x, y)`` on a *width* x *height* page by CCW quarter turns."""
    for _ in range(quadrants % 4):
        x, y = y, width - x
        width, height = height, width
    return x, y


def rotated_size(width: float, height: float, quadrants: int) -> Tuple[float, float]:
    """Page size after *quadrants* CCW quarter turns."""
    if quadrants % 2:
        return height, width
    return width, height


def _rotate_rect(
    x0: float, y0: float, x1: float, y1: float, quadrants: int, width: float, height: float
) -> Rect:
    ax, ay = rotate_point(x0, y0, quadrants, width, height)
    bx, by = rotate_point(x1, y1, quadrants, width, height)
    return Rect(ax, ay, bx, by)


def font_space_ems(chars: Iterable[dict]) -> Dict[str, float]:
    """Mean space advance per font name, in ems, from a page's space glyphs.

    Fonts that draw no space on the page are absent; callers fall back to a
    fixed estimate for them.
    """
    widths: Dict[str, List[float]] = {}
    for char in chars:
        if char.get("text") != " ":
            continue
        size = float(char.get("size") or 0)
        advance = float(char["x1"]) - float(char["x0"])
        if size > 0 and advance > 0:
            widths.setdefault(char.get("fontname", ""), []).append(advance / size)
    return {font: sum(ems) / len(ems) for font, ems in widths.items()}


# ── pdfplumber ─────────────────────────────────────────────────────────


class PdfPlumberDecoder:
    """Decode PDF pages with pdfplumber.

    Parameters
    ----------
    pdf_path : Path or str
        The PDF to read.  Validated on construction.
    char_map : Mapping[int, str]
        Read-only replacement characters for ``(cid:N)`` glyphs.
    space_width_em : float
        Space width, as a fraction of the font size, for fonts that draw no
        space on the page.

    Use as a context manager, or call :meth:`close` when done.
    """

    def __init__(
        self,
        pdf_path: Path | str,
        char_map: Mapping[int, str] = DEFAULT_CHAR_MAP,
        space_width_em: float = 0.25,
    ) -> None:
        self.path = Path(pdf_path)
        validate_pdf_path(self.path)
        if not isinstance(char_map, MappingProxyType):
            char_map = MappingProxyType(dict(char_map))
        self.char_map = char_map
        self.space_width_em = space_width_em
        self._pdf = None

    def __enter__(self) -> "PdfPlumberDecoder":
        self._document()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _document(self):
        if self._pdf is None:
            try:
                self._pdf = pdfplumber.open(self.path)
            except Exception as exc:
                raise IngestError(f"Cannot open PDF: {exc}") from exc
            logger.info("Opened %s: %d pages", self.path.name, len(self._pdf.pages))
        return self._pdf

    def close(self) -> None:
        if self._pdf is not None:
            self._pdf.close()
            self._pdf = None

    @property
    def page_count(self) -> int:
        return len(self._document().pages)

    def decode_page(
        self, index: int, sink: PageSink, extra_quadrant_rotation: int = 0
    ) -> PageInfo:
        """Feed page *index* (zero-based) to *sink*; return its rotated size."""
        page = self._document().pages[index]
        width, height = float(page.width), float(page.height)
        quadrants = extra_quadrant_rotation % 4

        def point(x: float, y: float) -> Point:
            return rotate_point(x, y, quadrants, width, height)

        for line in page.lines:
            p0 = point(float(line["x0"]), float(line["top"]))
            p1 = point(float(line["x1"]), float(line["bottom"]))
            sink.add_line(p0, p1)

        for rect in page.rects:
            x0, top = float(rect["x0"]), float(rect["top"])
            x1, bottom = float(rect["x1"]), float(rect["bottom"])
            fill_color = rect.get("non_stroking_color")
            filled = rect.get("fill", fill_color is not None)
            if filled:
                region = _rotate_rect(x0, top, x1, bottom, quadrants, width, height)
                sink.add_filled_region(pdf_color_key(fill_color), region)
            if rect.get("stroke", not filled):
                corners = [point(x0, top), point(x1, top), point(x1, bottom), point(x0, bottom)]
                for i, corner in enumerate(corners):
                    sink.add_line(corner, corners[(i + 1) % 4])

        curves = page.curves
        if curves:
            logger.debug("Page %d: ignored %d curves", index, len(curves))

        chars = page.chars
        space_ems = font_space_ems(chars)
        for char in chars:
            self._add_char(sink, char, quadrants, width, height, space_ems)

        rot_width, rot_height = rotated_size(width, height, quadrants)
        return PageInfo(index=index, width=rot_width, height=rot_height)

    def _add_char(
        self,
        sink: PageSink,
        char: dict,
        quadrants: int,
        width: float,
        height: float,
        space_ems: Mapping[str, float],
    ) -> None:
        text = self._unicode(char.get("text", ""))
        if not text:
            return
        box = _rotate_rect(
            float(char["x0"]),
            float(char["top"]),
            float(char["x1"]),
            float(char["bottom"]),
            quadrants,
            width,
            height,
        )
        matrix = char.get("matrix")
        if matrix:
            # The text matrix translation is the glyph origin on the baseline
            _, baseline = rotate_point(
                float(matrix[4]), height - float(matrix[5]), quadrants, width, height
            )
        else:
            baseline = box.max_y
        size = float(char.get("size") or box.height())
        em = space_ems.get(char.get("fontname", ""), self.space_width_em)
        # Ligatures and other multi-character glyphs share the advance evenly
        advance = box.width() / len(text)
        for i, ch in enumerate(text):
            sink.add_glyph(box.min_x + i * advance, baseline, ch, advance, size * em)

    def _unicode(self, text: str) -> str:
        match = _CID_RE.fullmatch(text)
        if match is None:
            return text
        code = int(match.group(1))
        return self.char_map.get(code, chr(code))
