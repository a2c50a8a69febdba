"""Shared test fixtures for linedtables."""

from typing import Dict, List, Optional, Sequence

import pytest

from linedtables.geometry import PageGeometry
from linedtables.ingest.ingest import PageInfo
from linedtables.models import Rect

GREY = 0xC0C0C0
BLUE = 0x0000FF

# ── Helpers ────────────────────────────────────────────────────────────


def write_text(
    sink,
    x: float,
    y: float,
    text: str,
    char_width: float = 5.0,
    size: float = 10.0,
) -> None:
    """Emit *text* as glyphs on baseline *y*, one ``char_width`` per character.

    Spaces are not emitted; they leave a gap the cell text turns back into
    a space.
    """
    for i, ch in enumerate(text):
        if ch == " ":
            continue
        sink.add_glyph(x + i * char_width, y, ch, char_width, size * 0.25)


def draw_grid(sink, xs: Sequence[float], ys: Sequence[float]) -> None:
    """Draw a full grid: a horizontal line at each y, a vertical at each x."""
    for y in ys:
        sink.add_line((xs[0], y), (xs[-1], y))
    for x in xs:
        sink.add_line((x, ys[0]), (x, ys[-1]))


def fill_grid(
    sink,
    xs: Sequence[float],
    ys: Sequence[float],
    texts: Sequence[Sequence[str]],
    baseline_offset: float = 5.0,
) -> None:
    """Write ``texts[row][col]`` into each grid cell, just above its bottom."""
    for r, row in enumerate(texts):
        for c, text in enumerate(row):
            if text:
                write_text(sink, xs[c] + 5, ys[r + 1] - baseline_offset, text)


def make_geometry(**kwargs) -> PageGeometry:
    """Create an empty PageGeometry on a 600 x 800 page."""
    geometry = PageGeometry(**kwargs)
    geometry.reset(600.0, 800.0)
    return geometry


class FakePage:
    """Records page primitives and replays them into a sink."""

    def __init__(self, width: float = 600.0, height: float = 800.0) -> None:
        self.width = width
        self.height = height
        self.events: List[tuple] = []

    def add_line(self, p0, p1) -> None:
        self.events.append(("add_line", (p0, p1)))

    def add_filled_region(self, color: Optional[int], rect: Rect) -> None:
        self.events.append(("add_filled_region", (color, rect.copy())))

    def add_glyph(self, x, y, char, width, estimated_space_width) -> None:
        self.events.append(("add_glyph", (x, y, char, width, estimated_space_width)))

    def region(self, color: int, x0: float, y0: float, x1: float, y1: float) -> None:
        self.add_filled_region(color, Rect(x0, y0, x1, y1))

    def calls(self, name: str) -> List[tuple]:
        return [args for event, args in self.events if event == name]

    def replay(self, sink) -> None:
        for name, args in self.events:
            getattr(sink, name)(*args)


class FakeDecoder:
    """Page decoder serving :class:`FakePage` recordings."""

    def __init__(self, pages: Sequence[FakePage]) -> None:
        self.pages = list(pages)
        self.decoded: List[int] = []
        self.rotations: Dict[int, int] = {}

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def decode_page(self, index, sink, extra_quadrant_rotation=0) -> PageInfo:
        self.decoded.append(index)
        self.rotations[index] = extra_quadrant_rotation
        page = self.pages[index]
        page.replay(sink)
        return PageInfo(index=index, width=page.width, height=page.height)


def grid_page(
    xs: Sequence[float],
    ys: Sequence[float],
    texts: Sequence[Sequence[str]],
    page: Optional[FakePage] = None,
) -> FakePage:
    """A page (new or given) holding a filled-in ruled grid."""
    page = page or FakePage()
    draw_grid(page, xs, ys)
    fill_grid(page, xs, ys, texts)
    return page


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def geometry() -> PageGeometry:
    """Return an empty default PageGeometry."""
    return make_geometry()


@pytest.fixture
def one_row_page() -> FakePage:
    """A single-row, two-column ruled table holding "data1" and "data2"."""
    return grid_page([10, 110, 210], [100, 120], [["data1", "data2"]])
