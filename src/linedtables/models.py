from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple, Union

RGB = Tuple[int, int, int]
ColorLike = Union[int, str, Sequence[float]]


def _channel(value: float) -> int:
    """Convert a 0-1 float (or an already 0-255 int) colour channel to 0-255."""
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value <= 255:
            raise ValueError(f"channel {value} out of range [0, 255]")
        return value
    v = float(value)
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"channel {value} out of range [0, 1]")
    return int(round(v * 255))


def color_key(color: Optional[ColorLike]) -> Optional[int]:
    """Normalise a colour to a single ``0xRRGGBB`` int.

    Accepts ``None``, ints, ``"#rrggbb"`` strings, ``(r, g, b)`` tuples of
    0-255 ints, and pdfplumber colour tuples: gray ``(g,)``, RGB
    ``(r, g, b)`` and CMYK ``(c, m, y, k)`` floats in ``[0, 1]``.
    """
    if color is None:
        return None
    if isinstance(color, bool):
        raise TypeError(f"not a colour: {color!r}")
    if isinstance(color, int):
        if not 0 <= color <= 0xFFFFFF:
            raise ValueError(f"colour {color:#x} out of range")
        return color
    if isinstance(color, str):
        text = color.strip().lstrip("#")
        if len(text) != 6:
            raise ValueError(f"expected '#rrggbb', got {color!r}")
        return int(text, 16)
    values = list(color)
    if len(values) == 1:
        g = _channel(values[0])
        r, gg, b = g, g, g
    elif len(values) == 3:
        if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            r, gg, b = (_channel(v) for v in values)
        else:
            r, gg, b = (_channel(float(v)) for v in values)
    elif len(values) == 4:
        c, m, y, k = (float(v) for v in values)
        r = int(round(255 * (1 - c) * (1 - k)))
        gg = int(round(255 * (1 - m) * (1 - k)))
        b = int(round(255 * (1 - y) * (1 - k)))
    else:
        raise ValueError(f"unsupported colour {color!r}")
    return (r << 16) | (gg << 8) | b


def pdf_color_key(color: object) -> Optional[int]:
    """Colour key for a colour as reported by pdfplumber.

    Components are always device values in ``[0, 1]`` (the content stream
    may hand them over as ints, e.g. ``(1,)`` for white).  Pattern colours
    and anything else non-numeric resolve to ``None``.
    """
    if color is None or isinstance(color, str):
        return None
    try:
        values = [float(v) for v in color]  # type: ignore[union-attr]
    except (TypeError, ValueError):
        return None
    if len(values) not in (1, 3, 4) or not all(0.0 <= v <= 1.0 for v in values):
        return None
    return color_key(tuple(values))


def key_to_rgb(key: int) -> RGB:
    """Inverse of :func:`color_key` for a resolved key."""
    return ((key >> 16) & 0xFF, (key >> 8) & 0xFF, key & 0xFF)


@dataclass
class Rect:
    """Axis-aligned rectangle, or a horizontal/vertical line when degenerate.

    Coordinates increase rightward and down the page.  A rectangle with
    ``min_x == max_x`` is a vertical line; ``min_y == max_y`` a horizontal
    line.  Constructor arguments may be given in any order; they are
    normalised so that ``min <= max``.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    fill_color: Optional[int] = None
    stroke_color: Optional[int] = None

    def __post_init__(self) -> None:
        if self.min_x > self.max_x:
            self.min_x, self.max_x = self.max_x, self.min_x
        if self.min_y > self.max_y:
            self.min_y, self.max_y = self.max_y, self.min_y

    def width(self) -> float:
        return self.max_x - self.min_x

    def height(self) -> float:
        return self.max_y - self.min_y

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def sort_key(self) -> Tuple[float, float]:
        """Reading order: top edge, then left edge."""
        return (self.min_y, self.min_x)

    def is_horizontal_line(self) -> bool:
        return self.min_y == self.max_y

    def is_vertical_line(self) -> bool:
        return self.min_x == self.max_x

    def copy(self) -> "Rect":
        return replace(self)

    # ── Tests ─────────────────────────────────────────────────────────

    def contains_x(self, x: float) -> bool:
        return self.min_x <= x <= self.max_x

    def contains_y(self, y: float) -> bool:
        return self.min_y <= y <= self.max_y

    def contains(self, x: float, y: float) -> bool:
        return self.contains_x(x) and self.contains_y(y)

    def overlaps_x(self, lo: float, hi: float) -> bool:
        return hi >= self.min_x and lo <= self.max_x

    def overlaps_y(self, lo: float, hi: float) -> bool:
        return hi >= self.min_y and lo <= self.max_y

    def intersects(self, other: "Rect") -> bool:
        return self.overlaps_x(other.min_x, other.max_x) and self.overlaps_y(
            other.min_y, other.max_y
        )

    # ── Mutation ──────────────────────────────────────────────────────

    def add(self, other: "Rect") -> "Rect":
        """Grow in place to the union with *other*."""
        self.min_x = min(self.min_x, other.min_x)
        self.min_y = min(self.min_y, other.min_y)
        self.max_x = max(self.max_x, other.max_x)
        self.max_y = max(self.max_y, other.max_y)
        return self

    def add_point(self, x: float, y: float) -> "Rect":
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)
        return self

    def expand(self, d: float) -> "Rect":
        self.min_x -= d
        self.min_y -= d
        self.max_x += d
        self.max_y += d
        return self

    def set_x(self, x0: float, x1: float) -> None:
        self.min_x, self.max_x = min(x0, x1), max(x0, x1)

    def set_y(self, y0: float, y1: float) -> None:
        self.min_y, self.max_y = min(y0, y1), max(y0, y1)

    def set_min_y(self, y: float) -> None:
        """Move the top edge, dragging the bottom edge along if needed."""
        self.min_y = y
        self.max_y = max(self.max_y, y)

    def set_max_y(self, y: float) -> None:
        """Move the bottom edge, dragging the top edge along if needed."""
        self.max_y = y
        self.min_y = min(self.min_y, y)

    def trim_x(self, lo: float, hi: float) -> "Rect":
        """Clamp the X extent to ``[lo, hi]`` in place."""
        self.min_x = max(self.min_x, lo)
        self.max_x = min(self.max_x, hi)
        if self.min_x > self.max_x:
            self.max_x = self.min_x
        return self

    def trim_y(self, lo: float, hi: float) -> "Rect":
        """Clamp the Y extent to ``[lo, hi]`` in place."""
        self.min_y = max(self.min_y, lo)
        self.max_y = min(self.max_y, hi)
        if self.min_y > self.max_y:
            self.max_y = self.min_y
        return self

    def clamp_x(self, x: float) -> float:
        return min(max(x, self.min_x), self.max_x)

    def clamp_y(self, y: float) -> float:
        return min(max(y, self.min_y), self.max_y)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        d: dict = {
            "min_x": round(self.min_x, 3),
            "min_y": round(self.min_y, 3),
            "max_x": round(self.max_x, 3),
            "max_y": round(self.max_y, 3),
        }
        if self.fill_color is not None:
            d["fill_color"] = f"#{self.fill_color:06x}"
        if self.stroke_color is not None:
            d["stroke_color"] = f"#{self.stroke_color:06x}"
        return d

    def __str__(self) -> str:
        return (
            f"[({self.min_x:.2f}, {self.min_y:.2f}), "
            f"({self.max_x:.2f}, {self.max_y:.2f})]"
        )


@dataclass(frozen=True)
class TextGlyph:
    """One positioned character.

    ``x``/``y`` is the glyph origin in display units, ``width`` its advance
    and ``space_width`` the width of one inferred space between glyphs.
    """

    x: float
    y: float
    char: str
    width: float
    space_width: float

    def __str__(self) -> str:
        return (
            f"{self.char!r}, ({self.x:.2f}, {self.y:.2f}), "
            f"width {self.width:.2f}, spaceWidth {self.space_width:.2f}"
        )


@dataclass
class TableCell(Rect):
    """A bounded table cell and the text found inside it."""

    text: str = ""

    def is_blank(self) -> bool:
        return not self.text.strip()

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["text"] = self.text
        return d
