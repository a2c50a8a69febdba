"""Per-page geometry store: ruled lines, filled regions and positioned glyphs.

A :class:`PageGeometry` is the event sink a page decoder feeds.  It keeps

* horizontal lines keyed by Y, each key holding the merged X spans drawn at
  that height (:class:`LineSet`);
* vertical lines keyed by X, holding merged Y spans;
* filled rectangles grouped by fill colour, in reading order;
* text glyphs keyed by Y then X, so a text row reads left-to-right.

Everything is rebuilt from scratch for each page via :meth:`PageGeometry.reset`.
Line merging snaps a new segment onto the nearest existing line closer than
the tolerance, and the existing line keeps its nominal position, so chains
of merges never drift.
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right, insort
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .models import Rect, TextGlyph

logger = logging.getLogger("linedtables.geometry")

Span = Tuple[float, float]
Point = Tuple[float, float]


# ── Span merging ───────────────────────────────────────────────────────


def merge_span(
    spans: Sequence[Span], lo: float, hi: float, tolerance: float
) -> List[Span]:
    """Return a new span list with ``[lo, hi]`` merged into *spans*.

    *spans* must be sorted by start.  A new span wholly covered by an
    existing one leaves the list unchanged.  Otherwise every span touching
    or overlapping ``[lo - tolerance, hi + tolerance]`` is fused with the
    new span into one continuous span.
    """
    if lo > hi:
        lo, hi = hi, lo
    for s_lo, s_hi in spans:
        if s_lo <= lo and s_hi >= hi:
            return list(spans)

    merged_lo, merged_hi = lo, hi
    result: List[Span] = []
    for s_lo, s_hi in spans:
        if s_hi < lo - tolerance or s_lo > hi + tolerance:
            result.append((s_lo, s_hi))
        else:
            merged_lo = min(merged_lo, s_lo)
            merged_hi = max(merged_hi, s_hi)
    result.append((merged_lo, merged_hi))
    result.sort()
    return result


class LineSet:
    """Ordered collection of collinear line spans keyed by nominal position.

    For horizontal lines the key is Y and spans run along X; for vertical
    lines the key is X and spans run along Y.
    """

    def __init__(self, tolerance: float) -> None:
        self.tolerance = tolerance
        self._keys: List[float] = []
        self._spans: Dict[float, List[Span]] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def __bool__(self) -> bool:
        return bool(self._keys)

    def __iter__(self) -> Iterator[Tuple[float, List[Span]]]:
        for key in self._keys:
            yield key, self._spans[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineSet):
            return NotImplemented
        return self._keys == other._keys and self._spans == other._spans

    def __repr__(self) -> str:
        return f"LineSet({dict(self)!r})"

    def keys(self) -> List[float]:
        return list(self._keys)

    def spans(self, key: float) -> List[Span]:
        return list(self._spans[key])

    def copy(self) -> "LineSet":
        other = LineSet(self.tolerance)
        other._keys = list(self._keys)
        other._spans = {k: list(v) for k, v in self._spans.items()}
        return other

    # ── Insertion ─────────────────────────────────────────────────────

    def nearest(self, pos: float) -> Optional[float]:
        """Existing key closer than the tolerance to *pos* (ties go higher)."""
        idx = bisect_left(self._keys, pos)
        best: Optional[float] = None
        for i in (idx - 1, idx):
            if 0 <= i < len(self._keys):
                key = self._keys[i]
                dist = abs(key - pos)
                if dist < self.tolerance and (
                    best is None or dist <= abs(best - pos)
                ):
                    best = key
        return best

    def add(self, pos: float, lo: float, hi: float) -> float:
        """Insert the span ``[lo, hi]`` at *pos*; return the key it landed on."""
        key = self.nearest(pos)
        if key is None:
            insort(self._keys, pos)
            self._spans[pos] = [(min(lo, hi), max(lo, hi))]
            return pos
        self._spans[key] = merge_span(self._spans[key], lo, hi, self.tolerance)
        return key

    def put(self, key: float, spans: Sequence[Span]) -> None:
        """Set the spans at exactly *key*, bypassing tolerance snapping."""
        if key not in self._spans:
            insort(self._keys, key)
        self._spans[key] = sorted(spans)

    def remove(self, key: float) -> List[Span]:
        self._keys.remove(key)
        return self._spans.pop(key)

    # ── Ordered lookups ───────────────────────────────────────────────

    def first(self) -> Optional[float]:
        return self._keys[0] if self._keys else None

    def last(self) -> Optional[float]:
        return self._keys[-1] if self._keys else None

    def ceiling(self, pos: float) -> Optional[float]:
        """Smallest key ``>= pos``."""
        idx = bisect_left(self._keys, pos)
        return self._keys[idx] if idx < len(self._keys) else None

    def floor(self, pos: float) -> Optional[float]:
        """Largest key ``<= pos``."""
        idx = bisect_right(self._keys, pos)
        return self._keys[idx - 1] if idx > 0 else None

    def lower(self, pos: float) -> Optional[float]:
        """Largest key strictly below *pos*."""
        idx = bisect_left(self._keys, pos)
        return self._keys[idx - 1] if idx > 0 else None

    def between(self, lo: float, hi: float) -> List[Tuple[float, List[Span]]]:
        """Rows with ``lo <= key < hi`` in key order."""
        start = bisect_left(self._keys, lo)
        stop = bisect_left(self._keys, hi)
        return [(k, list(self._spans[k])) for k in self._keys[start:stop]]


# ── Page store ─────────────────────────────────────────────────────────


class PageGeometry:
    """Tolerance-merged lines, filled regions and glyphs for one page."""

    def __init__(
        self,
        tolerance: float = 1.0,
        suppress_duplicates: bool = True,
        line_threshold: float = 3.0,
        space_width_factor: float = 0.3,
    ) -> None:
        self.tolerance = tolerance
        self.suppress_duplicates = suppress_duplicates
        self.line_threshold = line_threshold
        self.space_width_factor = space_width_factor
        self.width = 0.0
        self.height = 0.0
        self.horizontal = LineSet(tolerance)
        self.vertical = LineSet(tolerance)
        self._regions: Dict[Optional[int], List[Rect]] = {}
        self._region_keys: Dict[Optional[int], List[Tuple[float, float]]] = {}
        self._text: Dict[float, Dict[float, TextGlyph]] = {}
        self._text_ys: List[float] = []

    def reset(self, width: float = 0.0, height: float = 0.0) -> None:
        """Forget everything from the previous page."""
        self.width = width
        self.height = height
        self.horizontal = LineSet(self.tolerance)
        self.vertical = LineSet(self.tolerance)
        self._regions.clear()
        self._region_keys.clear()
        self._text.clear()
        self._text_ys.clear()

    def set_page_size(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    # ── Event sink ────────────────────────────────────────────────────

    def add_line(self, p0: Point, p1: Point) -> None:
        """Add a stroked segment as a horizontal or vertical line."""
        (x0, y0), (x1, y1) = p0, p1
        if abs(y1 - y0) <= self.tolerance:
            y = (y0 + y1) / 2
            key = self.horizontal.add(y, min(x0, x1), max(x0, x1))
            logger.debug("horiz line y=%.2f (key %.2f) %.2f - %.2f", y, key, x0, x1)
        elif abs(x1 - x0) <= self.tolerance:
            x = (x0 + x1) / 2
            key = self.vertical.add(x, min(y0, y1), max(y0, y1))
            logger.debug("vert line x=%.2f (key %.2f) %.2f - %.2f", x, key, y0, y1)
        else:
            logger.debug("Diagonal line segment %s, %s ignored", p0, p1)

    def add_filled_region(self, color: Optional[int], rect: Rect) -> None:
        """Add a filled rectangle; thin ones become ruled lines."""
        thin_x = rect.width() < self.line_threshold
        thin_y = rect.height() < self.line_threshold
        if thin_x and thin_y:
            logger.debug("Ignored shaded rectangle %s too small for text", rect)
            return
        if thin_y:
            y = (rect.min_y + rect.max_y) / 2
            self.add_line((rect.min_x, y), (rect.max_x, y))
            return
        if thin_x:
            x = (rect.min_x + rect.max_x) / 2
            self.add_line((x, rect.min_y), (x, rect.max_y))
            return

        region = Rect(rect.min_x, rect.min_y, rect.max_x, rect.max_y, fill_color=color)
        rects = self._regions.setdefault(color, [])
        keys = self._region_keys.setdefault(color, [])
        key = region.sort_key()
        idx = bisect_left(keys, key)
        if idx < len(keys) and keys[idx] == key:
            existing = rects[idx]
            if region.max_x >= existing.max_x and region.max_y >= existing.max_y:
                rects[idx] = region
            return
        keys.insert(idx, key)
        rects.insert(idx, region)

    def add_glyph(
        self,
        x: float,
        y: float,
        char: str,
        width: float,
        estimated_space_width: float,
    ) -> None:
        """Add one positioned character, skipping double-struck duplicates."""
        glyph = TextGlyph(
            x=x,
            y=y,
            char=char,
            width=width,
            space_width=estimated_space_width * self.space_width_factor,
        )
        if self.suppress_duplicates and self._is_duplicate(glyph):
            logger.debug("Dup char %s", glyph)
            return
        row = self._text.get(y)
        if row is None:
            row = self._text[y] = {}
            insort(self._text_ys, y)
        row[x] = glyph

    def _is_duplicate(self, glyph: TextGlyph) -> bool:
        tol = glyph.width / 3
        start = bisect_right(self._text_ys, glyph.y - tol)
        stop = bisect_left(self._text_ys, glyph.y + tol)
        for y in self._text_ys[start:stop]:
            for other in self._text[y].values():
                if other.char == glyph.char and abs(other.x - glyph.x) < tol:
                    return True
        return False

    # ── Queries ───────────────────────────────────────────────────────

    def region_colors(self) -> List[Optional[int]]:
        return [c for c, rects in self._regions.items() if rects]

    def regions(
        self, color: Optional[int], from_y: Optional[float] = None
    ) -> List[Rect]:
        """Filled regions of *color* in reading order, optionally from a Y."""
        rects = self._regions.get(color, [])
        if from_y is None:
            return list(rects)
        return [r for r in rects if r.min_y >= from_y]

    def text_rows(
        self,
        from_y: Optional[float] = None,
        to_y: Optional[float] = None,
        exclusive_from: bool = False,
    ) -> List[Tuple[float, List[TextGlyph]]]:
        """Text rows ``(y, glyphs left-to-right)`` in top-to-bottom order."""
        ys = self._text_ys
        if from_y is None:
            start = 0
        elif exclusive_from:
            start = bisect_right(ys, from_y)
        else:
            start = bisect_left(ys, from_y)
        stop = len(ys) if to_y is None else bisect_left(ys, to_y)
        rows = []
        for y in ys[start:stop]:
            row = self._text[y]
            rows.append((y, [row[x] for x in sorted(row)]))
        return rows

    def glyph_count(self) -> int:
        return sum(len(row) for row in self._text.values())

    def summary(self) -> dict:
        """Counts of everything stored for the current page."""
        return {
            "width": round(self.width, 3),
            "height": round(self.height, 3),
            "horizontal_lines": len(self.horizontal),
            "vertical_lines": len(self.vertical),
            "regions": {
                (f"#{c:06x}" if c is not None else "none"): len(r)
                for c, r in self._regions.items()
            },
            "glyphs": self.glyph_count(),
        }


def row_text(glyphs: Sequence[TextGlyph]) -> str:
    """Concatenate a text row's characters in X order."""
    return "".join(g.char for g in glyphs)
