"""Build the actual (possibly irregular) cells of a table from its ruled lines.

Every cell must be enclosed by two horizontal and two vertical lines, but a
cell may span several rows and/or columns of the underlying grid.  Cells are
found row by row with a worklist of the remaining horizontal lines:

1. take the topmost remaining line;
2. pair up, left to right, the vertical lines crossing it;
3. for each pair, the first lower horizontal line covering the pair closes
   the cell.

Lines are never consumed from the page geometry: the vertical lines below a
finished cell stay available for the next row, and a top line's spans to the
right of a cell stay available for the rest of that row.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Deque, List, Optional, Sequence, Tuple

from .geometry import LineSet, PageGeometry, Span
from .models import Rect, TableCell, TextGlyph

if TYPE_CHECKING:
    from .config import TableDefinition

logger = logging.getLogger("linedtables.cells")

TextRows = Sequence[Tuple[float, List[TextGlyph]]]


@dataclass(frozen=True)
class TextOptions:
    """How glyphs are turned into cell text."""

    leading_spaces: bool = False
    reduce_spaces: bool = True
    line_ending: str = "\n"

    @classmethod
    def from_definition(cls, definition: "TableDefinition") -> "TextOptions":
        return cls(
            leading_spaces=definition.leading_spaces,
            reduce_spaces=definition.reduce_spaces,
            line_ending=definition.line_ending,
        )


# ── Clipping to the table bounds ───────────────────────────────────────


def clip_horizontal(lines: LineSet, bounds: Rect, tolerance: float) -> LineSet:
    """Horizontal lines within the table's Y range, trimmed to its X range."""
    clipped = LineSet(tolerance)
    for y, spans in lines.between(bounds.min_y - tolerance, bounds.max_y + tolerance):
        kept = _trim_spans(spans, bounds.min_x, bounds.max_x, tolerance)
        if kept:
            clipped.put(y, kept)
    return clipped


def clip_vertical(lines: LineSet, bounds: Rect, tolerance: float) -> LineSet:
    """Vertical lines within the table's X range, trimmed to its Y range."""
    clipped = LineSet(tolerance)
    for x, spans in lines.between(bounds.min_x - tolerance, bounds.max_x + tolerance):
        kept = _trim_spans(spans, bounds.min_y, bounds.max_y, tolerance)
        if kept:
            clipped.put(x, kept)
    return clipped


def _trim_spans(
    spans: Sequence[Span], lo: float, hi: float, tolerance: float
) -> List[Span]:
    kept = []
    for s_lo, s_hi in spans:
        s_lo = min(max(s_lo, lo), hi)
        s_hi = min(max(s_hi, lo), hi)
        if s_hi - s_lo >= tolerance:
            kept.append((s_lo, s_hi))
    return kept


def clip_text(geometry: PageGeometry, bounds: Rect) -> List[Tuple[float, List[TextGlyph]]]:
    """Text rows inside the table bounds (Y half-open, X inclusive)."""
    rows = []
    for y, glyphs in geometry.text_rows(from_y=bounds.min_y, to_y=bounds.max_y):
        inside = [g for g in glyphs if bounds.contains_x(g.x)]
        if inside:
            rows.append((y, inside))
    return rows


# ── Cell text ──────────────────────────────────────────────────────────


def cell_text(
    text_rows: TextRows,
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    options: TextOptions,
) -> str:
    """Text of the glyphs whose origin lies in ``[x0, x1) x [y0, y1)``.

    Each text row becomes one line.  A gap between consecutive glyphs is
    rendered as ``round(gap / space_width)`` spaces (at most one with
    ``reduce_spaces``).  The gap between the cell's left edge and the first
    glyph only produces spaces with ``leading_spaces``.
    """
    lines: List[str] = []
    leading_allowed = options.leading_spaces and not options.line_ending.endswith(" ")
    for y, glyphs in text_rows:
        if y < y0:
            continue
        if y >= y1:
            break
        row = [g for g in glyphs if x0 <= g.x < x1]
        if not row:
            continue
        parts: List[str] = []
        prev_x = x0
        spaces_allowed = leading_allowed
        for g in row:
            if spaces_allowed and g.space_width > 0:
                num_spaces = int((g.x - prev_x) / g.space_width + 0.5)
                if options.reduce_spaces:
                    num_spaces = min(num_spaces, 1)
                if num_spaces > 0:
                    parts.append(" " * num_spaces)
            parts.append(g.char)
            prev_x = g.x + g.width
            spaces_allowed = True
        lines.append("".join(parts).rstrip(" "))

    text = options.line_ending.join(lines)
    return text.rstrip() if options.leading_spaces else text.strip()


# ── Cell construction ──────────────────────────────────────────────────


def top_verticals(
    left: float, top: float, vertical: LineSet, tolerance: float
) -> List[Tuple[float, float]]:
    """Vertical lines crossing (or starting at) *top*, from *left* rightwards.

    Returns ``(x, bottom)`` pairs in left-to-right order, where *bottom* is
    the lower end of the span that crosses *top*.
    """
    crossing = []
    for x, spans in vertical:
        if x < left - tolerance:
            continue
        for lo, hi in spans:
            if lo <= top + tolerance and hi >= top + tolerance:
                crossing.append((x, hi))
                break
    return crossing


def _closing_line(
    pending: Deque[Tuple[float, List[Span]]],
    top: float,
    bottom: float,
    left: float,
    right: float,
    tolerance: float,
) -> Optional[float]:
    """First remaining horizontal line below *top* spanning ``[left, right]``."""
    candidates = []
    for y, spans in pending:
        if y < top + tolerance:
            continue
        if y >= bottom + tolerance:
            break
        if any(lo <= left + tolerance and hi >= right - tolerance for lo, hi in spans):
            candidates.append(y)
    if len(candidates) > 1:
        logger.debug(
            "Bracket %.2f - %.2f below %.2f closed by %d lines; using nearest",
            left,
            right,
            top,
            len(candidates),
        )
    return candidates[0] if candidates else None


def build_cells(
    horizontal: LineSet,
    vertical: LineSet,
    text_rows: TextRows,
    options: TextOptions,
    tolerance: float,
) -> Optional[List[TableCell]]:
    """Convert clipped lines and text into cells, in reading order.

    Returns None when there are fewer than two horizontal or two vertical
    lines, since no cell can be enclosed.
    """
    if len(horizontal) < 2 or len(vertical) < 2:
        logger.error(
            "Horizontal lines = %d, Vertical lines = %d so no table",
            len(horizontal),
            len(vertical),
        )
        return None

    pending: Deque[Tuple[float, List[Span]]] = deque(horizontal)
    cells: List[TableCell] = []
    while pending:
        top, top_spans = pending.popleft()
        crossing = top_verticals(top_spans[0][0], top, vertical, tolerance)
        if len(crossing) < 2:
            continue

        spans = iter(top_spans)
        h = next(spans, None)
        verts = iter(crossing)
        v_left = next(verts)
        v_right = next(verts, None)
        while v_right is not None and h is not None:
            left, right = v_left[0], v_right[0]
            h_lo, h_hi = h
            if h_hi <= left + tolerance:
                # This top span ends left of the bracket
                h = next(spans, None)
                continue
            if h_lo >= right - tolerance:
                # The bracket lies in a gap of the top line
                v_left, v_right = v_right, next(verts, None)
                continue
            if h_lo > left + tolerance or h_hi < right - tolerance:
                logger.debug(
                    "Top line %.2f - %.2f at y=%.2f only partly covers %.2f - %.2f",
                    h_lo,
                    h_hi,
                    top,
                    left,
                    right,
                )

            bottom = min(v_left[1], v_right[1])
            closing = _closing_line(pending, top, bottom, left, right, tolerance)
            if closing is None:
                logger.debug(
                    "No bottom line for cell %.2f - %.2f at y=%.2f; skipped",
                    left,
                    right,
                    top,
                )
            else:
                bottom = min(bottom, closing)
                text = cell_text(text_rows, left, top, right, bottom, options)
                cells.append(TableCell(left, top, right, bottom, text=text))
                logger.debug("Cell %s %r", cells[-1], text)
            v_left, v_right = v_right, next(verts, None)

    logger.debug("build_cells: count = %d", len(cells))
    cells.sort(key=lambda c: c.sort_key())
    return cells


def extract_cells(
    geometry: PageGeometry, bounds: Rect, options: TextOptions
) -> Optional[List[TableCell]]:
    """Cells (with text) of the table within *bounds* on the current page.

    Returns None, with an error logged, when the bounds hold no lines or no
    text; this is not fatal.
    """
    tol = geometry.tolerance
    horizontal = clip_horizontal(geometry.horizontal, bounds, tol)
    if not horizontal:
        logger.error("No horizontal lines in table %s", bounds)
        return None
    vertical = clip_vertical(geometry.vertical, bounds, tol)
    if not vertical:
        logger.error("No vertical lines in table %s", bounds)
        return None
    text_rows = clip_text(geometry, bounds)
    if not text_rows:
        logger.error("No text in table %s", bounds)
        return None
    return build_cells(horizontal, vertical, text_rows, options, tol)
