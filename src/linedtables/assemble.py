"""Turn an irregular cell set into a dense row-major table of strings."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .models import TableCell

logger = logging.getLogger("linedtables.assemble")


def band_edges(values: Iterable[float], tolerance: float) -> List[float]:
    """Sorted distinct boundaries; values closer than *tolerance* collapse."""
    edges: List[float] = []
    for v in sorted(values):
        if edges and v - edges[-1] < tolerance:
            continue
        edges.append(v)
    return edges


def _covering(cells: Sequence[TableCell], x: float, y: float) -> Optional[TableCell]:
    for cell in cells:
        if cell.min_x <= x < cell.max_x and cell.min_y <= y < cell.max_y:
            return cell
    return None


def assemble_rows(
    cells: Sequence[TableCell], tolerance: float, remove_empty_rows: bool = False
) -> List[List[str]]:
    """Lay *cells* out on the grid formed by their distinct edges.

    Rows are bounded by the distinct cell tops and the lowest bottom,
    columns by the distinct cell lefts and the rightmost right.  Each
    ``(row, column)`` slot takes the text of the cell covering the slot's
    centre, so a cell spanning several slots supplies the same text to each
    of them.  Slots no cell covers are empty strings.
    """
    if not cells:
        return []

    bottom = max(c.max_y for c in cells)
    right = max(c.max_x for c in cells)
    ys = band_edges([c.min_y for c in cells], tolerance)
    xs = band_edges([c.min_x for c in cells], tolerance)
    if bottom - ys[-1] >= tolerance:
        ys.append(bottom)
    if right - xs[-1] >= tolerance:
        xs.append(right)

    rows: List[List[str]] = []
    for top, low in zip(ys, ys[1:]):
        cy = (top + low) / 2
        row = []
        for left, rgt in zip(xs, xs[1:]):
            cell = _covering(cells, (left + rgt) / 2, cy)
            row.append(cell.text if cell is not None else "")
        if remove_empty_rows and all(not text.strip() for text in row):
            logger.debug("Dropped empty row at y=%.2f", top)
            continue
        rows.append(row)

    logger.debug("assemble_rows: %d rows x %d columns", len(rows), len(xs) - 1)
    return rows


def append_rows(
    table: List[List[str]],
    rows: Sequence[List[str]],
    merge_wrapped_rows: bool = False,
    line_ending: str = "\n",
    continuation: bool = False,
) -> None:
    """Append *rows* to *table* in place.

    On a continuation page with *merge_wrapped_rows*, a first row whose first
    column is blank is the tail of the previous page's last row: its
    non-blank cells are joined onto that row with *line_ending* instead of
    starting a new row.
    """
    rows = list(rows)
    if (
        merge_wrapped_rows
        and continuation
        and table
        and rows
        and rows[0]
        and not rows[0][0].strip()
        and len(rows[0]) == len(table[-1])
    ):
        wrapped = rows.pop(0)
        previous = table[-1]
        for i, text in enumerate(wrapped):
            if not text.strip():
                continue
            previous[i] = previous[i] + line_ending + text if previous[i] else text
        logger.debug("Merged wrapped row into previous row: %r", previous)
    table.extend(rows)
