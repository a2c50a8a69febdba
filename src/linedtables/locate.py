"""Locate the top, sides and bottom of a table on the current page."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Pattern

from .geometry import PageGeometry, row_text
from .models import Rect

logger = logging.getLogger("linedtables.locate")


@dataclass(frozen=True)
class TableEnd:
    """Result of :func:`find_table_end`.

    ``found`` is True when the table ends on this page; ``y`` is the bottom
    of the part of the table on this page, or None when no bottom exists.
    """

    found: bool
    y: Optional[float]


def find_table(
    geometry: PageGeometry, heading_color: Optional[int], bounds: Rect
) -> bool:
    """Find the top, left and right bounds of the next table on the page.

    *bounds* arrives with ``min_y`` set to the Y to search from and is
    updated in place; its bottom is left for :func:`find_table_end`.

    With a heading colour, the first band of regions of that colour at or
    below the start gives the table's X extent, and its bottom edge is the
    top of the table.  Without one, the first horizontal line at or below
    the first coloured band (or the start) is the top, and the X extent runs
    between the vertical lines nearest that line's ends.

    Returns False when there is no (further) table on this page.
    """
    start_y = bounds.min_y
    tol = geometry.tolerance

    if heading_color is not None:
        regions = geometry.regions(heading_color, from_y=start_y)
        if not regions:
            logger.info(
                "No rectangles found with colour #%06x below y=%.2f",
                heading_color,
                start_y,
            )
            return False
        heading = regions[0].copy()
        for r in regions[1:]:
            if not heading.overlaps_y(r.min_y, r.max_y):
                break
            heading.add(r)
        logger.debug("Heading band %s", heading)
        bounds.set_min_y(heading.max_y)
        bounds.set_x(heading.min_x, heading.max_x)
        return True

    region_top = _first_region_top(geometry, start_y)
    top = start_y if region_top is None else region_top

    h_top = geometry.horizontal.ceiling(top)
    if h_top is None:
        logger.info("No horizontal line below y=%.2f", top)
        return False
    spans = geometry.horizontal.spans(h_top)
    bounds.set_min_y(h_top)
    min_x, max_x = spans[0][0], spans[-1][1]
    bounds.set_x(min_x, max_x)

    v_left = geometry.vertical.ceiling(min_x - tol)
    v_right = geometry.vertical.floor(max_x + tol)
    if v_left is not None and v_right is not None and v_left < v_right:
        bounds.set_x(v_left, v_right)
    logger.debug("Table top %.2f, x %.2f - %.2f", bounds.min_y, bounds.min_x, bounds.max_x)
    return True


def _first_region_top(geometry: PageGeometry, start_y: float) -> Optional[float]:
    """Top of the first filled region of any colour at or below *start_y*."""
    tops = [
        regions[0].min_y
        for regions in (
            geometry.regions(color, from_y=start_y)
            for color in geometry.region_colors()
        )
        if regions
    ]
    return min(tops) if tops else None


def find_table_end(
    geometry: PageGeometry,
    bounds: Rect,
    start_y: float,
    end_pattern: Optional[Pattern[str]],
    heading_color: Optional[int],
) -> TableEnd:
    """Find the bottom of the table whose top is ``bounds.min_y``.

    In priority order:

    1. the first text row below *start_y* matching *end_pattern* (rows above
       the heading count, the marker may introduce the next table);
    2. the nearest horizontal line above the next heading of *heading_color*;
    3. the last horizontal line on the page.  In this case the table only
       counts as ended when no end pattern was configured.
    """
    tol = geometry.tolerance

    if end_pattern is not None:
        for y, glyphs in geometry.text_rows(from_y=start_y, exclusive_from=start_y > 0):
            if end_pattern.search(row_text(glyphs)):
                logger.debug("End pattern %r matched at y=%.2f", end_pattern.pattern, y)
                return TableEnd(True, y)
        logger.warning("Table end delimiter %r not found", end_pattern.pattern)

    if heading_color is not None:
        following = geometry.regions(heading_color, from_y=bounds.min_y + tol)
        if following:
            next_heading = following[0]
            line_y = geometry.horizontal.lower(next_heading.min_y)
            if line_y is not None and line_y > bounds.min_y:
                return TableEnd(True, line_y)
            logger.warning(
                "No horizontal line above next heading at y=%.2f; using heading top",
                next_heading.min_y,
            )
            return TableEnd(True, next_heading.min_y)
        logger.info("No other table heading found")

    last = geometry.horizontal.last()
    if last is None:
        logger.warning("No table end delimiter and no horizontal line found")
        return TableEnd(False, None)
    if last <= bounds.min_y:
        logger.warning("No horizontal line below table top y=%.2f", bounds.min_y)
        return TableEnd(end_pattern is None, None)
    return TableEnd(end_pattern is None, last)
