"""Page/table orchestration: drive locating, cell building and row assembly.

One table definition is extracted by a small state machine::

    SEARCHING -> EXTRACTING -> CONTINUING -> EXTRACTING -> ... -> DONE

Each page is decoded into a :class:`~linedtables.geometry.PageGeometry`
once per set of geometry settings.  A table that is not confirmed as ended
on a page continues at the top of the next page; its rows are appended to
the same result, optionally merging a row wrapped across the page break.

:meth:`TableExtractor.extract_tables` runs a sequence of definitions,
carrying the page and bottom Y of each table forward as the start of the
next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .assemble import append_rows, assemble_rows
from .cells import TextOptions, extract_cells
from .config import TableDefinition
from .geometry import PageGeometry
from .ingest.decoder import PageDecoder, PdfPlumberDecoder
from .locate import find_table, find_table_end
from .models import Rect, TableCell

logger = logging.getLogger("linedtables.extract")

Table = List[List[str]]


class ExtractStage(Enum):
    SEARCHING = "searching"
    EXTRACTING = "extracting"
    CONTINUING = "continuing"
    DONE = "done"


@dataclass
class PageExtraction:
    """What one page contributed to a table."""

    page: int
    heading_color: Optional[int]
    bounds: Rect
    end_found: bool
    cells: List[TableCell] = field(default_factory=list)
    row_count: int = 0

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "page": self.page,
            "heading_color": (
                f"#{self.heading_color:06x}" if self.heading_color is not None else None
            ),
            "bounds": self.bounds.to_dict(),
            "end_found": self.end_found,
            "row_count": self.row_count,
            "cells": [c.to_dict() for c in self.cells],
        }


@dataclass
class ExtractionState:
    """Mutable state of one table's extraction.

    Created at the start of a table, updated page by page and handed back
    by :meth:`TableExtractor.extract_table_state` once the table is done.
    """

    definition: TableDefinition
    page: int
    start_y: float = 0.0
    first_page: int = 0
    stage: ExtractStage = ExtractStage.SEARCHING
    rows: Table = field(default_factory=list)
    end_found: bool = False
    bottom_y: Optional[float] = None
    pages: List[PageExtraction] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "table": self.definition.name,
            "page": self.page,
            "first_page": self.first_page,
            "stage": self.stage.value,
            "end_found": self.end_found,
            "bottom_y": None if self.bottom_y is None else round(self.bottom_y, 3),
            "rows": self.rows,
            "pages": [p.to_dict() for p in self.pages],
        }


class TableExtractor:
    """Extract lined tables from the pages supplied by a page decoder.

    Parameters
    ----------
    decoder : PageDecoder
        Source of page primitives; see :mod:`linedtables.ingest.decoder`.
    """

    def __init__(self, decoder: PageDecoder) -> None:
        self.decoder = decoder
        # Where the last extracted table left off
        self.current_page = 0
        self.table_bottom: Optional[float] = None
        self._geometry: Optional[PageGeometry] = None
        self._loaded: Optional[Tuple[int, tuple]] = None

    # ── Page loading ──────────────────────────────────────────────────

    def load_page(self, index: int, definition: TableDefinition) -> PageGeometry:
        """Geometry of page *index* decoded with *definition*'s settings."""
        key = (index, definition.geometry_key())
        if self._geometry is not None and self._loaded == key:
            return self._geometry

        if self._geometry is None or (
            self._loaded is not None and self._loaded[1] != key[1]
        ):
            self._geometry = PageGeometry(
                tolerance=definition.tolerance,
                suppress_duplicates=definition.suppress_duplicates,
                line_threshold=definition.line_threshold,
                space_width_factor=definition.space_width_factor,
            )
        else:
            self._geometry.reset()

        # Not cached until the decode succeeds
        self._loaded = None
        info = self.decoder.decode_page(
            index, self._geometry, definition.extra_quadrant_rotation
        )
        self._geometry.set_page_size(info.width, info.height)
        self._loaded = key
        logger.debug("Loaded page %d: %s", index, self._geometry.summary())
        return self._geometry

    # ── Single table ──────────────────────────────────────────────────

    def extract_table(
        self, definition: TableDefinition, start_page: int = 0, start_y: float = 0.0
    ) -> Table:
        """Rows of the table described by *definition*.

        The search starts on *start_page* (zero-based) at *start_y*.  Returns
        the rows collected so far, possibly ``[]``, when the table is not
        found.
        """
        return self.extract_table_state(definition, start_page, start_y).rows

    def extract_table_state(
        self, definition: TableDefinition, start_page: int = 0, start_y: float = 0.0
    ) -> ExtractionState:
        """Like :meth:`extract_table`, returning the full extraction state."""
        state = ExtractionState(
            definition, page=start_page, start_y=start_y, first_page=start_page
        )
        options = TextOptions.from_definition(definition)
        page_count = self.decoder.page_count

        while state.stage is not ExtractStage.DONE:
            if state.page >= page_count:
                logger.warning(
                    "Table %r runs past the last page (%d)", definition.name, page_count
                )
                state.stage = ExtractStage.DONE
                break

            geometry = self.load_page(state.page, definition)
            heading_color = definition.heading_color_for(state.page - state.first_page)
            bounds = Rect(0.0, state.start_y, geometry.width, state.start_y)

            if not find_table(geometry, heading_color, bounds):
                if (
                    state.stage is ExtractStage.SEARCHING
                    and state.start_y > 0
                    and state.page == state.first_page
                ):
                    # The previous table filled the page; expect the header
                    # at the top of the next one
                    logger.info(
                        "Table %r not found below y=%.2f on page %d; trying next page",
                        definition.name,
                        state.start_y,
                        state.page,
                    )
                    state.page += 1
                    state.first_page = state.page
                    state.start_y = 0.0
                    continue
                logger.error(
                    "Table header not found for %r on page %d",
                    definition.name,
                    state.page,
                )
                state.stage = ExtractStage.DONE
                break

            continuation = state.stage is ExtractStage.CONTINUING
            state.stage = ExtractStage.EXTRACTING
            end = find_table_end(
                geometry,
                bounds,
                state.start_y,
                definition.compiled_end_pattern,
                heading_color,
            )
            page_result = PageExtraction(
                page=state.page,
                heading_color=heading_color,
                bounds=bounds,
                end_found=end.found,
            )

            if end.y is not None and end.y > bounds.min_y:
                bounds.set_max_y(end.y)
                cells = extract_cells(geometry, bounds, options)
                if cells:
                    rows = assemble_rows(
                        cells, geometry.tolerance, definition.remove_empty_rows
                    )
                    append_rows(
                        state.rows,
                        rows,
                        merge_wrapped_rows=definition.merge_wrapped_rows,
                        line_ending=definition.line_ending,
                        continuation=continuation,
                    )
                    page_result.cells = cells
                    page_result.row_count = len(rows)
            elif end.y is not None:
                logger.info(
                    "Table %r ends at y=%.2f, above its top y=%.2f on page %d",
                    definition.name,
                    end.y,
                    bounds.min_y,
                    state.page,
                )
            state.pages.append(page_result)
            state.bottom_y = end.y
            logger.info(
                "Table %r page %d: %d rows, end %s",
                definition.name,
                state.page,
                page_result.row_count,
                "found" if end.found else "not found",
            )

            if end.found:
                state.end_found = True
                state.stage = ExtractStage.DONE
            else:
                state.stage = ExtractStage.CONTINUING
                state.page += 1
                state.start_y = 0.0

        self.current_page = state.page
        self.table_bottom = state.bottom_y if state.pages else state.start_y
        return state

    # ── Table sequences ───────────────────────────────────────────────

    def extract_table_states(
        self, definitions: Sequence[TableDefinition], start_page: int = 0
    ) -> List[ExtractionState]:
        """Extract several tables that follow each other in the document.

        Each table starts where the previous one ended, unless its
        definition sets ``start_page`` or ``new_page``.
        """
        states: List[ExtractionState] = []
        for i, definition in enumerate(definitions):
            if definition.start_page is not None:
                page, y = definition.start_page, 0.0
            elif i == 0:
                page, y = start_page, 0.0
            elif self.table_bottom is None or definition.new_page:
                page, y = self.current_page + 1, 0.0
            else:
                page, y = self.current_page, self.table_bottom

            state = self.extract_table_state(definition, page, y)
            if not state.rows:
                logger.error("Table %r is empty", definition.name)
            states.append(state)
        return states

    def extract_tables(
        self, definitions: Sequence[TableDefinition], start_page: int = 0
    ) -> List[Table]:
        """Rows of each table in *definitions*; an empty table is ``[]``."""
        return [s.rows for s in self.extract_table_states(definitions, start_page)]


def extract_tables_from_pdf(
    pdf_path: Path | str,
    definitions: Sequence[TableDefinition],
    start_page: int = 0,
) -> List[Table]:
    """Open *pdf_path* with pdfplumber and extract *definitions* in order."""
    with PdfPlumberDecoder(pdf_path) as decoder:
        return TableExtractor(decoder).extract_tables(definitions, start_page)
