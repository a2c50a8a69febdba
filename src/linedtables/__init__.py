"""Geometric reconstruction of ruled tables from PDF pages.

Frequently-used symbols are re-exported here for convenience.
For the building blocks (line stores, locators, cell builder, row
assembler) import directly from the relevant submodule, e.g.::

    from linedtables.geometry import PageGeometry
    from linedtables.cells import build_cells
"""

# ── Core models & config ──────────────────────────────────────────────

from .config import ConfigValidationError, TableDefinition

# ── Extraction ────────────────────────────────────────────────────────

from .extract import (
    ExtractionState,
    ExtractStage,
    PageExtraction,
    TableExtractor,
    extract_tables_from_pdf,
)
from .geometry import PageGeometry

# ── Ingest ────────────────────────────────────────────────────────────

from .ingest import IngestError, PdfMeta, PdfPlumberDecoder, ingest_pdf, render_page_image
from .models import Rect, TableCell, TextGlyph

# ── Export ────────────────────────────────────────────────────────────

from .export import draw_table_overlay, export_tables_csv, export_tables_json

__all__ = [
    # Models & config
    "ConfigValidationError",
    "Rect",
    "TableCell",
    "TableDefinition",
    "TextGlyph",
    # Extraction
    "ExtractStage",
    "ExtractionState",
    "PageExtraction",
    "PageGeometry",
    "TableExtractor",
    "extract_tables_from_pdf",
    # Ingest
    "IngestError",
    "PdfMeta",
    "PdfPlumberDecoder",
    "ingest_pdf",
    "render_page_image",
    # Export
    "draw_table_overlay",
    "export_tables_csv",
    "export_tables_json",
]
