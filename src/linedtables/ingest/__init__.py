"""Ingest stage - PDF checks, document summary, rendering and page decoding.

Public API
----------
- :func:`ingest_pdf` - check a PDF, return its :class:`PdfMeta` summary
- :func:`render_page_image` - render one page to PIL Image at a given DPI
- :class:`PdfPlumberDecoder` - feed page primitives to a page sink
- :class:`PdfMeta` - page sizes, rotations and document info
- :class:`PageInfo` - per-page dimensions
- :class:`IngestError` - raised on validation failures
"""

from .decoder import (
    DEFAULT_CHAR_MAP,
    PageDecoder,
    PageSink,
    PdfPlumberDecoder,
    font_space_ems,
    rotate_point,
    rotated_size,
)
from .ingest import IngestError, PageInfo, PdfMeta, ingest_pdf, render_page_image

__all__ = [
    "DEFAULT_CHAR_MAP",
    "IngestError",
    "PageDecoder",
    "PageInfo",
    "PageSink",
    "PdfMeta",
    "PdfPlumberDecoder",
    "font_space_ems",
    "ingest_pdf",
    "render_page_image",
    "rotate_point",
    "rotated_size",
]
