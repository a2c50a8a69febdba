"""Opening PDFs: path checks, a document summary, and page rendering.

Everything that touches a PDF file goes through here or through
:mod:`linedtables.ingest.decoder`, which shares :func:`validate_pdf_path`
and :class:`IngestError`.

- :func:`ingest_pdf` checks a file and summarises it as a :class:`PdfMeta`
  before any table is extracted (page count, page sizes and ``/Rotate``,
  document info) so the runner can reject a bad start page up front and
  record the document alongside the extraction states;
- :func:`render_page_image` renders a page for overlays.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import pdfplumber
from PIL import Image

log = logging.getLogger(__name__)


class IngestError(Exception):
    """A PDF that cannot be read, or a page outside it."""


@dataclass
class PageInfo:
    """Size of one page in display units, after any rotation."""

    index: int
    width: float
    height: float
    rotation: int = 0  # the page's own /Rotate, in degrees

    def to_dict(self) -> dict:
        d = {"index": self.index, "width": round(self.width, 3), "height": round(self.height, 3)}
        if self.rotation:
            d["rotation"] = self.rotation
        return d


@dataclass
class PdfMeta:
    """What :func:`ingest_pdf` learned about a document.

    The file is closed again by the time this is returned.
    """

    path: Path
    pages: List[PageInfo] = field(default_factory=list)
    file_size_bytes: int = 0
    info: Dict[str, str] = field(default_factory=dict)

    @property
    def num_pages(self) -> int:
        return len(self.pages)

    def page(self, index: int) -> PageInfo:
        return self.pages[index]

    def rotated_pages(self) -> List[int]:
        """Indices of pages carrying a non-zero ``/Rotate``."""
        return [p.index for p in self.pages if p.rotation % 360]

    def check_start_page(self, start_page: int) -> None:
        """Raise :class:`IngestError` unless *start_page* is a page of the document."""
        if not 0 <= start_page < self.num_pages:
            raise IngestError(
                f"Start page {start_page} outside {self.path.name} "
                f"({self.num_pages} pages)"
            )

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "num_pages": self.num_pages,
            "file_size_bytes": self.file_size_bytes,
            "info": dict(self.info),
            "pages": [p.to_dict() for p in self.pages],
        }


def validate_pdf_path(pdf_path: Path) -> None:
    """Raise :class:`IngestError` unless *pdf_path* is a non-empty ``.pdf`` file."""
    if not pdf_path.exists():
        raise IngestError(f"File not found: {pdf_path}")
    if not pdf_path.is_file():
        raise IngestError(f"Not a file: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        raise IngestError(f"Not a PDF (suffix={pdf_path.suffix!r}): {pdf_path}")
    if pdf_path.stat().st_size == 0:
        raise IngestError(f"Empty file: {pdf_path}")


def _info_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        # Info strings may be raw PDFDocEncoding; NULs are padding
        return value.decode("utf-8", errors="replace").rstrip("\x00")
    return str(value)


def ingest_pdf(pdf_path: Path | str) -> PdfMeta:
    """Check a PDF and summarise its pages and document info.

    Raises
    ------
    IngestError
        When the path is not a readable PDF, or the document forbids text
        extraction (tables cannot be read from it).
    """
    pdf_path = Path(pdf_path)
    validate_pdf_path(pdf_path)

    try:
        with pdfplumber.open(pdf_path) as pdf:
            if getattr(pdf.doc, "is_extractable", True) is False:
                raise IngestError(
                    f"PDF is password-protected or encrypted "
                    f"(text extraction not permitted): {pdf_path}"
                )
            pages = [
                PageInfo(
                    index=i,
                    width=float(page.width),
                    height=float(page.height),
                    rotation=int(getattr(page, "rotation", 0) or 0),
                )
                for i, page in enumerate(pdf.pages)
            ]
            info = {str(k): _info_text(v) for k, v in (pdf.metadata or {}).items()}
    except IngestError:
        raise
    except Exception as exc:
        raise IngestError(f"Cannot open PDF: {exc}") from exc

    meta = PdfMeta(
        path=pdf_path.resolve(),
        pages=pages,
        file_size_bytes=pdf_path.stat().st_size,
        info=info,
    )
    rotated = meta.rotated_pages()
    log.info(
        "%s: %d pages, %d rotated",
        pdf_path.name,
        meta.num_pages,
        len(rotated),
    )
    return meta


def render_page_image(
    pdf_path: Path | str,
    page_num: int,
    resolution: int = 72,
) -> Image.Image:
    """Render page *page_num* as an RGB image.

    At the default 72 DPI one pixel is one display unit, so table
    coordinates can be drawn on the image unscaled.
    """
    with pdfplumber.open(pdf_path) as pdf:
        page = pdf.pages[page_num]
        img = page.to_image(resolution=resolution).original.copy()
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img
