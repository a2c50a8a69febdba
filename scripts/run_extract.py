"""Extract lined tables from a PDF using a JSON file of table definitions.

The definitions file holds a list of objects (or ``{"tables": [...]}``)
whose keys are :class:`linedtables.TableDefinition` fields, e.g.::

    [
      {"name": "aerodromes", "heading_colors": ["#c0c0c0"], "end_pattern": "\\*\\*\\*"},
      {"name": "runways", "heading_color": "#c0c0c0", "new_page": true}
    ]

The PDF is checked first (readable, start page in range).  Outputs one CSV
per table, the tables as JSON, and the extraction states together with the
document summary into ``--out``.  With ``--overlay`` it also writes a PNG per
page showing the table bounds and cells.
"""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import argparse
import json
import logging
from collections import defaultdict
from typing import Dict, List

from linedtables import (
    ConfigValidationError,
    IngestError,
    PdfPlumberDecoder,
    TableDefinition,
    TableExtractor,
    draw_table_overlay,
    export_tables_csv,
    export_tables_json,
    ingest_pdf,
    render_page_image,
)
from linedtables.extract import ExtractionState, PageExtraction

log = logging.getLogger("linedtables.run_extract")


def load_definitions(path: Path) -> List[TableDefinition]:
    """Read table definitions from a JSON file."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("tables", [])
    return [TableDefinition.from_dict(d) for d in data]


def write_overlays(
    pdf: Path,
    states: List[ExtractionState],
    out_dir: Path,
    resolution: int,
) -> List[Path]:
    """Render each page that holds part of a table with its cells drawn on."""
    by_page: Dict[int, List[PageExtraction]] = defaultdict(list)
    for state in states:
        if state.definition.extra_quadrant_rotation:
            # Cell coordinates are in the turned page; the render is not
            log.info("No overlay for rotated table %r", state.definition.name)
            continue
        for page in state.pages:
            by_page[page.page].append(page)

    scale = resolution / 72.0
    paths = []
    for page_num in sorted(by_page):
        image = render_page_image(pdf, page_num, resolution=resolution)
        out_path = out_dir / f"{pdf.stem}_page_{page_num:03d}_tables.png"
        draw_table_overlay(image, by_page[page_num], scale=scale, out_path=out_path)
        paths.append(out_path)
    return paths


def run_extract(
    pdf: Path,
    definitions_path: Path,
    out_dir: Path,
    start_page: int = 0,
    overlay: bool = False,
    resolution: int = 100,
) -> int:
    definitions = load_definitions(definitions_path)
    meta = ingest_pdf(pdf)
    meta.check_start_page(start_page)
    rotated = meta.rotated_pages()
    if rotated:
        log.info("Pages with /Rotate set: %s", rotated)
    out_dir.mkdir(parents=True, exist_ok=True)

    with PdfPlumberDecoder(pdf) as decoder:
        extractor = TableExtractor(decoder)
        states = extractor.extract_table_states(definitions, start_page)

    tables = [s.rows for s in states]
    csv_paths = export_tables_csv(tables, definitions, out_dir, pdf.stem)
    export_tables_json(tables, definitions, out_dir / f"{pdf.stem}_tables.json")
    summary = {"pdf": meta.to_dict(), "tables": [s.to_dict() for s in states]}
    with open(out_dir / f"{pdf.stem}_states.json", "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)

    print(f"{pdf.name}: {meta.num_pages} pages from page {start_page}")
    for state, path in zip(states, csv_paths):
        print(f"{state.definition.name}: {len(state.rows)} rows -> {path.name}")

    if overlay:
        for path in write_overlays(pdf, states, out_dir, resolution):
            print(f"overlay -> {path.name}")

    return 0 if all(tables) else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract lined tables from a PDF")
    parser.add_argument("pdf", type=Path, help="Path to PDF")
    parser.add_argument(
        "definitions", type=Path, help="JSON file of table definitions"
    )
    parser.add_argument(
        "--start-page", type=int, default=0, help="Zero-based first page"
    )
    parser.add_argument(
        "--out", type=Path, default=Path("out"), help="Output directory"
    )
    parser.add_argument(
        "--overlay",
        action="store_true",
        default=False,
        help="Also render a PNG per page with table bounds and cells drawn on",
    )
    parser.add_argument(
        "--resolution", type=int, default=100, help="Overlay render DPI"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        status = run_extract(
            pdf=args.pdf,
            definitions_path=args.definitions,
            out_dir=args.out,
            start_page=args.start_page,
            overlay=args.overlay,
            resolution=args.resolution,
        )
    except (ConfigValidationError, IngestError) as exc:
        log.error("%s", exc)
        sys.exit(2)
    sys.exit(status)


if __name__ == "__main__":
    main()
