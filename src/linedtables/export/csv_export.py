"""Export module: write extracted tables as CSV and JSON.

Usage::

    from linedtables.export import export_tables_csv, export_tables_json
    paths = export_tables_csv(tables, definitions, out_dir, pdf_stem)
    export_tables_json(tables, definitions, out_dir / f"{pdf_stem}_tables.json")
"""

from __future__ import annotations

import csv
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ..config import TableDefinition

Rows = Sequence[Sequence[str]]


def _safe_name(name: str) -> str:
    """Table name reduced to characters safe in a file name."""
    safe = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_")
    return safe or "table"


def export_table_csv(rows: Rows, out_path: Path) -> Path:
    """Write one table's rows to *out_path* (overwriting it)."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerows(rows)
    return out_path


def export_tables_csv(
    tables: Sequence[Rows],
    definitions: Sequence[TableDefinition],
    out_dir: Path,
    stem: str,
) -> List[Path]:
    """Write each table to ``<out_dir>/<stem>_<nn>_<name>.csv``.

    Empty tables still get a (zero-row) file so the output lines up with
    the definitions.
    """
    if len(tables) != len(definitions):
        raise ValueError(
            f"{len(tables)} tables for {len(definitions)} table definitions"
        )
    out_dir = Path(out_dir)
    paths = []
    for i, (rows, definition) in enumerate(zip(tables, definitions)):
        name = f"{stem}_{i:02d}_{_safe_name(definition.name)}.csv"
        paths.append(export_table_csv(rows, out_dir / name))
    return paths


def table_to_dict(definition: TableDefinition, rows: Rows) -> Dict[str, Any]:
    """One table and the definition it was extracted with, JSON-ready."""
    return {
        "name": definition.name,
        "definition": definition.to_dict(),
        "row_count": len(rows),
        "column_count": max((len(r) for r in rows), default=0),
        "rows": [list(r) for r in rows],
    }


def export_tables_json(
    tables: Sequence[Rows],
    definitions: Sequence[TableDefinition],
    out_path: Path,
) -> Path:
    """Write all tables to a single JSON document."""
    if len(tables) != len(definitions):
        raise ValueError(
            f"{len(tables)} tables for {len(definitions)} table definitions"
        )
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "tables": [table_to_dict(d, rows) for rows, d in zip(tables, definitions)]
    }
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    return out_path
