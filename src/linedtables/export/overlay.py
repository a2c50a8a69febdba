from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..extract import PageExtraction

# RGBA colours per element type; override any of them via ``colors``
DEFAULT_COLORS: Dict[str, Tuple[int, int, int, int]] = {
    "bounds": (255, 0, 0, 255),
    "cells": (0, 0, 255, 200),
    "heading": (0, 160, 0, 60),
    "labels": (0, 0, 0, 255),
}


def _scale_point(x: float, y: float, scale: float) -> Tuple[float, float]:
    """Scale (x, y) by *scale* for overlay rendering."""
    return (x * scale, y * scale)


def _label_font(scale: float) -> ImageFont.ImageFont:
    font_size = max(8, int(9 * scale))
    try:
        return ImageFont.truetype("arial.ttf", font_size)
    except (OSError, IOError):
        return ImageFont.load_default()


def draw_table_overlay(
    image: Image.Image,
    pages: Iterable[PageExtraction],
    scale: float = 1.0,
    colors: Optional[Dict[str, tuple]] = None,
    out_path: Path | None = None,
    label_cells: bool = True,
) -> Image.Image:
    """Draw table bounds and built cells on a rendered page image.

    Args:
        image: Rendered page (e.g. from :func:`render_page_image`)
        pages: Page records of the tables drawn on this page
        scale: Pixels per display unit (``resolution / 72``)
        colors: Overrides for :data:`DEFAULT_COLORS`; ``None`` hides a layer
        out_path: Optional path to save the overlay PNG to
        label_cells: Number each cell in reading order

    Returns the overlay as a new RGBA image; *image* is not modified.
    """
    palette = dict(DEFAULT_COLORS)
    if colors:
        palette.update(colors)

    img = image.convert("RGBA")
    draw = ImageDraw.Draw(img, "RGBA")
    font = _label_font(scale) if label_cells else None

    for page in pages:
        for i, cell in enumerate(page.cells):
            x0, y0 = _scale_point(cell.min_x, cell.min_y, scale)
            x1, y1 = _scale_point(cell.max_x, cell.max_y, scale)
            if palette.get("cells") is not None:
                draw.rectangle([x0, y0, x1, y1], outline=palette["cells"], width=1)
            if font is not None and palette.get("labels") is not None:
                draw.text((x0 + 2, y0 + 1), str(i), fill=palette["labels"], font=font)

        b = page.bounds
        x0, y0 = _scale_point(b.min_x, b.min_y, scale)
        x1, y1 = _scale_point(b.max_x, b.max_y, scale)
        if page.heading_color is not None and palette.get("heading") is not None:
            # Strip just above the table top marks a heading-bounded table
            draw.rectangle([x0, max(0, y0 - 4), x1, y0], fill=palette["heading"])
        if palette.get("bounds") is not None:
            draw.rectangle([x0, y0, x1, y1], outline=palette["bounds"], width=2)

    if out_path is not None:
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        img.save(out_path)
    return img
