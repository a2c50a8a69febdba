from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Pattern, Tuple, Union

from .models import ColorLike, color_key


class ConfigValidationError(ValueError):
    """Raised when a TableDefinition field has an invalid value."""


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name}={value} must be > 0")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


def _check_quadrants(name: str, value: int) -> None:
    if value not in (0, 1, 2, 3):
        raise ConfigValidationError(f"{name}={value} must be one of 0, 1, 2, 3")


@dataclass(frozen=True)
class TableDefinition:
    """Layout of one lined table to be extracted."""

    name: str
    # Heading fill colour for each page of the table; the last entry is reused
    # for later pages.  Empty (or a None entry) means no heading colour.
    heading_colors: Tuple[Optional[ColorLike], ...] = ()
    # Regex marking the end of the table (matched against whole text rows).
    end_pattern: Optional[Union[str, Pattern[str]]] = None
    # Distance (display units) within which lines/positions are the same.
    tolerance: float = 1.0
    # Ignore glyphs printed twice with a small offset (simulated bold).
    suppress_duplicates: bool = True
    # Keep the spaces between a cell's left edge and its first glyph.
    leading_spaces: bool = False
    # Collapse runs of inferred spaces to a single space.
    reduce_spaces: bool = True
    # Drop output rows whose every cell is blank.
    remove_empty_rows: bool = False
    # Start this table on the page after the previous table.
    new_page: bool = False
    # Append a row wrapped across a page break onto the previous row.
    merge_wrapped_rows: bool = False
    # Separator between physical lines of text inside one cell.
    line_ending: str = "\n"
    # Extra CCW quarter turns for pages whose rotation metadata is wrong.
    extra_quadrant_rotation: int = 0
    # Zero-based first page; None continues from the previous table.
    start_page: Optional[int] = None
    # Filled rectangles thinner than this are treated as ruled lines.
    line_threshold: float = 3.0
    # Scale applied to the decoder's estimated space width.
    space_width_factor: float = 0.3

    _pattern: Optional[Pattern[str]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        _check_quadrants("extra_quadrant_rotation", self.extra_quadrant_rotation)
        _check_positive("tolerance", self.tolerance)
        _check_positive("line_threshold", self.line_threshold)
        _check_positive("space_width_factor", self.space_width_factor)
        if self.start_page is not None:
            _check_non_negative("start_page", self.start_page)
        if not isinstance(self.line_ending, str):
            raise ConfigValidationError(
                f"line_ending={self.line_ending!r} must be a string"
            )
        colors = self.heading_colors
        if colors is None:
            colors = ()
        elif isinstance(colors, (str, int)):
            colors = (colors,)
        object.__setattr__(self, "heading_colors", tuple(colors))
        for color in self.heading_colors:
            try:
                color_key(color)
            except (TypeError, ValueError) as exc:
                raise ConfigValidationError(
                    f"heading_colors entry {color!r} is not a colour: {exc}"
                ) from exc

        pattern = self.end_pattern
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as exc:
                raise ConfigValidationError(
                    f"end_pattern={self.end_pattern!r} is not a valid regex: {exc}"
                ) from exc
        object.__setattr__(self, "_pattern", pattern)

    @property
    def compiled_end_pattern(self) -> Optional[Pattern[str]]:
        return self._pattern

    def heading_color_for(self, page_offset: int) -> Optional[int]:
        """Heading colour key for the *page_offset*-th page of the table."""
        if not self.heading_colors:
            return None
        idx = min(max(page_offset, 0), len(self.heading_colors) - 1)
        return color_key(self.heading_colors[idx])

    def geometry_key(self) -> tuple:
        """Fields that change how a page is decoded into geometry."""
        return (
            self.tolerance,
            self.suppress_duplicates,
            self.extra_quadrant_rotation,
            self.line_threshold,
            self.space_width_factor,
        )

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict (inverse of :meth:`from_dict`)."""
        pattern = self._pattern.pattern if self._pattern is not None else None
        return {
            "name": self.name,
            "heading_colors": [
                None if c is None else f"#{color_key(c):06x}"
                for c in self.heading_colors
            ],
            "end_pattern": pattern,
            "tolerance": self.tolerance,
            "suppress_duplicates": self.suppress_duplicates,
            "leading_spaces": self.leading_spaces,
            "reduce_spaces": self.reduce_spaces,
            "remove_empty_rows": self.remove_empty_rows,
            "new_page": self.new_page,
            "merge_wrapped_rows": self.merge_wrapped_rows,
            "line_ending": self.line_ending,
            "extra_quadrant_rotation": self.extra_quadrant_rotation,
            "start_page": self.start_page,
            "line_threshold": self.line_threshold,
            "space_width_factor": self.space_width_factor,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "TableDefinition":
        """Build a definition from a dict, e.g. one entry of a JSON file.

        A single ``heading_color`` key is accepted as shorthand for a
        one-element ``heading_colors`` list.
        """
        d = dict(d)
        if "heading_color" in d:
            d.setdefault("heading_colors", [d.pop("heading_color")])
        colors = d.get("heading_colors") or []
        d["heading_colors"] = tuple(
            tuple(c) if isinstance(c, list) else c for c in colors
        )
        known = {name for name in cls.__dataclass_fields__ if not name.startswith("_")}
        unknown = set(d) - known
        if unknown:
            raise ConfigValidationError(
                f"Unknown table definition fields: {sorted(unknown)}"
            )
        return cls(**d)
