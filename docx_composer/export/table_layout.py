"""
Table layout resolver.

Turns the column widths measured on the editing surface into a fixed grid in
twips. Measured widths are scaled down proportionally when they exceed the
page content width. Unmeasured tables get a heuristic grid.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from ..utils.units import px_to_twips
from .geometry import RenderedGeometry

logger = logging.getLogger(__name__)

# 6.5in of content on US Letter with 1in margins
DEFAULT_CONTENT_WIDTH_TWIPS = 9360

# Three-column tables without measurement: two fixed columns, the rest to the last
THREE_COLUMN_FIXED_TWIPS = 3600
MIN_REMAINDER_TWIPS = 720


@dataclass(frozen=True, slots=True)
class ResolvedTableGeometry:
    column_widths_twips: List[int]
    total_width_twips: int


class TableLayoutResolver:
    """Resolves grid widths for tables by encounter order."""

    def __init__(self, geometry: Optional[RenderedGeometry] = None,
                 content_width_twips: int = DEFAULT_CONTENT_WIDTH_TWIPS):
        self.geometry = geometry or RenderedGeometry()
        self.content_width_twips = max(1, int(content_width_twips))

    def resolve(self, index: Optional[int]) -> Optional[ResolvedTableGeometry]:
        """Measured grid of table ``index``, or None when it was not measured."""
        widths_px = self.geometry.table_columns(index)
        if not widths_px:
            return None
        if any(width <= 0 for width in widths_px):
            logger.debug(f"Table {index}: non-positive measured width, ignoring measurement")
            return None

        widths = [px_to_twips(width) for width in widths_px]
        total = sum(widths)
        if total > self.content_width_twips:
            scale = self.content_width_twips / total
            widths = [max(1, math.floor(width * scale)) for width in widths]
            total = sum(widths)
        return ResolvedTableGeometry(widths, total)

    def fallback(self, column_count: int) -> ResolvedTableGeometry:
        """Heuristic grid for a table that was not measured."""
        count = max(1, column_count)
        cap = self.content_width_twips

        if count == 3:
            remainder = cap - 2 * THREE_COLUMN_FIXED_TWIPS
            if remainder >= MIN_REMAINDER_TWIPS:
                widths = [THREE_COLUMN_FIXED_TWIPS, THREE_COLUMN_FIXED_TWIPS, remainder]
                return ResolvedTableGeometry(widths, cap)

        width = cap // count
        widths = [width] * count
        return ResolvedTableGeometry(widths, sum(widths))

    def resolve_or_fallback(self, index: Optional[int], column_count: int) -> ResolvedTableGeometry:
        resolved = self.resolve(index)
        if resolved is not None and len(resolved.column_widths_twips) == column_count:
            return resolved
        if resolved is not None:
            logger.debug(
                f"Table {index}: measured {len(resolved.column_widths_twips)} columns, "
                f"expected {column_count}; using fallback grid"
            )
        return self.fallback(column_count)
