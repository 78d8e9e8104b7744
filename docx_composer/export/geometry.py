"""
Rendered geometry snapshot.

Image boxes and table column widths measured on the editing surface, plus the
editor-wide style defaults. Captured once when an export starts; later edits
or pagination passes do not affect an export already running.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ..exceptions import ConfigurationError
from ..media.image_resolver import ImageBox
from ..styles.defaults import StyleDefaults

logger = logging.getLogger(__name__)


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass
class RenderedGeometry:
    """Measurement snapshot indexed by image and table encounter order."""

    images: List[Optional[ImageBox]] = field(default_factory=list)
    tables: List[List[float]] = field(default_factory=list)
    defaults: StyleDefaults = field(default_factory=StyleDefaults)

    def image_box(self, index: Optional[int]) -> Optional[ImageBox]:
        if index is None or not 0 <= index < len(self.images):
            return None
        box = self.images[index]
        return box if box is not None and box.is_usable else None

    def table_columns(self, index: Optional[int]) -> Optional[List[float]]:
        if index is None or not 0 <= index < len(self.tables):
            return None
        widths = self.tables[index]
        return list(widths) if widths else None

    def snapshot(self) -> "RenderedGeometry":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RenderedGeometry":
        """
        Build from a JSON-like mapping::

            {"images": [{"width": 320, "height": 200}, null],
             "tables": [[120.5, 240, 80]],
             "defaults": {"fontFamily": "Arial", "fontSize": "14px"}}
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("Geometry must be a mapping", details=type(data).__name__)

        images: List[Optional[ImageBox]] = []
        for entry in data.get("images") or []:
            if not isinstance(entry, Mapping):
                images.append(None)
                continue
            width, height = _number(entry.get("width")), _number(entry.get("height"))
            images.append(ImageBox(width, height) if width is not None and height is not None else None)

        tables: List[List[float]] = []
        for entry in data.get("tables") or []:
            if not isinstance(entry, list):
                raise ConfigurationError("Table geometry must be a list of widths", details=repr(entry))
            widths = [_number(value) for value in entry]
            if any(width is None for width in widths):
                raise ConfigurationError("Table widths must be numbers", details=repr(entry))
            tables.append(widths)

        defaults_data = data.get("defaults")
        defaults = StyleDefaults.from_dict(defaults_data) if isinstance(defaults_data, Mapping) else StyleDefaults()

        logger.debug(f"Loaded geometry: {len(images)} images, {len(tables)} tables")
        return cls(images=images, tables=tables, defaults=defaults)
