"""Editor-wide style defaults used as run fallback."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .style_normalizer import StyleNormalizer


@dataclass(frozen=True, slots=True)
class StyleDefaults:
    """
    Font snapshot of the editing surface.

    The surface renders 14px Arial with a 1.5 line height, which is 10.5pt
    and 360 line units in the output format.
    """

    font_family: str = "Arial"
    font_size_pt: float = 10.5
    line_spacing: Optional[int] = 360

    @classmethod
    def from_css(cls, font_family: Optional[str] = None, font_size: Optional[str] = None,
                 line_height: Optional[str] = None) -> "StyleDefaults":
        """Capture defaults from the surface's computed CSS values."""
        normalizer = StyleNormalizer()
        base = cls()
        family = normalizer.font_family(font_family) if font_family else None
        size = normalizer.font_size(font_size) if font_size else None
        spacing = normalizer.line_height(line_height) if line_height else None
        return cls(
            font_family=family or base.font_family,
            font_size_pt=size or base.font_size_pt,
            line_spacing=spacing.value if spacing and spacing.rule == "auto" else base.line_spacing,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StyleDefaults":
        return cls.from_css(
            font_family=data.get("fontFamily") or data.get("font_family"),
            font_size=data.get("fontSize") or data.get("font_size"),
            line_height=data.get("lineHeight") or data.get("line_height"),
        )
