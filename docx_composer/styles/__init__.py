"""
Styles: inline style normalization, colors and editor-wide defaults.
"""

from .colors import normalize_color
from .defaults import StyleDefaults
from .style_normalizer import LineSpacing, RunStyle, StyleNormalizer, parse_declarations

__all__ = [
    "normalize_color",
    "StyleDefaults",
    "LineSpacing",
    "RunStyle",
    "StyleNormalizer",
    "parse_declarations",
]
