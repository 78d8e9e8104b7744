"""
Style normalizer.

Reads the raw inline style declarations the editor stores on text and block
nodes (``"color: #333; font-size: 14px"``) and maps the properties the export
cares about to typed, output-ready values.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from ..utils.units import LINE_SPACING_UNIT, pt_to_twips, px_to_pt, round_half_up
from .colors import normalize_color

logger = logging.getLogger(__name__)

_LENGTH_RE = re.compile(r'^(\d+(?:\.\d+)?|\.\d+)\s*(pt|px)?$', re.IGNORECASE)
_PERCENT_RE = re.compile(r'^(\d+(?:\.\d+)?|\.\d+)\s*%$')


@dataclass(frozen=True, slots=True)
class LineSpacing:
    """Line spacing in output units: 240ths of a line (auto) or twips (exact)."""

    value: int
    rule: str = "auto"


@dataclass(frozen=True, slots=True)
class RunStyle:
    color: Optional[str] = None
    background: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[float] = None


def parse_declarations(style: Optional[str]) -> Dict[str, str]:
    """
    Split a ``property: value`` list into a dict keyed by lower-case property.

    Declarations without a colon, or with an empty property or value, are
    ignored. Later declarations win.
    """
    declarations: Dict[str, str] = {}
    if not style or not isinstance(style, str):
        return declarations
    for chunk in style.split(';'):
        if ':' not in chunk:
            if chunk.strip():
                logger.debug(f"Ignoring malformed style declaration: {chunk.strip()!r}")
            continue
        prop, value = chunk.split(':', 1)
        prop = prop.strip().lower()
        value = value.strip()
        if value.lower().endswith('!important'):
            value = value[:-len('!important')].strip()
        if prop and value:
            declarations[prop] = value
    return declarations


class StyleNormalizer:
    """Maps CSS-like property strings to normalized typed values."""

    def font_family(self, value: Optional[str]) -> Optional[str]:
        """First comma-separated alternative, quotes stripped."""
        if not value:
            return None
        first = value.split(',')[0].strip().strip('"\'').strip()
        return first or None

    def font_size(self, value: Optional[str]) -> Optional[float]:
        """Font size in points from a ``pt`` or ``px`` length."""
        if not value:
            return None
        match = _LENGTH_RE.match(value.strip())
        if not match or not match.group(2):
            return None
        number = float(match.group(1))
        if number <= 0:
            return None
        return px_to_pt(number) if match.group(2).lower() == 'px' else number

    def line_height(self, value: Optional[str]) -> Optional[LineSpacing]:
        """
        Line spacing from a CSS ``line-height``.

        Unitless multipliers and percentages become proportional spacing
        (x240 line units); ``pt``/``px`` lengths become exact spacing in twips.
        """
        if not value:
            return None
        value = value.strip().lower()
        match = _PERCENT_RE.match(value)
        if match:
            factor = float(match.group(1)) / 100
            return LineSpacing(round_half_up(factor * LINE_SPACING_UNIT)) if factor > 0 else None
        match = _LENGTH_RE.match(value)
        if not match:
            return None
        number = float(match.group(1))
        if number <= 0:
            return None
        unit = (match.group(2) or '').lower()
        if not unit:
            return LineSpacing(round_half_up(number * LINE_SPACING_UNIT))
        points = px_to_pt(number) if unit == 'px' else number
        return LineSpacing(pt_to_twips(points), rule="exact")

    def run_style(self, style: Optional[str]) -> RunStyle:
        declarations = parse_declarations(style)
        return RunStyle(
            color=normalize_color(declarations.get('color')),
            background=normalize_color(
                declarations.get('background-color') or declarations.get('background')
            ),
            font_family=self.font_family(declarations.get('font-family')),
            font_size=self.font_size(declarations.get('font-size')),
        )

    def block_line_spacing(self, style: Optional[str]) -> Optional[LineSpacing]:
        return self.line_height(parse_declarations(style).get('line-height'))

    def block_alignment(self, style: Optional[str]) -> Optional[str]:
        align = parse_declarations(style).get('text-align', '').lower()
        if align in ('left', 'center', 'right', 'justify'):
            return align
        if align in ('start', 'end'):
            return 'left' if align == 'start' else 'right'
        return None
