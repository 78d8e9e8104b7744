"""
Units converter for DOCX output.

Handles pixel, point, half-point, twip and EMU conversions used by both
pagination (CSS pixels measured on the editing surface) and export
(WordprocessingML native units).
"""

import math
from typing import Union

Number = Union[int, float]

DPI = 96
POINTS_PER_INCH = 72
TWIPS_PER_INCH = 1440
TWIPS_PER_POINT = 20
EMU_PER_POINT = 12700
EMU_PER_PIXEL = 914400 // DPI

PX_TO_PT = POINTS_PER_INCH / DPI            # 0.75
TWIPS_PER_PIXEL = TWIPS_PER_INCH // DPI     # 15

# WordprocessingML "auto" line spacing is expressed in 240ths of a line
LINE_SPACING_UNIT = 240


def round_half_up(value: Number) -> int:
    """Round to nearest integer with halves going up (x.5 -> x+1)."""
    return int(math.floor(value + 0.5))


def _check(value: Number, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{label} value must be a number")
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"{label} value must be finite")


def px_to_pt(px: Number) -> float:
    """Convert CSS pixels to points (1px = 0.75pt at 96 DPI)."""
    _check(px, "Pixel")
    return px * PX_TO_PT


def pt_to_px(pt: Number) -> float:
    """Convert points to CSS pixels."""
    _check(pt, "Point")
    return pt / PX_TO_PT


def pt_to_half_points(pt: Number) -> int:
    """Convert points to half-points, the unit of ``w:sz``."""
    _check(pt, "Point")
    return round_half_up(pt * 2)


def px_to_twips(px: Number) -> int:
    """Convert CSS pixels to twips (1px = 15 twips)."""
    _check(px, "Pixel")
    return round_half_up(px * TWIPS_PER_PIXEL)


def twips_to_px(twips: Number) -> float:
    """Convert twips to CSS pixels."""
    _check(twips, "TWIP")
    return twips / TWIPS_PER_PIXEL


def pt_to_twips(pt: Number) -> int:
    """Convert points to twips."""
    _check(pt, "Point")
    return round_half_up(pt * TWIPS_PER_POINT)


def inches_to_twips(inches: Number) -> int:
    """Convert inches to twips."""
    _check(inches, "Inch")
    return round_half_up(inches * TWIPS_PER_INCH)


def pt_to_emu(pt: Number) -> int:
    """Convert points to EMU, the unit of DrawingML extents."""
    _check(pt, "Point")
    return round_half_up(pt * EMU_PER_POINT)


def px_to_emu(px: Number) -> int:
    """Convert CSS pixels to EMU."""
    _check(px, "Pixel")
    return round_half_up(px * EMU_PER_PIXEL)
