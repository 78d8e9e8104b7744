"""
Utility helpers: unit conversions and logging configuration.
"""

from .logger import configure_logging, get_logger, set_log_level
from .units import (
    DPI,
    EMU_PER_POINT,
    LINE_SPACING_UNIT,
    TWIPS_PER_PIXEL,
    inches_to_twips,
    pt_to_emu,
    pt_to_half_points,
    pt_to_px,
    pt_to_twips,
    px_to_emu,
    px_to_pt,
    px_to_twips,
    round_half_up,
    twips_to_px,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "set_log_level",
    "DPI",
    "EMU_PER_POINT",
    "LINE_SPACING_UNIT",
    "TWIPS_PER_PIXEL",
    "inches_to_twips",
    "pt_to_emu",
    "pt_to_half_points",
    "pt_to_px",
    "pt_to_twips",
    "px_to_emu",
    "px_to_pt",
    "px_to_twips",
    "round_half_up",
    "twips_to_px",
]
