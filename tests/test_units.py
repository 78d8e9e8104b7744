"""
Tests for unit conversions.
"""

import math

import pytest

from docx_composer.utils.units import (
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


class TestConversions:
    """Pixel, point, twip, half-point and EMU conversions."""

    def test_px_to_pt(self):
        assert px_to_pt(96) == 72
        assert px_to_pt(14) == 10.5

    def test_pt_to_px(self):
        assert pt_to_px(72) == 96

    def test_px_to_twips(self):
        assert px_to_twips(96) == 1440
        assert px_to_twips(624) == 9360

    def test_twips_to_px(self):
        assert twips_to_px(1440) == 96

    def test_half_points_round_half_up(self):
        assert pt_to_half_points(10.5) == 21
        assert pt_to_half_points(10.25) == 21
        assert pt_to_half_points(12) == 24

    def test_pt_to_twips(self):
        assert pt_to_twips(1) == 20
        assert pt_to_twips(10.5) == 210

    def test_inches_to_twips(self):
        assert inches_to_twips(6.5) == 9360

    def test_emu(self):
        assert pt_to_emu(1) == 12700
        assert px_to_emu(96) == 914400

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    @pytest.mark.parametrize("points", range(0, 200))
    def test_point_pixel_round_trip(self, points):
        """Converting pt -> px -> pt stays within one unit of rounding."""
        assert round(px_to_pt(pt_to_px(points))) == points

    @pytest.mark.parametrize("value", ["12", None, True, math.nan, math.inf])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(ValueError):
            px_to_pt(value)
