"""Page setup, margin presets and tunable options for pagination and export."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping

from .exceptions import ConfigurationError
from .utils.units import px_to_twips

# US Letter at 96 DPI
DEFAULT_PAGE_WIDTH_PX = 816
DEFAULT_PAGE_HEIGHT_PX = 1056


@dataclass(slots=True)
class Margins:
    """Page margins in CSS pixels."""

    top: float = 96.0
    right: float = 96.0
    bottom: float = 96.0
    left: float = 96.0

    def __post_init__(self):
        self.top = max(0.0, float(self.top))
        self.right = max(0.0, float(self.right))
        self.bottom = max(0.0, float(self.bottom))
        self.left = max(0.0, float(self.left))

    @classmethod
    def uniform(cls, value: float) -> "Margins":
        return cls(value, value, value, value)

    @classmethod
    def preset(cls, name: str) -> "Margins":
        """Return the margins of a named preset (normal, narrow, moderate, wide, none)."""
        try:
            top, right, bottom, left = MARGIN_PRESETS[name.lower()]
        except (KeyError, AttributeError):
            raise ConfigurationError(
                f"Unknown margin preset: {name!r}",
                details=f"expected one of {', '.join(sorted(MARGIN_PRESETS))}",
            ) from None
        return cls(top=top, right=right, bottom=bottom, left=left)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Margins":
        try:
            return cls(**{key: float(data[key]) for key in ("top", "right", "bottom", "left") if key in data})
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Invalid margins", details=str(exc)) from exc

    def to_twips(self) -> Dict[str, int]:
        return {
            "top": px_to_twips(self.top),
            "right": px_to_twips(self.right),
            "bottom": px_to_twips(self.bottom),
            "left": px_to_twips(self.left),
        }


MARGIN_PRESETS = {
    "normal": (96, 96, 96, 96),
    "narrow": (36, 36, 36, 36),
    "moderate": (96, 72, 96, 72),
    "wide": (96, 144, 96, 144),
    "none": (0, 0, 0, 0),
}


@dataclass(slots=True)
class PageSetup:
    """Printable page geometry of the editing surface."""

    width_px: float = DEFAULT_PAGE_WIDTH_PX
    height_px: float = DEFAULT_PAGE_HEIGHT_PX
    margins: Margins = field(default_factory=Margins)

    @property
    def available_height_px(self) -> float:
        return max(0.0, self.height_px - self.margins.top - self.margins.bottom)

    @property
    def available_width_px(self) -> float:
        return max(0.0, self.width_px - self.margins.left - self.margins.right)

    @property
    def width_twips(self) -> int:
        return px_to_twips(self.width_px)

    @property
    def height_twips(self) -> int:
        return px_to_twips(self.height_px)

    @property
    def content_width_twips(self) -> int:
        return px_to_twips(self.available_width_px)


def _options_from_dict(cls, data: Mapping[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} keys",
            details=", ".join(sorted(unknown)),
        )
    return replace(cls(), **dict(data))


@dataclass(slots=True)
class ExportOptions:
    """Tunables of the document export engine."""

    max_image_width_pt: float = 700.0
    image_boost: float = 1.1
    fallback_image_width_px: int = 400
    fallback_image_height_px: int = 300
    spacing_before_twips: int = 120
    spacing_after_twips: int = 120
    cell_padding_twips: int = 100
    quote_indent_twips: int = 720
    list_indent_twips: int = 360
    fetch_timeout: float = 30.0
    filename: str = "document.docx"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExportOptions":
        return _options_from_dict(cls, data)


@dataclass(slots=True)
class PaginationOptions:
    """Tunables of the pagination engine."""

    safety_limit: int = 20
    settle_delay: float = 0.05

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PaginationOptions":
        return _options_from_dict(cls, data)
