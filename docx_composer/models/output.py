"""
Output document model.

Hierarchical structure handed to the WordML writer:
Section -> Paragraph/Table -> Run/Image, all lengths in the target format's
native units (twips, half-points, points for image extents).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass
class OutputRun:
    text: str = ""
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    subscript: bool = False
    superscript: bool = False
    font: Optional[str] = None
    size_half_points: Optional[int] = None
    color: Optional[str] = None
    shading: Optional[str] = None
    style: Optional[str] = None
    line_break: bool = False
    page_break: bool = False


@dataclass
class OutputImage:
    data: bytes
    format_tag: str
    width_pt: float
    height_pt: float
    name: str = "image"
    description: str = ""


@dataclass
class OutputHyperlink:
    target: str
    runs: List[OutputRun] = field(default_factory=list)


InlineContent = Union[OutputRun, OutputImage, OutputHyperlink]


@dataclass
class OutputParagraph:
    content: List[InlineContent] = field(default_factory=list)
    style: Optional[str] = None
    alignment: Optional[str] = None
    spacing_before: Optional[int] = None
    spacing_after: Optional[int] = None
    line_spacing: Optional[int] = None
    line_rule: str = "auto"
    indent_left: Optional[int] = None
    hanging: Optional[int] = None

    def add(self, item: InlineContent) -> InlineContent:
        self.content.append(item)
        return item


@dataclass
class OutputCell:
    width: int
    children: List["BodyElement"] = field(default_factory=list)
    shading: Optional[str] = None
    grid_span: int = 1


@dataclass
class OutputTable:
    column_widths: List[int]
    rows: List[List[OutputCell]] = field(default_factory=list)
    cell_padding: int = 100
    header_rows: int = 0

    @property
    def total_width(self) -> int:
        return sum(self.column_widths)


BodyElement = Union[OutputParagraph, OutputTable]


@dataclass
class OutputSection:
    page_width: int
    page_height: int
    margins: Dict[str, int]
    children: List[BodyElement] = field(default_factory=list)


@dataclass
class OutputDocument:
    sections: List[OutputSection] = field(default_factory=list)
    title: str = ""
    default_font: str = "Arial"
    default_size_half_points: int = 21
    default_line_spacing: Optional[int] = None

    def images(self) -> List[OutputImage]:
        found: List[OutputImage] = []
        for section in self.sections:
            _collect_images(section.children, found)
        return found


def _collect_images(elements: List[BodyElement], found: List[OutputImage]) -> None:
    for element in elements:
        if isinstance(element, OutputParagraph):
            found.extend(item for item in element.content if isinstance(item, OutputImage))
        else:
            for row in element.rows:
                for cell in row:
                    _collect_images(cell.children, found)
