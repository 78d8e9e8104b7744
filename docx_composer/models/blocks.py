"""Normalized block and run records produced by the tree walker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

BLOCK_PARAGRAPH = "paragraph"
BLOCK_HEADING = "heading"
BLOCK_QUOTE = "quote"
BLOCK_LIST_ITEM = "list_item"
BLOCK_TABLE = "table"
BLOCK_IMAGE = "image"
BLOCK_PAGE_BREAK = "page_break"

RUN_TEXT = "text"
RUN_LINE_BREAK = "line_break"
RUN_IMAGE = "image"

ALIGNMENTS = ("left", "center", "right", "justify")


@dataclass
class InlineRun:
    """Styled inline span: text, a line break or an inline image."""

    text: str = ""
    kind: str = RUN_TEXT
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    monospace: bool = False
    subscript: bool = False
    superscript: bool = False
    color: Optional[str] = None          # RRGGBB
    background: Optional[str] = None     # RRGGBB
    font_family: Optional[str] = None
    font_size: Optional[float] = None    # points
    link: Optional[str] = None
    # Image runs
    image_index: Optional[int] = None
    image_source: Optional[str] = None
    intrinsic_width: Optional[float] = None
    intrinsic_height: Optional[float] = None
    alt_text: str = ""

    @classmethod
    def line_break(cls) -> "InlineRun":
        return cls(kind=RUN_LINE_BREAK)

    @property
    def is_text(self) -> bool:
        return self.kind == RUN_TEXT

    @property
    def is_image(self) -> bool:
        return self.kind == RUN_IMAGE

    @property
    def is_line_break(self) -> bool:
        return self.kind == RUN_LINE_BREAK


@dataclass
class TableCell:
    blocks: List["Block"] = field(default_factory=list)
    header: bool = False
    background: Optional[str] = None
    col_span: int = 1


@dataclass
class Block:
    """Top-level structural unit ready for export."""

    kind: str
    runs: List[InlineRun] = field(default_factory=list)
    alignment: str = "left"
    line_spacing: Optional[int] = None   # 240ths of a line, or twips when exact
    line_rule: str = "auto"
    # Headings
    level: int = 0
    # List items
    ordered: bool = False
    checked: Optional[bool] = None
    ordinal: int = 0
    depth: int = 0
    # Tables
    rows: List[List[TableCell]] = field(default_factory=list)
    table_index: Optional[int] = None

    @property
    def column_count(self) -> int:
        return max((sum(cell.col_span for cell in row) for row in self.rows), default=0)

    def image_runs(self) -> List[InlineRun]:
        """All image runs of this block, including those nested in table cells."""
        found = [run for run in self.runs if run.is_image]
        for row in self.rows:
            for cell in row:
                for block in cell.blocks:
                    found.extend(block.image_runs())
        return found

    def get_text(self) -> str:
        return "".join(run.text if run.is_text else ("\n" if run.is_line_break else "") for run in self.runs)
