"""
Rich-document tree walker.

Flattens the editor's nested node tree into an ordered list of normalized
``Block`` records carrying styled ``InlineRun`` sequences. Inline containers
(links and any wrapper the walker does not know) are flattened into their
parent's run sequence, with the hyperlink target propagated downward.

Images and tables are numbered in encounter order. Those indexes are what
the export engine uses to correlate a run or block with the geometry measured
independently on the rendered surface.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..models.blocks import (
    ALIGNMENTS,
    BLOCK_HEADING,
    BLOCK_IMAGE,
    BLOCK_LIST_ITEM,
    BLOCK_PAGE_BREAK,
    BLOCK_PARAGRAPH,
    BLOCK_QUOTE,
    BLOCK_TABLE,
    RUN_IMAGE,
    Block,
    InlineRun,
    TableCell,
)
from ..models.editor import (
    FORMAT_BOLD,
    FORMAT_CODE,
    FORMAT_ITALIC,
    FORMAT_STRIKETHROUGH,
    FORMAT_SUBSCRIPT,
    FORMAT_SUPERSCRIPT,
    FORMAT_UNDERLINE,
    EditorNode,
    RichDocument,
)
from ..styles.colors import normalize_color
from ..styles.defaults import StyleDefaults
from ..styles.style_normalizer import StyleNormalizer

logger = logging.getLogger(__name__)

LINK_TYPES = ("link", "autolink")


def _positive_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and value > 0:
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip().removesuffix("px"))
        except ValueError:
            return None
        return number if number > 0 else None
    return None


class TreeWalker:
    """Walks a ``RichDocument`` into export-ready blocks."""

    def __init__(self, defaults: Optional[StyleDefaults] = None,
                 normalizer: Optional[StyleNormalizer] = None):
        self.defaults = defaults or StyleDefaults()
        self.normalizer = normalizer or StyleNormalizer()
        self._image_count = 0
        self._table_count = 0

    @property
    def image_count(self) -> int:
        return self._image_count

    @property
    def table_count(self) -> int:
        return self._table_count

    def extract_blocks(self, document: RichDocument) -> List[Block]:
        """Walk the whole document. Image and table indexes restart at zero."""
        self._image_count = 0
        self._table_count = 0
        blocks: List[Block] = []
        for node in document:
            blocks.extend(self._walk_block(node))
        logger.debug(
            f"Extracted {len(blocks)} blocks "
            f"({self._image_count} images, {self._table_count} tables)"
        )
        return blocks

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def _walk_block(self, node: EditorNode) -> List[Block]:
        node_type = node.type

        if node_type == "page-break":
            return [Block(kind=BLOCK_PAGE_BREAK)]
        if node_type == "paragraph":
            return [self._paragraph(node)]
        if node_type == "heading":
            block = self._new_block(BLOCK_HEADING, node, inherit_defaults=False)
            block.level = self._heading_level(node.get("tag"))
            return [block]
        if node_type == "quote":
            return [self._new_block(BLOCK_QUOTE, node)]
        if node_type == "list":
            return self._walk_list(node, depth=0)
        if node_type == "table":
            return [self._table(node)]
        if node_type in ("text", "linebreak", "image", "tab") or node_type in LINK_TYPES:
            # Inline content at block level: wrap it in a paragraph
            runs = self._collect_runs([node], link=None)
            if len(runs) == 1 and runs[0].kind == RUN_IMAGE:
                return [Block(kind=BLOCK_IMAGE, runs=runs)]
            return [Block(kind=BLOCK_PARAGRAPH, runs=runs, line_spacing=self.defaults.line_spacing)]

        runs = self._collect_runs(node.children, link=None)
        if not runs:
            logger.debug(f"Skipping '{node_type}' node without inline content")
            return []
        return [self._new_block(BLOCK_PARAGRAPH, node, runs=runs)]

    def _new_block(self, kind: str, node: EditorNode, runs: Optional[List[InlineRun]] = None,
                   inherit_defaults: bool = True) -> Block:
        style = node.get("style")
        spacing = self.normalizer.block_line_spacing(style)
        block = Block(
            kind=kind,
            runs=runs if runs is not None else self._collect_runs(node.children, None, inherit_defaults),
            alignment=self._alignment(node),
        )
        if spacing is not None:
            block.line_spacing = spacing.value
            block.line_rule = spacing.rule
        else:
            block.line_spacing = self.defaults.line_spacing
        return block

    def _paragraph(self, node: EditorNode) -> Block:
        block = self._new_block(BLOCK_PARAGRAPH, node)
        if len(block.runs) == 1 and block.runs[0].kind == RUN_IMAGE:
            block.kind = BLOCK_IMAGE
        return block

    def _alignment(self, node: EditorNode) -> str:
        fmt = node.get("format")
        if isinstance(fmt, str) and fmt in ALIGNMENTS:
            return fmt
        if fmt == "start":
            return "left"
        if fmt == "end":
            return "right"
        return self.normalizer.block_alignment(node.get("style")) or "left"

    @staticmethod
    def _heading_level(tag) -> int:
        if isinstance(tag, str) and len(tag) == 2 and tag[0].lower() == "h" and tag[1].isdigit():
            return min(6, max(1, int(tag[1])))
        return 1

    def _walk_list(self, node: EditorNode, depth: int) -> List[Block]:
        list_type = node.get("listType", "bullet")
        ordered = list_type == "number"
        start = node.get("start", 1)
        ordinal = start if isinstance(start, int) and not isinstance(start, bool) else 1

        blocks: List[Block] = []
        for item in node.children:
            if item.type != "listitem":
                blocks.extend(self._walk_block(item))
                continue

            nested = [child for child in item.children if child.type == "list"]
            inline = [child for child in item.children if child.type != "list"]
            if inline or not nested:
                block = self._new_block(BLOCK_LIST_ITEM, item, runs=self._collect_runs(inline, link=None))
                block.ordered = ordered
                block.ordinal = ordinal
                block.depth = depth
                if list_type == "check":
                    block.checked = bool(item.get("checked", False))
                blocks.append(block)
                ordinal += 1
            for child in nested:
                blocks.extend(self._walk_list(child, depth + 1))
        return blocks

    def _table(self, node: EditorNode) -> Block:
        block = Block(kind=BLOCK_TABLE, table_index=self._table_count)
        self._table_count += 1

        for row in node.children:
            if row.type != "tablerow":
                continue
            cells: List[TableCell] = []
            for cell in row.children:
                if cell.type != "tablecell":
                    continue
                cell_blocks: List[Block] = []
                for child in cell.children:
                    cell_blocks.extend(self._walk_block(child))
                col_span = cell.get("colSpan", 1)
                cells.append(TableCell(
                    blocks=cell_blocks,
                    header=bool(cell.get("headerState", 0)),
                    background=normalize_color(cell.get("backgroundColor")),
                    col_span=col_span if isinstance(col_span, int) and col_span > 0 else 1,
                ))
            block.rows.append(cells)
        return block

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------
    def _collect_runs(self, nodes: Sequence[EditorNode], link: Optional[str],
                      inherit_defaults: bool = True) -> List[InlineRun]:
        runs: List[InlineRun] = []
        for node in nodes:
            if node.type == "text":
                if node.text:
                    runs.append(self._text_run(node, node.text, link, inherit_defaults))
            elif node.type == "tab":
                runs.append(self._text_run(node, "\t", link, inherit_defaults))
            elif node.type == "linebreak":
                runs.append(InlineRun.line_break())
            elif node.type == "image":
                runs.append(self._image_run(node, link))
            elif node.type in LINK_TYPES:
                url = node.get("url")
                target = url if isinstance(url, str) and url else link
                runs.extend(self._collect_runs(node.children, target, inherit_defaults))
            else:
                runs.extend(self._collect_runs(node.children, link, inherit_defaults))
        return runs

    def _text_run(self, node: EditorNode, text: str, link: Optional[str],
                  inherit_defaults: bool = True) -> InlineRun:
        """Text run; headings pass inherit_defaults=False so their style sizes apply."""
        style = self.normalizer.run_style(node.get("style"))
        family = style.font_family or (self.defaults.font_family if inherit_defaults else None)
        size = style.font_size or (self.defaults.font_size_pt if inherit_defaults else None)
        return InlineRun(
            text=text,
            bold=node.has_format(FORMAT_BOLD),
            italic=node.has_format(FORMAT_ITALIC),
            underline=node.has_format(FORMAT_UNDERLINE),
            strikethrough=node.has_format(FORMAT_STRIKETHROUGH),
            monospace=node.has_format(FORMAT_CODE),
            subscript=node.has_format(FORMAT_SUBSCRIPT),
            superscript=node.has_format(FORMAT_SUPERSCRIPT),
            color=style.color,
            background=style.background,
            font_family=family,
            font_size=size,
            link=link,
        )

    def _image_run(self, node: EditorNode, link: Optional[str]) -> InlineRun:
        index = self._image_count
        self._image_count += 1
        src = node.get("src")
        alt = node.get("altText", "")
        return InlineRun(
            kind=RUN_IMAGE,
            image_index=index,
            image_source=src if isinstance(src, str) else None,
            intrinsic_width=_positive_number(node.get("width")),
            intrinsic_height=_positive_number(node.get("height")),
            alt_text=alt if isinstance(alt, str) else "",
            link=link,
        )


def extract_blocks(document: RichDocument, defaults: Optional[StyleDefaults] = None) -> List[Block]:
    """Walk ``document`` into blocks using ``defaults`` as run fallback."""
    return TreeWalker(defaults).extract_blocks(document)
