"""
Document assembler.

Maps normalized blocks onto the output document model: headings become
heading styles, quotes are framed with quotation glyphs, list items get an
ordinal, bullet or check-box prefix, tables become fixed grids. Every block
gets the same before/after spacing whatever its on-screen spacing was.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from ..config import ExportOptions, PageSetup
from ..media.image_resolver import ResolvedImage, compute_target_size
from ..models.blocks import (
    BLOCK_HEADING,
    BLOCK_IMAGE,
    BLOCK_LIST_ITEM,
    BLOCK_PAGE_BREAK,
    BLOCK_QUOTE,
    BLOCK_TABLE,
    Block,
    InlineRun,
)
from ..models.output import (
    BodyElement,
    InlineContent,
    OutputCell,
    OutputDocument,
    OutputHyperlink,
    OutputImage,
    OutputParagraph,
    OutputRun,
    OutputSection,
    OutputTable,
)
from ..styles.defaults import StyleDefaults
from ..utils.units import pt_to_half_points
from .geometry import RenderedGeometry
from .table_layout import TableLayoutResolver

logger = logging.getLogger(__name__)

MONOSPACE_FONT = "Courier New"
BULLETS = ("•", "◦", "▪")
CHECKED_BOX = "☑"
UNCHECKED_BOX = "☐"
OPEN_QUOTE = "“"
CLOSE_QUOTE = "”"

HYPERLINK_STYLE = "Hyperlink"
QUOTE_STYLE = "Quote"

# Header, footer and gutter distances of the generated section
SECTION_EXTRAS = {"header": 720, "footer": 720, "gutter": 0}


class DocumentAssembler:
    """Builds an ``OutputDocument`` from walked blocks and resolved images."""

    def __init__(self, page_setup: Optional[PageSetup] = None,
                 options: Optional[ExportOptions] = None,
                 geometry: Optional[RenderedGeometry] = None):
        self.page_setup = page_setup or PageSetup()
        self.options = options or ExportOptions()
        self.geometry = geometry or RenderedGeometry()
        self.tables = TableLayoutResolver(self.geometry, self.page_setup.content_width_twips)
        self._images: Mapping[int, Optional[ResolvedImage]] = {}

    @property
    def defaults(self) -> StyleDefaults:
        return self.geometry.defaults

    def assemble(self, blocks: List[Block],
                 images: Optional[Mapping[int, Optional[ResolvedImage]]] = None) -> OutputDocument:
        """
        Assemble ``blocks`` into a single-section document.

        ``images`` maps image indexes to resolved images; a missing or None
        entry means that image failed and is left out.
        """
        self._images = images or {}
        section = OutputSection(
            page_width=self.page_setup.width_twips,
            page_height=self.page_setup.height_twips,
            margins={**self.page_setup.margins.to_twips(), **SECTION_EXTRAS},
        )
        for block in blocks:
            section.children.extend(self._block(block))

        document = OutputDocument(
            sections=[section],
            title=self._title(blocks),
            default_font=self.defaults.font_family,
            default_size_half_points=pt_to_half_points(self.defaults.font_size_pt),
            default_line_spacing=self.defaults.line_spacing,
        )
        logger.debug(f"Assembled {len(section.children)} body elements from {len(blocks)} blocks")
        return document

    @staticmethod
    def _title(blocks: List[Block]) -> str:
        for block in blocks:
            if block.kind == BLOCK_HEADING:
                return block.get_text().strip()
        return ""

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------
    def _block(self, block: Block) -> List[BodyElement]:
        if block.kind == BLOCK_PAGE_BREAK:
            return [OutputParagraph(content=[OutputRun(page_break=True)])]
        if block.kind == BLOCK_TABLE:
            table = self._table(block)
            return [table] if table is not None else []

        paragraph = self._paragraph(block)
        if block.kind == BLOCK_HEADING:
            paragraph.style = f"Heading{block.level or 1}"
        elif block.kind == BLOCK_QUOTE:
            paragraph.style = QUOTE_STYLE
            paragraph.indent_left = self.options.quote_indent_twips
            paragraph.content.insert(0, OutputRun(text=OPEN_QUOTE))
            paragraph.content.append(OutputRun(text=CLOSE_QUOTE))
        elif block.kind == BLOCK_LIST_ITEM:
            paragraph.content.insert(0, OutputRun(text=self._list_prefix(block)))
            paragraph.indent_left = self.options.list_indent_twips * (block.depth + 1)
            paragraph.hanging = self.options.list_indent_twips
        elif block.kind == BLOCK_IMAGE and not paragraph.content:
            # The only image of this block failed
            return []
        return [paragraph]

    def _paragraph(self, block: Block) -> OutputParagraph:
        return OutputParagraph(
            content=self._inline(block.runs),
            alignment=block.alignment,
            spacing_before=self.options.spacing_before_twips,
            spacing_after=self.options.spacing_after_twips,
            line_spacing=block.line_spacing,
            line_rule=block.line_rule,
        )

    @staticmethod
    def _list_prefix(block: Block) -> str:
        if block.checked is not None:
            return f"{CHECKED_BOX if block.checked else UNCHECKED_BOX} "
        if block.ordered:
            return f"{block.ordinal}. "
        return f"{BULLETS[block.depth % len(BULLETS)]} "

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------
    def _inline(self, runs: List[InlineRun]) -> List[InlineContent]:
        content: List[InlineContent] = []
        hyperlink: Optional[OutputHyperlink] = None

        for run in runs:
            if run.is_image:
                hyperlink = None
                image = self._image(run)
                if image is not None:
                    content.append(image)
                continue

            output = self._run(run)
            if run.link:
                if hyperlink is None or hyperlink.target != run.link:
                    hyperlink = OutputHyperlink(target=run.link)
                    content.append(hyperlink)
                output.style = HYPERLINK_STYLE
                hyperlink.runs.append(output)
            else:
                hyperlink = None
                content.append(output)
        return content

    def _run(self, run: InlineRun) -> OutputRun:
        if run.is_line_break:
            return OutputRun(line_break=True)
        return OutputRun(
            text=run.text,
            bold=run.bold,
            italic=run.italic,
            underline=run.underline,
            strikethrough=run.strikethrough,
            subscript=run.subscript,
            superscript=run.superscript,
            font=MONOSPACE_FONT if run.monospace else run.font_family,
            size_half_points=pt_to_half_points(run.font_size) if run.font_size else None,
            color=run.color,
            shading=run.background,
        )

    def _image(self, run: InlineRun) -> Optional[OutputImage]:
        resolved = self._images.get(run.image_index) if run.image_index is not None else None
        if resolved is None:
            logger.warning(f"Image {run.image_index} unavailable; omitted from export")
            return None
        width_pt, height_pt = compute_target_size(
            resolved,
            measured=self.geometry.image_box(run.image_index),
            intrinsic=(run.intrinsic_width, run.intrinsic_height),
            options=self.options,
        )
        return OutputImage(
            data=resolved.raster_bytes,
            format_tag=resolved.format_tag,
            width_pt=width_pt,
            height_pt=height_pt,
            name=f"image{run.image_index + 1}",
            description=run.alt_text,
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------
    def _table(self, block: Block) -> Optional[OutputTable]:
        column_count = block.column_count
        if column_count == 0:
            logger.debug(f"Table {block.table_index} has no cells; skipped")
            return None

        grid = self.tables.resolve_or_fallback(block.table_index, column_count)
        widths = grid.column_widths_twips
        table = OutputTable(column_widths=list(widths), cell_padding=self.options.cell_padding_twips)

        header_rows = 0
        counting_headers = True
        for row in block.rows:
            cells: List[OutputCell] = []
            position = 0
            for cell in row:
                span = min(cell.col_span, max(1, column_count - position))
                children: List[BodyElement] = []
                for child in cell.blocks:
                    children.extend(self._block(child))
                if not children or not isinstance(children[-1], OutputParagraph):
                    children.append(OutputParagraph())
                cells.append(OutputCell(
                    width=sum(widths[position:position + span]) or widths[-1],
                    children=children,
                    shading=cell.background,
                    grid_span=span,
                ))
                position += span
            table.rows.append(cells)

            if counting_headers and row and all(cell.header for cell in row):
                header_rows += 1
            else:
                counting_headers = False

        table.header_rows = header_rows
        return table


def images_by_index(indexes: List[int], resolved: List[Optional[ResolvedImage]]) -> Dict[int, Optional[ResolvedImage]]:
    """Pair image indexes with resolution results returned in the same order."""
    return dict(zip(indexes, resolved))
