"""
Tests for assembling walked blocks into the output document model.
"""

import pytest

from docx_composer.config import Margins, PageSetup
from docx_composer.export import DocumentAssembler, RenderedGeometry
from docx_composer.export.assembler import images_by_index
from docx_composer.media import ImageBox, ResolvedImage
from docx_composer.models import (
    OutputHyperlink,
    OutputImage,
    OutputParagraph,
    OutputRun,
    OutputTable,
    RichDocument,
)
from docx_composer.parser import extract_blocks
from tests.builders import (
    cell,
    heading,
    image,
    link,
    list_item,
    list_node,
    page_break,
    paragraph,
    quote,
    row,
    state,
    table,
    text,
)


def _assemble(*children, images=None, geometry=None, page_setup=None):
    blocks = extract_blocks(RichDocument.from_dict(state(*children)))
    assembler = DocumentAssembler(page_setup=page_setup, geometry=geometry)
    return assembler.assemble(blocks, images)


def _body(*children, **kwargs):
    return _assemble(*children, **kwargs).sections[0].children


def _texts(paragraph):
    return [item.text for item in paragraph.content if isinstance(item, OutputRun)]


@pytest.fixture
def resolved_png(png_bytes):
    return ResolvedImage(png_bytes, "png", 40, 20)


class TestDocument:

    def test_empty_document(self):
        document = _assemble()
        (section,) = document.sections
        assert section.children == []
        assert section.page_width == 12240
        assert section.page_height == 15840
        assert section.margins["top"] == 1440
        assert section.margins["left"] == 1440
        assert section.margins["header"] == 720

    def test_title_and_defaults(self, mixed_state):
        blocks = extract_blocks(RichDocument.from_dict(mixed_state))
        document = DocumentAssembler().assemble(blocks)
        assert document.title == "Quarterly report"
        assert document.default_font == "Arial"
        assert document.default_size_half_points == 21
        assert document.default_line_spacing == 360

    def test_margins_from_page_setup(self):
        setup = PageSetup(margins=Margins.preset("narrow"))
        section = _assemble(page_setup=setup).sections[0]
        assert section.margins["top"] == 540
        assert section.margins["right"] == 540


class TestParagraphs:

    def test_fixed_spacing(self):
        (para,) = _body(paragraph(text("x"), style="line-height: 2"))
        assert (para.spacing_before, para.spacing_after) == (120, 120)
        assert para.line_spacing == 480

    def test_heading_style(self):
        (para,) = _body(heading("h2", text("Section")))
        assert para.style == "Heading2"
        assert para.content[0].size_half_points is None

    def test_quote_glyphs(self):
        (para,) = _body(quote(text("To be")))
        assert para.style == "Quote"
        assert para.indent_left == 720
        assert _texts(para) == ["“", "To be", "”"]

    def test_page_break(self):
        body = _body(paragraph(text("a")), page_break(), paragraph(text("b")))
        assert body[1].content == [OutputRun(page_break=True)]

    def test_run_formatting(self):
        (para,) = _body(paragraph(text("code", fmt=16 | 1, style="font-size: 12pt; background-color: yellow")))
        run = para.content[0]
        assert run.font == "Courier New"
        assert run.bold
        assert run.size_half_points == 24
        assert run.shading == "FFFF00"


class TestLists:

    def test_prefixes(self):
        body = _body(
            list_node("number", list_item(text("one")), list_item(text("two"))),
            list_node("bullet", list_item(text("dot")), list_item(list_node("bullet", list_item(text("circle"))))),
            list_node("check", list_item(text("done"), checked=True), list_item(text("open"))),
        )
        assert [para.content[0].text for para in body] == ["1. ", "2. ", "• ", "◦ ", "☑ ", "☐ "]

    def test_indentation_by_depth(self):
        body = _body(list_node("bullet", list_item(text("a")), list_item(list_node("bullet", list_item(text("b"))))))
        assert [(para.indent_left, para.hanging) for para in body] == [(360, 360), (720, 360)]


class TestHyperlinks:

    def test_grouping(self):
        (para,) = _body(paragraph(
            text("Visit "),
            link("https://a.example", text("our "), text("site", fmt=1)),
            link("https://b.example", text("or theirs")),
            text("."),
        ))
        kinds = [type(item) for item in para.content]
        assert kinds == [OutputRun, OutputHyperlink, OutputHyperlink, OutputRun]
        first = para.content[1]
        assert first.target == "https://a.example"
        assert [run.text for run in first.runs] == ["our ", "site"]
        assert all(run.style == "Hyperlink" for run in first.runs)
        assert para.content[2].target == "https://b.example"


class TestImages:

    def test_image_sized_from_measured_box(self, resolved_png):
        geometry = RenderedGeometry(images=[ImageBox(200, 100)])
        (para,) = _body(
            paragraph(image("data:image/png;base64,AAAA", alt="Chart")),
            images={0: resolved_png},
            geometry=geometry,
        )
        (picture,) = para.content
        assert isinstance(picture, OutputImage)
        assert (picture.width_pt, picture.height_pt) == (165, 82.5)
        assert picture.name == "image1"
        assert picture.description == "Chart"

    def test_failed_image_block_omitted(self):
        body = _body(paragraph(text("a")), paragraph(image("https://example.com/x.png")), images={0: None})
        assert len(body) == 1

    def test_failed_inline_image_keeps_text(self):
        (para,) = _body(paragraph(text("before "), image("x.png"), text(" after")))
        assert _texts(para) == ["before ", " after"]

    def test_image_breaks_hyperlink_group(self, resolved_png):
        (para,) = _body(
            paragraph(link("https://a.example", text("a"), image("x.png"), text("b"))),
            images={0: resolved_png},
        )
        assert [type(item) for item in para.content] == [OutputHyperlink, OutputImage, OutputHyperlink]

    def test_images_by_index(self, resolved_png):
        assert images_by_index([3, 5], [resolved_png, None]) == {3: resolved_png, 5: None}


class TestTables:

    def test_mixed_table(self, mixed_state):
        blocks = extract_blocks(RichDocument.from_dict(mixed_state))
        body = DocumentAssembler().assemble(blocks).sections[0].children
        grid = body[-1]
        assert isinstance(grid, OutputTable)
        assert grid.column_widths == [4680, 4680]
        assert grid.header_rows == 1
        assert grid.rows[1][1].shading == "FFEECC"
        assert all(isinstance(c.children[-1], OutputParagraph) for r in grid.rows for c in r)

    def test_column_span_width(self):
        (grid,) = _body(table(
            row(cell(paragraph(text("wide")), col_span=2), cell(paragraph(text("c")))),
            row(cell(paragraph(text("a"))), cell(paragraph(text("b"))), cell(paragraph(text("c")))),
        ))
        assert grid.column_widths == [3600, 3600, 2160]
        assert [(c.width, c.grid_span) for c in grid.rows[0]] == [(7200, 2), (2160, 1)]

    def test_measured_widths(self):
        geometry = RenderedGeometry(tables=[[100, 200]])
        (grid,) = _body(table(row(cell(), cell())), geometry=geometry)
        assert grid.column_widths == [1500, 3000]

    def test_empty_cell_gets_paragraph(self):
        (grid,) = _body(table(row(cell())))
        assert grid.rows[0][0].children == [OutputParagraph()]

    def test_table_without_cells_skipped(self):
        assert _body(table(row())) == []

    def test_header_rows_stop_at_first_body_row(self):
        (grid,) = _body(table(
            row(cell(header=1)),
            row(cell()),
            row(cell(header=1)),
        ))
        assert grid.header_rows == 1
