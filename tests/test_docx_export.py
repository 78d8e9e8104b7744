"""
Tests for DOCX packaging and the export pipeline.
"""

import io
import xml.etree.ElementTree as ET
import zipfile

import httpx
import pytest
import respx

from docx_composer.config import ExportOptions, Margins, PageSetup
from docx_composer.exceptions import ConfigurationError, ExportError
from docx_composer.export import (
    DocumentAssembler,
    DocumentExporter,
    DOCXExporter,
    FilePersistence,
    RenderedGeometry,
    XMLExporter,
    export_document,
)
from docx_composer.media import ImageBox
from docx_composer.models import RichDocument
from tests.builders import cell, heading, image, link, page_break, paragraph, row, state, table, text

W = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"
R = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}"
WP = "{http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing}"
A = "{http://schemas.openxmlformats.org/drawingml/2006/main}"
REL = "{http://schemas.openxmlformats.org/package/2006/relationships}"
CT = "{http://schemas.openxmlformats.org/package/2006/content-types}"


def _open(data: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(data))


def _xml(package: zipfile.ZipFile, name: str) -> ET.Element:
    return ET.fromstring(package.read(name))


def _relationships(package: zipfile.ZipFile, name: str = "word/_rels/document.xml.rels"):
    return {rel.get("Id"): rel for rel in _xml(package, name).iter(f"{REL}Relationship")}


class TestPackage:

    def test_empty_document(self):
        package = _open(export_document(state()))

        names = set(package.namelist())
        assert {
            "[Content_Types].xml",
            "_rels/.rels",
            "word/document.xml",
            "word/styles.xml",
            "word/settings.xml",
            "word/_rels/document.xml.rels",
            "docProps/core.xml",
            "docProps/app.xml",
        } <= names
        assert not any(name.startswith("word/media/") for name in names)

        body = _xml(package, "word/document.xml").find(f"{W}body")
        assert [child.tag for child in body] == [f"{W}sectPr"]
        margins = body.find(f"{W}sectPr/{W}pgMar")
        for side in ("top", "right", "bottom", "left"):
            assert margins.get(f"{W}{side}") == "1440"
        size = body.find(f"{W}sectPr/{W}pgSz")
        assert (size.get(f"{W}w"), size.get(f"{W}h")) == ("12240", "15840")

    def test_root_relationships(self):
        package = _open(export_document(state()))
        rels = _relationships(package, "_rels/.rels")
        assert rels["rId1"].get("Target") == "word/document.xml"
        assert rels["rId1"].get("Type").endswith("/officeDocument")

    def test_content_types(self):
        package = _open(export_document(state()))
        root = _xml(package, "[Content_Types].xml")
        overrides = {o.get("PartName") for o in root.iter(f"{CT}Override")}
        defaults = {d.get("Extension") for d in root.iter(f"{CT}Default")}
        assert "/word/document.xml" in overrides
        assert {"rels", "xml", "png"} <= defaults

    def test_margin_preset(self):
        package = _open(export_document(state(), margins="wide"))
        margins = _xml(package, "word/document.xml").find(f"{W}body/{W}sectPr/{W}pgMar")
        assert margins.get(f"{W}left") == "2160"
        assert margins.get(f"{W}top") == "1440"

    def test_unknown_margin_preset(self):
        with pytest.raises(ConfigurationError):
            export_document(state(), margins="huge")

    def test_styles_and_core_properties(self, mixed_state):
        package = _open(export_document(mixed_state))
        style_ids = {
            style.get(f"{W}styleId") for style in _xml(package, "word/styles.xml").iter(f"{W}style")
        }
        assert {"Normal", "Heading1", "Heading6", "Quote", "Hyperlink"} <= style_ids
        title = _xml(package, "docProps/core.xml").find("{http://purl.org/dc/elements/1.1/}title")
        assert title.text == "Quarterly report"


class TestDocumentXml:

    def test_hyperlink_relationship(self):
        package = _open(export_document(state(
            paragraph(text("Go to "), link("https://example.com/docs", text("docs"))),
        )))
        hyperlink = _xml(package, "word/document.xml").find(f".//{W}hyperlink")
        rel = _relationships(package)[hyperlink.get(f"{R}id")]
        assert rel.get("Target") == "https://example.com/docs"
        assert rel.get("TargetMode") == "External"
        assert hyperlink.find(f"{W}r/{W}rPr/{W}rStyle").get(f"{W}val") == "Hyperlink"

    def test_embedded_image(self, png_data_uri):
        package = _open(export_document(state(paragraph(image(png_data_uri, alt="Logo")))))

        root = _xml(package, "word/document.xml")
        extent = root.find(f".//{WP}inline/{WP}extent")
        assert (extent.get("cx"), extent.get("cy")) == ("419100", "209550")
        assert root.find(f".//{WP}docPr").get("descr") == "Logo"

        blip = root.find(f".//{A}blip")
        rel = _relationships(package)[blip.get(f"{R}embed")]
        assert rel.get("Target") == "media/image1.png"
        assert package.read("word/media/image1.png").startswith(b"\x89PNG")

    def test_measured_image_box(self, png_data_uri):
        geometry = RenderedGeometry(images=[ImageBox(1000, 500)])
        package = _open(export_document(state(paragraph(image(png_data_uri))), geometry=geometry))
        extent = _xml(package, "word/document.xml").find(f".//{WP}extent")
        assert (extent.get("cx"), extent.get("cy")) == ("8890000", "4445000")

    def test_page_break_run(self):
        package = _open(export_document(state(paragraph(text("a")), page_break(), paragraph(text("b")))))
        breaks = _xml(package, "word/document.xml").findall(f".//{W}br")
        assert [br.get(f"{W}type") for br in breaks] == ["page"]

    def test_table_grid(self, mixed_state):
        package = _open(export_document(mixed_state))
        tbl = _xml(package, "word/document.xml").find(f".//{W}tbl")
        widths = [col.get(f"{W}w") for col in tbl.iter(f"{W}gridCol")]
        assert widths == ["4680", "4680"]
        assert tbl.find(f"{W}tblPr/{W}tblLayout").get(f"{W}type") == "fixed"
        rows = tbl.findall(f"{W}tr")
        assert rows[0].find(f"{W}trPr/{W}tblHeader") is not None
        shading = rows[1].findall(f"{W}tc")[1].find(f"{W}tcPr/{W}shd")
        assert shading.get(f"{W}fill") == "FFEECC"

    def test_every_cell_ends_with_paragraph(self):
        package = _open(export_document(state(table(row(cell(), cell(paragraph(text("x"))))))))
        for tc in _xml(package, "word/document.xml").iter(f"{W}tc"):
            assert tc[-1].tag == f"{W}p"

    def test_export_info(self):
        exporter = XMLExporter(DocumentAssembler().assemble([]))
        assert exporter.get_export_info() == {"sections": 1, "images": 0, "drawings_written": 0}

    def test_tabs_and_whitespace(self):
        package = _open(export_document(state(paragraph(text("  a\tb  ")))))
        run = _xml(package, "word/document.xml").find(f".//{W}p/{W}r")
        assert [child.tag for child in run if child.tag != f"{W}rPr"] == [f"{W}t", f"{W}tab", f"{W}t"]
        assert run.find(f"{W}t").text == "  a"

    def test_vertical_tab_becomes_line_break(self):
        package = _open(export_document(state(paragraph(text("line\x0bbreak")))))
        root = ET.fromstring(package.read("word/document.xml"))
        run = root.find(f".//{W}p/{W}r")
        assert [child.tag for child in run if child.tag != f"{W}rPr"] == [f"{W}t", f"{W}br", f"{W}t"]
        assert [t.text for t in run.iter(f"{W}t")] == ["line", "break"]

    def test_control_characters_are_dropped(self, png_data_uri):
        package = _open(export_document(state(
            heading("h1", text("Report\x07 2024")),
            paragraph(text("a\x00b\x1fc\x0cd")),
            paragraph(image(png_data_uri, alt="Logo\x01")),
        )))

        root = ET.fromstring(package.read("word/document.xml"))
        texts = [t.text for t in root.iter(f"{W}t")]
        assert "abcd" in texts
        assert root.find(f".//{WP}docPr").get("descr") == "Logo"
        core = ET.fromstring(package.read("docProps/core.xml"))
        assert core.find("{http://purl.org/dc/elements/1.1/}title").text == "Report 2024"


class TestPipeline:

    def test_accepts_rich_document(self, mixed_state):
        document = RichDocument.from_dict(mixed_state)
        data = DocumentExporter(document).export()
        assert _open(data).testzip() is None

    @respx.mock
    def test_unreachable_image_is_left_out(self):
        respx.get("https://cdn.example.com/a.png").mock(return_value=httpx.Response(404))
        data = export_document(state(
            paragraph(text("caption")),
            paragraph(image("https://cdn.example.com/a.png")),
        ))
        package = _open(data)
        assert not any(name.startswith("word/media/") for name in package.namelist())
        paragraphs = _xml(package, "word/document.xml").findall(f"{W}body/{W}p")
        assert len(paragraphs) == 1

    def test_geometry_read_when_export_starts(self, png_data_uri):
        geometry = RenderedGeometry(images=[ImageBox(200, 100)])
        exporter = DocumentExporter(state(paragraph(image(png_data_uri))), geometry=geometry)
        geometry.images[0] = ImageBox(1000, 500)
        data = exporter.export()
        extent = _xml(_open(data), "word/document.xml").find(f".//{WP}extent")
        assert extent.get("cx") == "8890000"

    def test_assembly_failure_wrapped(self, monkeypatch):
        def explode(self, blocks, images=None):
            raise ValueError("bad block")

        monkeypatch.setattr(DocumentAssembler, "assemble", explode)
        with pytest.raises(ExportError, match="Failed to assemble document"):
            export_document(state(paragraph(text("x"))))

    def test_packaging_failure_wrapped(self, monkeypatch):
        def explode(self):
            raise RuntimeError("serializer broke")

        monkeypatch.setattr(XMLExporter, "export_document_xml", explode)
        with pytest.raises(ExportError, match="serializer broke"):
            DOCXExporter(DocumentAssembler().assemble([])).to_bytes()

    def test_docx_exporter_writes_file(self, temp_dir):
        path = DOCXExporter(DocumentAssembler().assemble([])).export(temp_dir / "out" / "empty.docx")
        assert path.exists()
        assert zipfile.is_zipfile(path)


class TestPersistence:

    def test_save_with_default_filename(self, temp_dir, mixed_state):
        exporter = DocumentExporter(mixed_state, options=ExportOptions(filename="report.docx"))
        path = exporter.save(FilePersistence(temp_dir))
        assert path == temp_dir / "report.docx"
        assert zipfile.is_zipfile(path)

    def test_filename_cannot_escape_directory(self, temp_dir):
        path = FilePersistence(temp_dir / "docs").save(b"data", "../../escape.docx")
        assert path == temp_dir / "docs" / "escape.docx"

    def test_custom_persistence(self):
        saved = {}

        class MemoryPersistence:
            def save(self, data, filename):
                saved[filename] = data
                return filename

        exporter = DocumentExporter(state(paragraph(text("x"))))
        assert exporter.save(MemoryPersistence(), "note.docx") == "note.docx"
        assert zipfile.is_zipfile(io.BytesIO(saved["note.docx"]))

    def test_unwritable_directory(self, temp_dir):
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ExportError):
            FilePersistence(blocker).save(b"data", "x.docx")

    @pytest.mark.asyncio
    async def test_save_async(self, temp_dir):
        exporter = DocumentExporter(state(paragraph(text("async"))),
                                    page_setup=PageSetup(margins=Margins.uniform(48)))
        path = await exporter.save_async(FilePersistence(temp_dir), "async.docx")
        margins = _xml(_open(path.read_bytes()), "word/document.xml").find(f"{W}body/{W}sectPr/{W}pgMar")
        assert margins.get(f"{W}top") == "720"
