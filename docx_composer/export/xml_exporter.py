"""
XML exporter for DOCX documents.

Generates the WordprocessingML parts (document, styles, settings) of an
``OutputDocument``. Relationship ids for images and hyperlinks are obtained
from callbacks so the package writer stays in charge of the part graph.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
from typing import Any, Callable, Dict, Optional

from ..models.output import (
    BodyElement,
    OutputCell,
    OutputDocument,
    OutputHyperlink,
    OutputImage,
    OutputParagraph,
    OutputRun,
    OutputSection,
    OutputTable,
)
from ..utils.units import pt_to_emu

logger = logging.getLogger(__name__)

NAMESPACES = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
}
for _prefix, _uri in NAMESPACES.items():
    ET.register_namespace(_prefix, _uri)

XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"
PICTURE_URI = NAMESPACES["pic"]

JUSTIFICATION = {"left": "left", "center": "center", "right": "right", "justify": "both"}

# Heading sizes in half-points
HEADING_SIZES = {1: 48, 2: 36, 3: 28, 4: 24, 5: 22, 6: 20}
HYPERLINK_COLOR = "0563C1"
QUOTE_COLOR = "595959"
TABLE_BORDER_COLOR = "BFBFBF"

# Characters XML 1.0 does not allow in a document
_ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
# Word's soft line break
VERTICAL_TAB = "\x0b"


def _q(prefix: str, tag: str) -> str:
    return f"{{{NAMESPACES[prefix]}}}{tag}"


def _w(tag: str) -> str:
    return _q("w", tag)


def xml_safe(text: Optional[str]) -> str:
    """Drop characters that cannot appear in an XML 1.0 document."""
    if not text:
        return ""
    return _ILLEGAL_XML_CHARS.sub("", text)


class XMLExporter:
    """
    WordML generator for an ``OutputDocument``.

    ``image_rel`` and ``hyperlink_rel`` register an embedded image or an
    external link target and return the relationship id to reference it by.
    Without them ids are numbered locally, which is enough for inspecting the
    generated XML on its own.
    """

    def __init__(self, document: OutputDocument,
                 image_rel: Optional[Callable[[OutputImage], str]] = None,
                 hyperlink_rel: Optional[Callable[[str], str]] = None):
        if document is None:
            raise ValueError("Document cannot be None")
        self.document = document
        self._image_rel = image_rel or self._local_rel
        self._hyperlink_rel = hyperlink_rel or self._local_rel
        self._local_rel_count = 0
        self._drawing_id = 0
        logger.debug("XML exporter initialized")

    def _local_rel(self, _target: Any) -> str:
        self._local_rel_count += 1
        return f"rId{self._local_rel_count}"

    # ------------------------------------------------------------------
    @staticmethod
    def _coerce_attr_value(value: Any) -> Optional[str]:
        """Convert attribute value to a safe string for XML serialization."""
        if value is None:
            return None
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                return None
            if value.is_integer():
                return str(int(value))
            return format(value, ".10g")
        return str(value)

    def _set_attr(self, element: ET.Element, key: str, value: Any) -> None:
        coerced = self._coerce_attr_value(value)
        if coerced is None:
            return
        element.set(key, coerced)

    def _w_el(self, parent: ET.Element, tag: str, **attrs: Any) -> ET.Element:
        """Append a ``w:`` child whose attributes are all ``w:``-qualified."""
        element = ET.SubElement(parent, _w(tag))
        for key, value in attrs.items():
            self._set_attr(element, _w(key), value)
        return element

    @staticmethod
    def _serialize(root: ET.Element) -> bytes:
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    # ------------------------------------------------------------------
    # document.xml
    # ------------------------------------------------------------------
    def export_document_xml(self) -> bytes:
        root = ET.Element(_w("document"))
        body = ET.SubElement(root, _w("body"))

        sections = self.document.sections
        for section in sections:
            for child in section.children:
                body.append(self._export_element(child))
        if sections:
            self._export_sect_pr(body, sections[-1])

        return self._serialize(root)

    def _export_element(self, element: BodyElement) -> ET.Element:
        if isinstance(element, OutputTable):
            return self._export_table_xml(element)
        return self._export_paragraph_xml(element)

    def _export_sect_pr(self, parent: ET.Element, section: OutputSection) -> None:
        sect_pr = self._w_el(parent, "sectPr")
        self._w_el(sect_pr, "pgSz", w=section.page_width, h=section.page_height)
        self._w_el(sect_pr, "pgMar", **section.margins)
        self._w_el(sect_pr, "cols", space=720)

    def _export_paragraph_xml(self, paragraph: OutputParagraph) -> ET.Element:
        p = ET.Element(_w("p"))
        p_pr = self._w_el(p, "pPr")

        if paragraph.style:
            self._w_el(p_pr, "pStyle", val=paragraph.style)
        spacing = {
            "before": paragraph.spacing_before,
            "after": paragraph.spacing_after,
        }
        if paragraph.line_spacing is not None:
            spacing["line"] = paragraph.line_spacing
            spacing["lineRule"] = paragraph.line_rule
        if any(value is not None for value in spacing.values()):
            self._w_el(p_pr, "spacing", **spacing)
        if paragraph.indent_left is not None or paragraph.hanging is not None:
            self._w_el(p_pr, "ind", left=paragraph.indent_left, hanging=paragraph.hanging)
        if paragraph.alignment in JUSTIFICATION:
            self._w_el(p_pr, "jc", val=JUSTIFICATION[paragraph.alignment])

        if len(p_pr) == 0:
            p.remove(p_pr)

        for item in paragraph.content:
            if isinstance(item, OutputHyperlink):
                p.append(self._export_hyperlink_xml(item))
            elif isinstance(item, OutputImage):
                p.append(self._export_image_xml(item))
            else:
                p.append(self._export_run_xml(item))
        return p

    def _export_hyperlink_xml(self, hyperlink: OutputHyperlink) -> ET.Element:
        element = ET.Element(_w("hyperlink"))
        element.set(_q("r", "id"), self._hyperlink_rel(hyperlink.target))
        self._set_attr(element, _w("history"), True)
        for run in hyperlink.runs:
            element.append(self._export_run_xml(run))
        return element

    def _export_run_xml(self, run: OutputRun) -> ET.Element:
        r = ET.Element(_w("r"))
        r_pr = self._w_el(r, "rPr")
        self._add_run_properties(r_pr, run)
        if len(r_pr) == 0:
            r.remove(r_pr)

        if run.page_break:
            self._w_el(r, "br", type="page")
        elif run.line_break:
            self._w_el(r, "br")
        else:
            for line_index, line in enumerate(run.text.split(VERTICAL_TAB)):
                if line_index:
                    self._w_el(r, "br")
                for index, chunk in enumerate(xml_safe(line).split("\t")):
                    if index:
                        self._w_el(r, "tab")
                    if chunk:
                        t = self._w_el(r, "t")
                        t.text = chunk
                        t.set(XML_SPACE, "preserve")
        return r

    def _add_run_properties(self, r_pr: ET.Element, run: OutputRun) -> None:
        # Child order follows the CT_RPr sequence
        if run.style:
            self._w_el(r_pr, "rStyle", val=run.style)
        if run.font:
            self._w_el(r_pr, "rFonts", ascii=run.font, hAnsi=run.font, cs=run.font, eastAsia=run.font)
        if run.bold:
            self._w_el(r_pr, "b")
        if run.italic:
            self._w_el(r_pr, "i")
        if run.strikethrough:
            self._w_el(r_pr, "strike")
        if run.color:
            self._w_el(r_pr, "color", val=run.color)
        if run.size_half_points:
            self._w_el(r_pr, "sz", val=run.size_half_points)
            self._w_el(r_pr, "szCs", val=run.size_half_points)
        if run.underline:
            self._w_el(r_pr, "u", val="single")
        if run.shading:
            self._w_el(r_pr, "shd", val="clear", color="auto", fill=run.shading)
        if run.superscript:
            self._w_el(r_pr, "vertAlign", val="superscript")
        elif run.subscript:
            self._w_el(r_pr, "vertAlign", val="subscript")

    def _export_image_xml(self, image: OutputImage) -> ET.Element:
        """Inline DrawingML picture sized in EMU."""
        self._drawing_id += 1
        drawing_id = self._drawing_id
        rel_id = self._image_rel(image)
        cx, cy = pt_to_emu(image.width_pt), pt_to_emu(image.height_pt)

        r = ET.Element(_w("r"))
        drawing = ET.SubElement(r, _w("drawing"))
        inline = ET.SubElement(drawing, _q("wp", "inline"))
        for key in ("distT", "distB", "distL", "distR"):
            inline.set(key, "0")

        extent = ET.SubElement(inline, _q("wp", "extent"))
        self._set_attr(extent, "cx", cx)
        self._set_attr(extent, "cy", cy)
        effect = ET.SubElement(inline, _q("wp", "effectExtent"))
        for key in ("l", "t", "r", "b"):
            effect.set(key, "0")

        doc_pr = ET.SubElement(inline, _q("wp", "docPr"))
        self._set_attr(doc_pr, "id", drawing_id)
        doc_pr.set("name", xml_safe(image.name))
        if image.description:
            doc_pr.set("descr", xml_safe(image.description))

        frame = ET.SubElement(inline, _q("wp", "cNvGraphicFramePr"))
        locks = ET.SubElement(frame, _q("a", "graphicFrameLocks"))
        locks.set("noChangeAspect", "1")

        graphic = ET.SubElement(inline, _q("a", "graphic"))
        graphic_data = ET.SubElement(graphic, _q("a", "graphicData"))
        graphic_data.set("uri", PICTURE_URI)
        pic = ET.SubElement(graphic_data, _q("pic", "pic"))

        nv_pic_pr = ET.SubElement(pic, _q("pic", "nvPicPr"))
        c_nv_pr = ET.SubElement(nv_pic_pr, _q("pic", "cNvPr"))
        self._set_attr(c_nv_pr, "id", drawing_id)
        c_nv_pr.set("name", xml_safe(image.name))
        ET.SubElement(nv_pic_pr, _q("pic", "cNvPicPr"))

        blip_fill = ET.SubElement(pic, _q("pic", "blipFill"))
        blip = ET.SubElement(blip_fill, _q("a", "blip"))
        blip.set(_q("r", "embed"), rel_id)
        stretch = ET.SubElement(blip_fill, _q("a", "stretch"))
        ET.SubElement(stretch, _q("a", "fillRect"))

        sp_pr = ET.SubElement(pic, _q("pic", "spPr"))
        xfrm = ET.SubElement(sp_pr, _q("a", "xfrm"))
        off = ET.SubElement(xfrm, _q("a", "off"))
        off.set("x", "0")
        off.set("y", "0")
        ext = ET.SubElement(xfrm, _q("a", "ext"))
        self._set_attr(ext, "cx", cx)
        self._set_attr(ext, "cy", cy)
        geom = ET.SubElement(sp_pr, _q("a", "prstGeom"))
        geom.set("prst", "rect")
        ET.SubElement(geom, _q("a", "avLst"))
        return r

    def _export_table_xml(self, table: OutputTable) -> ET.Element:
        tbl = ET.Element(_w("tbl"))
        tbl_pr = self._w_el(tbl, "tblPr")
        self._add_table_properties(tbl_pr, table)

        grid = self._w_el(tbl, "tblGrid")
        for width in table.column_widths:
            self._w_el(grid, "gridCol", w=width)

        for index, row in enumerate(table.rows):
            tr = self._w_el(tbl, "tr")
            if index < table.header_rows:
                tr_pr = self._w_el(tr, "trPr")
                self._w_el(tr_pr, "tblHeader")
            for cell in row:
                tr.append(self._export_cell_xml(cell))
        return tbl

    def _add_table_properties(self, tbl_pr: ET.Element, table: OutputTable) -> None:
        self._w_el(tbl_pr, "tblW", w=table.total_width, type="dxa")
        borders = self._w_el(tbl_pr, "tblBorders")
        for side in ("top", "left", "bottom", "right", "insideH", "insideV"):
            self._w_el(borders, side, val="single", sz=4, space=0, color=TABLE_BORDER_COLOR)
        self._w_el(tbl_pr, "tblLayout", type="fixed")
        margins = self._w_el(tbl_pr, "tblCellMar")
        for side in ("top", "left", "bottom", "right"):
            self._w_el(margins, side, w=table.cell_padding, type="dxa")

    def _export_cell_xml(self, cell: OutputCell) -> ET.Element:
        tc = ET.Element(_w("tc"))
        tc_pr = self._w_el(tc, "tcPr")
        self._w_el(tc_pr, "tcW", w=cell.width, type="dxa")
        if cell.grid_span > 1:
            self._w_el(tc_pr, "gridSpan", val=cell.grid_span)
        if cell.shading:
            self._w_el(tc_pr, "shd", val="clear", color="auto", fill=cell.shading)

        children = cell.children or [OutputParagraph()]
        for child in children:
            tc.append(self._export_element(child))
        # A cell must end with a paragraph
        if isinstance(children[-1], OutputTable):
            tc.append(ET.Element(_w("p")))
        return tc

    # ------------------------------------------------------------------
    # styles.xml and settings.xml
    # ------------------------------------------------------------------
    def export_styles_xml(self) -> bytes:
        doc = self.document
        root = ET.Element(_w("styles"))

        defaults = self._w_el(root, "docDefaults")
        r_pr = self._w_el(self._w_el(defaults, "rPrDefault"), "rPr")
        font = doc.default_font
        self._w_el(r_pr, "rFonts", ascii=font, hAnsi=font, cs=font, eastAsia=font)
        self._w_el(r_pr, "sz", val=doc.default_size_half_points)
        self._w_el(r_pr, "szCs", val=doc.default_size_half_points)
        p_pr = self._w_el(self._w_el(defaults, "pPrDefault"), "pPr")
        if doc.default_line_spacing:
            self._w_el(p_pr, "spacing", line=doc.default_line_spacing, lineRule="auto")

        normal = self._style(root, "paragraph", "Normal", "Normal", default=True)
        self._w_el(normal, "qFormat")

        for level, size in HEADING_SIZES.items():
            style = self._style(root, "paragraph", f"Heading{level}", f"heading {level}")
            self._w_el(style, "basedOn", val="Normal")
            self._w_el(style, "next", val="Normal")
            self._w_el(style, "qFormat")
            p_pr = self._w_el(style, "pPr")
            self._w_el(p_pr, "keepNext")
            self._w_el(p_pr, "spacing", before=240, after=120)
            self._w_el(p_pr, "outlineLvl", val=level - 1)
            r_pr = self._w_el(style, "rPr")
            self._w_el(r_pr, "b")
            self._w_el(r_pr, "sz", val=size)
            self._w_el(r_pr, "szCs", val=size)

        quote = self._style(root, "paragraph", "Quote", "Quote")
        self._w_el(quote, "basedOn", val="Normal")
        self._w_el(quote, "next", val="Normal")
        self._w_el(quote, "qFormat")
        self._w_el(self._w_el(quote, "pPr"), "ind", left=720, right=720)
        r_pr = self._w_el(quote, "rPr")
        self._w_el(r_pr, "i")
        self._w_el(r_pr, "color", val=QUOTE_COLOR)

        hyperlink = self._style(root, "character", "Hyperlink", "Hyperlink")
        r_pr = self._w_el(hyperlink, "rPr")
        self._w_el(r_pr, "color", val=HYPERLINK_COLOR)
        self._w_el(r_pr, "u", val="single")

        return self._serialize(root)

    def _style(self, root: ET.Element, kind: str, style_id: str, name: str,
               default: bool = False) -> ET.Element:
        style = self._w_el(root, "style", type=kind, styleId=style_id, default=True if default else None)
        self._w_el(style, "name", val=name)
        return style

    def export_settings_xml(self) -> bytes:
        root = ET.Element(_w("settings"))
        self._w_el(root, "zoom", percent=100)
        self._w_el(root, "defaultTabStop", val=720)
        self._w_el(root, "characterSpacingControl", val="doNotCompress")
        compat = self._w_el(root, "compat")
        self._w_el(
            compat, "compatSetting",
            name="compatibilityMode", uri="http://schemas.microsoft.com/office/word", val=15,
        )
        return self._serialize(root)

    def get_export_info(self) -> Dict[str, Any]:
        return {
            "sections": len(self.document.sections),
            "images": len(self.document.images()),
            "drawings_written": self._drawing_id,
        }
