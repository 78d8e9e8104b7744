"""
DOCX exporter - packages an output document into a DOCX file.

Uses XMLExporter to generate the WordML parts and writes them into an OPC
package (ZIP) together with relationships, ``[Content_Types].xml``,
document properties and embedded media.
"""

from __future__ import annotations

import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Tuple, Union

from ..version import __version__
from ..exceptions import ExportError
from ..models.output import OutputDocument, OutputImage
from .xml_exporter import XMLExporter, xml_safe

logger = logging.getLogger(__name__)

# OPC namespaces
OPC_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"
CORE_NS = "http://schemas.openxmlformats.org/package/2006/metadata/core-properties"
APP_NS = "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties"
DC_NS = "http://purl.org/dc/elements/1.1/"
DCTERMS_NS = "http://purl.org/dc/terms/"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

REL_TYPE_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
REL_OFFICE_DOCUMENT = f"{REL_TYPE_BASE}/officeDocument"
REL_EXTENDED_PROPERTIES = f"{REL_TYPE_BASE}/extended-properties"
REL_CORE_PROPERTIES = "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties"
REL_STYLES = f"{REL_TYPE_BASE}/styles"
REL_SETTINGS = f"{REL_TYPE_BASE}/settings"
REL_IMAGE = f"{REL_TYPE_BASE}/image"
REL_HYPERLINK = f"{REL_TYPE_BASE}/hyperlink"

DOCUMENT_PART = "word/document.xml"
STYLES_PART = "word/styles.xml"
SETTINGS_PART = "word/settings.xml"
CORE_PART = "docProps/core.xml"
APP_PART = "docProps/app.xml"

CONTENT_TYPE_MAP = {
    DOCUMENT_PART: "application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml",
    STYLES_PART: "application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml",
    SETTINGS_PART: "application/vnd.openxmlformats-officedocument.wordprocessingml.settings+xml",
    CORE_PART: "application/vnd.openxmlformats-package.core-properties+xml",
    APP_PART: "application/vnd.openxmlformats-officedocument.extended-properties+xml",
}

DEFAULT_CONTENT_TYPES = {
    "rels": "application/vnd.openxmlformats-package.relationships+xml",
    "xml": "application/xml",
    "png": "image/png",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
}

IMAGE_EXTENSIONS = ("png", "jpeg", "gif")

APPLICATION_NAME = "docx-composer"

# (rel_id, rel_type, target, target_mode)
Relationship = Tuple[str, str, str, str]


class DOCXExporter:
    """
    DOCX exporter - builds a complete package from an ``OutputDocument``.

    Parts are generated in memory; ``to_bytes`` returns the finished package
    and ``export`` writes it to disk.
    """

    def __init__(self, document: OutputDocument):
        self.document = document
        self.xml_exporter = XMLExporter(document, image_rel=self._add_image, hyperlink_rel=self._add_hyperlink)

        # Package parts (part_name -> content)
        self._parts: Dict[str, bytes] = {}
        # Relationships (rels part -> [Relationship])
        self._relationships: Dict[str, List[Relationship]] = {}
        # Overrides (part_name -> content_type)
        self._content_types: Dict[str, str] = {}
        # Media files (part_name -> content)
        self._media: Dict[str, bytes] = {}
        self._rel_id_counters: Dict[str, int] = {}

        logger.debug("DOCXExporter initialized")

    def to_bytes(self) -> bytes:
        """Build the package and return its bytes."""
        self._reset()
        try:
            self._prepare_parts()
            return self._write_package()
        except ExportError:
            raise
        except Exception as e:
            raise ExportError("Failed to build DOCX package", details=str(e)) from e

    def export(self, output_path: Union[str, Path]) -> Path:
        """Write the package to ``output_path`` and return the path."""
        output_path = Path(output_path)
        data = self.to_bytes()
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except OSError as e:
            raise ExportError(f"Failed to write {output_path}", details=str(e)) from e
        logger.info(f"Document exported to DOCX: {output_path}")
        return output_path

    def _reset(self) -> None:
        self._parts.clear()
        self._relationships.clear()
        self._content_types.clear()
        self._media.clear()
        self._rel_id_counters.clear()
        self.xml_exporter = XMLExporter(
            self.document, image_rel=self._add_image, hyperlink_rel=self._add_hyperlink
        )

    # ------------------------------------------------------------------
    # Parts and relationships
    # ------------------------------------------------------------------
    def _prepare_parts(self) -> None:
        self._add_relationship("_rels/.rels", REL_OFFICE_DOCUMENT, DOCUMENT_PART)
        self._add_relationship("_rels/.rels", REL_CORE_PROPERTIES, CORE_PART)
        self._add_relationship("_rels/.rels", REL_EXTENDED_PROPERTIES, APP_PART)

        document_rels = self._get_relationship_path(DOCUMENT_PART)
        self._add_relationship(document_rels, REL_STYLES, "styles.xml")
        self._add_relationship(document_rels, REL_SETTINGS, "settings.xml")

        # Generating the body registers image and hyperlink relationships
        self._set_part(DOCUMENT_PART, self.xml_exporter.export_document_xml())
        self._set_part(STYLES_PART, self.xml_exporter.export_styles_xml())
        self._set_part(SETTINGS_PART, self.xml_exporter.export_settings_xml())
        self._set_part(CORE_PART, self._generate_core_xml())
        self._set_part(APP_PART, self._generate_app_xml())

    def _set_part(self, part_name: str, content: bytes) -> None:
        self._parts[part_name] = content
        self._content_types[part_name] = CONTENT_TYPE_MAP[part_name]

    def _add_relationship(self, rels_path: str, rel_type: str, target: str, external: bool = False) -> str:
        rel_id = self._get_next_rel_id(rels_path)
        self._relationships.setdefault(rels_path, []).append(
            (rel_id, rel_type, target, "External" if external else "Internal")
        )
        return rel_id

    def _add_image(self, image: OutputImage) -> str:
        extension = image.format_tag if image.format_tag in IMAGE_EXTENSIONS else "png"
        name = f"word/media/image{len(self._media) + 1}.{extension}"
        self._media[name] = image.data
        return self._add_relationship(
            self._get_relationship_path(DOCUMENT_PART), REL_IMAGE, name[len("word/"):]
        )

    def _add_hyperlink(self, target: str) -> str:
        return self._add_relationship(
            self._get_relationship_path(DOCUMENT_PART), REL_HYPERLINK, target, external=True
        )

    def _get_next_rel_id(self, source: str) -> str:
        """Next relationship id of ``source``."""
        self._rel_id_counters[source] = self._rel_id_counters.get(source, 0) + 1
        return f"rId{self._rel_id_counters[source]}"

    @staticmethod
    def _get_relationship_path(part_name: str) -> str:
        # word/document.xml -> word/_rels/document.xml.rels
        if "/" in part_name:
            dir_part, file_part = part_name.rsplit("/", 1)
            return f"{dir_part}/_rels/{file_part}.rels"
        return f"_rels/{part_name}.rels"

    # ------------------------------------------------------------------
    # XML generation
    # ------------------------------------------------------------------
    def _generate_content_types_xml(self) -> bytes:
        ET.register_namespace("", CONTENT_TYPES_NS)
        root = ET.Element(f"{{{CONTENT_TYPES_NS}}}Types")

        for extension, content_type in DEFAULT_CONTENT_TYPES.items():
            default_elem = ET.SubElement(root, f"{{{CONTENT_TYPES_NS}}}Default")
            default_elem.set("Extension", extension)
            default_elem.set("ContentType", content_type)

        for part_name, content_type in self._content_types.items():
            override_elem = ET.SubElement(root, f"{{{CONTENT_TYPES_NS}}}Override")
            override_elem.set("PartName", f"/{part_name}")
            override_elem.set("ContentType", content_type)

        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _generate_relationships_xml(self, relationships: List[Relationship]) -> bytes:
        ET.register_namespace("", OPC_NS)
        root = ET.Element(f"{{{OPC_NS}}}Relationships")

        for rel_id, rel_type, target, target_mode in relationships:
            rel_elem = ET.SubElement(root, f"{{{OPC_NS}}}Relationship")
            rel_elem.set("Id", rel_id)
            rel_elem.set("Type", rel_type)
            rel_elem.set("Target", xml_safe(target))
            if target_mode == "External":
                rel_elem.set("TargetMode", "External")

        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _generate_core_xml(self) -> bytes:
        ET.register_namespace("cp", CORE_NS)
        ET.register_namespace("dc", DC_NS)
        ET.register_namespace("dcterms", DCTERMS_NS)
        ET.register_namespace("xsi", XSI_NS)

        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        root = ET.Element(f"{{{CORE_NS}}}coreProperties")
        ET.SubElement(root, f"{{{DC_NS}}}title").text = xml_safe(self.document.title)
        ET.SubElement(root, f"{{{DC_NS}}}creator").text = APPLICATION_NAME
        ET.SubElement(root, f"{{{CORE_NS}}}lastModifiedBy").text = APPLICATION_NAME
        for tag in ("created", "modified"):
            stamp = ET.SubElement(root, f"{{{DCTERMS_NS}}}{tag}")
            stamp.set(f"{{{XSI_NS}}}type", "dcterms:W3CDTF")
            stamp.text = now

        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    def _generate_app_xml(self) -> bytes:
        ET.register_namespace("", APP_NS)
        root = ET.Element(f"{{{APP_NS}}}Properties")
        ET.SubElement(root, f"{{{APP_NS}}}Application").text = APPLICATION_NAME
        ET.SubElement(root, f"{{{APP_NS}}}AppVersion").text = __version__

        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)

    # ------------------------------------------------------------------
    def _write_package(self) -> bytes:
        """Write all parts into a ZIP archive in memory."""
        files_to_write: Dict[str, bytes] = {
            "[Content_Types].xml": self._generate_content_types_xml(),
            "_rels/.rels": self._generate_relationships_xml(self._relationships["_rels/.rels"]),
        }
        files_to_write.update(self._parts)
        files_to_write.update(self._media)
        for rels_path, rels in self._relationships.items():
            if rels_path != "_rels/.rels" and rels:
                files_to_write[rels_path] = self._generate_relationships_xml(rels)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zip_file:
            for file_name, content in files_to_write.items():
                zip_file.writestr(file_name, content)

        logger.debug(
            f"DOCX package written: {len(files_to_write)} parts, {len(self._media)} media files"
        )
        return buffer.getvalue()
