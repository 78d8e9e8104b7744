"""
Export: rendered geometry, table layout, assembly and DOCX packaging.
"""

from .assembler import DocumentAssembler
from .document_exporter import DocumentExporter, FilePersistence, Persistence, export_document
from .docx_exporter import DOCXExporter
from .geometry import RenderedGeometry
from .table_layout import ResolvedTableGeometry, TableLayoutResolver
from .xml_exporter import XMLExporter

__all__ = [
    "DocumentAssembler",
    "DocumentExporter",
    "FilePersistence",
    "Persistence",
    "export_document",
    "DOCXExporter",
    "RenderedGeometry",
    "ResolvedTableGeometry",
    "TableLayoutResolver",
    "XMLExporter",
]
