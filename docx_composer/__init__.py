"""
DOCX Composer - paginated rich-text documents exported to DOCX.

Main Components:
- Models: editor document tree, normalized blocks, output document
- Layout: measurement contracts and the pagination engine
- Parser: tree walker turning the editor tree into blocks
- Styles: inline style normalization and editor-wide defaults
- Media: image fetching, decoding and sizing
- Export: assembly and WordprocessingML packaging
- Utils: unit conversions and logging
"""

from .version import __version__

from .config import ExportOptions, Margins, PageSetup, PaginationOptions
from .exceptions import (
    ConfigurationError,
    DocumentModelError,
    DocxComposerError,
    ExportError,
    LayoutError,
    MediaError,
)
from .export import DocumentExporter, FilePersistence, RenderedGeometry, export_document
from .layout import MeasuredBox, Paginator, plan_pass
from .models import EditorNode, RichDocument
from .parser import TreeWalker, extract_blocks
from .styles import StyleDefaults

__author__ = "DOCX Composer Team"

__all__ = [
    "__version__",
    "ExportOptions",
    "Margins",
    "PageSetup",
    "PaginationOptions",
    "ConfigurationError",
    "DocumentModelError",
    "DocxComposerError",
    "ExportError",
    "LayoutError",
    "MediaError",
    "DocumentExporter",
    "FilePersistence",
    "RenderedGeometry",
    "export_document",
    "MeasuredBox",
    "Paginator",
    "plan_pass",
    "EditorNode",
    "RichDocument",
    "TreeWalker",
    "extract_blocks",
    "StyleDefaults",
]
