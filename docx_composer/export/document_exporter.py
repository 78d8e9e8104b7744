"""
Document export engine.

Runs the export pipeline over a rich document:

1. snapshot the rendered geometry (image boxes, table columns, style defaults)
2. walk the tree into blocks
3. collect every image run and resolve all of them concurrently
4. assemble the output document
5. serialize it to a DOCX package

Image failures are isolated per image. Any failure while walking, assembling
or serializing surfaces as ``ExportError``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Protocol, Union

from ..config import ExportOptions, Margins, PageSetup
from ..exceptions import DocxComposerError, ExportError
from ..media.image_resolver import ImageResolver
from ..models.blocks import Block, InlineRun
from ..models.editor import RichDocument
from ..parser.tree_walker import TreeWalker
from .assembler import DocumentAssembler, images_by_index
from .docx_exporter import DOCXExporter
from .geometry import RenderedGeometry

logger = logging.getLogger(__name__)

DocumentSource = Union[RichDocument, Mapping[str, Any]]
MarginsSource = Union[Margins, Mapping[str, Any], str, None]


class Persistence(Protocol):
    """Receives a finished package and a suggested filename."""

    def save(self, data: bytes, filename: str) -> Any:
        ...


class FilePersistence:
    """Saves packages into a directory on the local filesystem."""

    def __init__(self, directory: Union[str, Path] = "."):
        self.directory = Path(directory)

    def save(self, data: bytes, filename: str) -> Path:
        path = self.directory / Path(filename).name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise ExportError(f"Failed to save {path}", details=str(e)) from e
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path


def _coerce_document(document: DocumentSource) -> RichDocument:
    if isinstance(document, RichDocument):
        return document
    return RichDocument.from_dict(document)


def _coerce_margins(margins: MarginsSource) -> Margins:
    if margins is None:
        return Margins()
    if isinstance(margins, Margins):
        return margins
    if isinstance(margins, str):
        return Margins.preset(margins)
    return Margins.from_dict(margins)


class DocumentExporter:
    """Exports one rich document to a DOCX package."""

    def __init__(self, document: DocumentSource,
                 page_setup: Optional[PageSetup] = None,
                 geometry: Optional[RenderedGeometry] = None,
                 options: Optional[ExportOptions] = None,
                 resolver: Optional[ImageResolver] = None):
        self.document = _coerce_document(document)
        self.page_setup = page_setup or PageSetup()
        self.geometry = geometry or RenderedGeometry()
        self.options = options or ExportOptions()
        self.resolver = resolver or ImageResolver(self.options)

    async def export_async(self) -> bytes:
        """Run the pipeline and return the package bytes."""
        geometry = self.geometry.snapshot()

        try:
            blocks = TreeWalker(geometry.defaults).extract_blocks(self.document)
        except DocxComposerError as e:
            raise ExportError("Failed to read document", details=str(e)) from e

        image_runs = self._collect_image_runs(blocks)
        resolved = await self.resolver.resolve_all([run.image_source for run in image_runs])
        images = images_by_index([run.image_index for run in image_runs], resolved)
        failed = sum(1 for image in resolved if image is None)
        if failed:
            logger.warning(f"{failed} of {len(image_runs)} images could not be resolved")

        try:
            output = DocumentAssembler(self.page_setup, self.options, geometry).assemble(blocks, images)
            data = DOCXExporter(output).to_bytes()
        except ExportError:
            raise
        except Exception as e:
            raise ExportError("Failed to assemble document", details=str(e)) from e

        logger.info(
            f"Exported {len(blocks)} blocks and {len(image_runs) - failed} images "
            f"({len(data)} bytes)"
        )
        return data

    def export(self) -> bytes:
        """Synchronous wrapper around ``export_async``."""
        return asyncio.run(self.export_async())

    async def save_async(self, persistence: Persistence, filename: Optional[str] = None) -> Any:
        data = await self.export_async()
        return persistence.save(data, filename or self.options.filename)

    def save(self, persistence: Persistence, filename: Optional[str] = None) -> Any:
        """Export and hand the package to ``persistence``."""
        data = self.export()
        return persistence.save(data, filename or self.options.filename)

    @staticmethod
    def _collect_image_runs(blocks: List[Block]) -> List[InlineRun]:
        runs: List[InlineRun] = []
        for block in blocks:
            runs.extend(run for run in block.image_runs() if run.image_index is not None)
        return runs


def export_document(document: DocumentSource, margins: MarginsSource = None,
                    geometry: Optional[RenderedGeometry] = None,
                    options: Optional[ExportOptions] = None,
                    page_setup: Optional[PageSetup] = None) -> bytes:
    """
    Export ``document`` to DOCX bytes.

    ``margins`` may be a ``Margins`` value, a mapping of pixel values or a
    preset name. It replaces the margins of ``page_setup`` when both are given.
    """
    setup = page_setup or PageSetup()
    if margins is not None or page_setup is None:
        setup = PageSetup(width_px=setup.width_px, height_px=setup.height_px, margins=_coerce_margins(margins))
    return DocumentExporter(document, page_setup=setup, geometry=geometry, options=options).export()
