"""Document models: editor tree, normalized blocks and the output document."""

from .blocks import (
    BLOCK_HEADING,
    BLOCK_IMAGE,
    BLOCK_LIST_ITEM,
    BLOCK_PAGE_BREAK,
    BLOCK_PARAGRAPH,
    BLOCK_QUOTE,
    BLOCK_TABLE,
    Block,
    InlineRun,
    TableCell,
)
from .editor import PAGE_BREAK_TYPE, EditorNode, RichDocument
from .output import (
    OutputCell,
    OutputDocument,
    OutputHyperlink,
    OutputImage,
    OutputParagraph,
    OutputRun,
    OutputSection,
    OutputTable,
)

__all__ = [
    "BLOCK_HEADING",
    "BLOCK_IMAGE",
    "BLOCK_LIST_ITEM",
    "BLOCK_PAGE_BREAK",
    "BLOCK_PARAGRAPH",
    "BLOCK_QUOTE",
    "BLOCK_TABLE",
    "Block",
    "InlineRun",
    "TableCell",
    "PAGE_BREAK_TYPE",
    "EditorNode",
    "RichDocument",
    "OutputCell",
    "OutputDocument",
    "OutputHyperlink",
    "OutputImage",
    "OutputParagraph",
    "OutputRun",
    "OutputSection",
    "OutputTable",
]
