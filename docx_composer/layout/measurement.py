"""
Measurement provider and break applier contracts.

The pagination engine never touches a rendering surface directly. It reads
``MeasuredBox`` records from a ``MeasurementProvider`` and hands its break
instructions to a ``BreakApplier`` that owns the document tree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

from ..exceptions import LayoutError
from ..models.editor import EditorNode, RichDocument

logger = logging.getLogger(__name__)

ROOT_ELEMENT_ID = "root"


@dataclass(frozen=True, slots=True)
class MeasuredBox:
    """Height of one top-level rendered box, produced fresh for every pass."""

    element_id: str
    height_px: float
    is_break_marker: bool = False
    leading_space_px: float = 0.0


class MeasurementProvider(Protocol):
    def get_root_element_id(self) -> Optional[str]:
        ...

    def list_rendered_boxes(self, root_id: str) -> Sequence[MeasuredBox]:
        ...


class BreakApplier(Protocol):
    def insert_break_before(self, element_id: str, leading_space_px: float) -> bool:
        ...


class StaticMeasurementProvider:
    """Provider over a fixed list of boxes, e.g. a snapshot sent by a browser client."""

    def __init__(self, boxes: Sequence[MeasuredBox], root_id: Optional[str] = ROOT_ELEMENT_ID):
        self.boxes: List[MeasuredBox] = list(boxes)
        self.root_id = root_id

    def get_root_element_id(self) -> Optional[str]:
        return self.root_id

    def list_rendered_boxes(self, root_id: str) -> Sequence[MeasuredBox]:
        return list(self.boxes)


class DocumentMeasurementProvider:
    """
    Provider over a ``RichDocument`` and a map of measured heights.

    Heights are keyed by top-level node key. Page-break nodes are reported as
    break markers; content nodes without a measurement are reported with
    ``default_height_px``.
    """

    def __init__(self, document: RichDocument, heights: Mapping[str, float],
                 default_height_px: float = 0.0):
        self.document = document
        self.heights: Dict[str, float] = dict(heights)
        self.default_height_px = default_height_px

    def get_root_element_id(self) -> Optional[str]:
        return ROOT_ELEMENT_ID if self.document is not None else None

    def list_rendered_boxes(self, root_id: str) -> Sequence[MeasuredBox]:
        boxes = []
        for node in self.document:
            if node.is_page_break:
                boxes.append(MeasuredBox(
                    element_id=node.key,
                    height_px=0.0,
                    is_break_marker=True,
                    leading_space_px=float(node.get("leadingSpacePx", 0.0) or 0.0),
                ))
                continue
            height = self.heights.get(node.key)
            if height is None:
                logger.debug(f"No measurement for node {node.key}; using {self.default_height_px}px")
                height = self.default_height_px
            if height < 0:
                raise LayoutError(f"Negative height measured for node {node.key}", details=str(height))
            boxes.append(MeasuredBox(element_id=node.key, height_px=float(height)))
        return boxes


class DocumentBreakApplier:
    """Applies pagination instructions to a ``RichDocument``."""

    def __init__(self, document: RichDocument):
        self.document = document

    def insert_break_before(self, element_id: str, leading_space_px: float) -> bool:
        marker = EditorNode.page_break(leading_space_px=leading_space_px)
        return self.document.insert_before(element_id, marker)
