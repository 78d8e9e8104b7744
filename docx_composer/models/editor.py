"""
Editor document model.

The editing surface owns its document as a tree of typed nodes which it can
serialize to JSON. ``RichDocument`` wraps the top-level sequence of that tree
and offers the few structural mutations the pagination engine needs
(inserting and removing page-break nodes).
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from ..exceptions import DocumentModelError

logger = logging.getLogger(__name__)

PAGE_BREAK_TYPE = "page-break"
LEAF_TYPES = ("text", "linebreak", "image", PAGE_BREAK_TYPE)

# Text format bit mask used by the editor's serialized text nodes
FORMAT_BOLD = 1
FORMAT_ITALIC = 1 << 1
FORMAT_STRIKETHROUGH = 1 << 2
FORMAT_UNDERLINE = 1 << 3
FORMAT_CODE = 1 << 4
FORMAT_SUBSCRIPT = 1 << 5
FORMAT_SUPERSCRIPT = 1 << 6


def new_key() -> str:
    return uuid.uuid4().hex[:12]


@dataclass
class EditorNode:
    """A node of the editor tree (block container, inline container or leaf)."""

    type: str
    children: List["EditorNode"] = field(default_factory=list)
    props: Dict[str, Any] = field(default_factory=dict)
    key: str = field(default_factory=new_key)

    @classmethod
    def page_break(cls, leading_space_px: float = 0.0) -> "EditorNode":
        return cls(PAGE_BREAK_TYPE, props={"version": 1, "leadingSpacePx": leading_space_px})

    @classmethod
    def from_dict(cls, data: Any) -> "EditorNode":
        if not isinstance(data, dict):
            raise DocumentModelError("Editor node must be an object", details=repr(data)[:80])
        node_type = data.get("type")
        if not isinstance(node_type, str) or not node_type:
            raise DocumentModelError("Editor node is missing its type", details=repr(data)[:80])

        raw_children = data.get("children", [])
        if not isinstance(raw_children, list):
            raise DocumentModelError(f"Children of '{node_type}' node must be a list")

        props = {k: v for k, v in data.items() if k not in ("type", "children", "key")}
        key = data.get("key")
        return cls(
            type=node_type,
            children=[cls.from_dict(child) for child in raw_children],
            props=props,
            key=str(key) if key not in (None, "") else new_key(),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "key": self.key}
        data.update(self.props)
        if self.children or self.type not in LEAF_TYPES:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    @property
    def is_page_break(self) -> bool:
        return self.type == PAGE_BREAK_TYPE

    @property
    def text(self) -> str:
        value = self.props.get("text", "")
        return value if isinstance(value, str) else str(value)

    def get(self, name: str, default: Any = None) -> Any:
        return self.props.get(name, default)

    def has_format(self, flag: int) -> bool:
        fmt = self.props.get("format", 0)
        return isinstance(fmt, int) and not isinstance(fmt, bool) and bool(fmt & flag)

    def walk(self) -> Iterator["EditorNode"]:
        """Iterate over this node and its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def get_text_content(self) -> str:
        if self.type == "text":
            return self.text
        if self.type == "linebreak":
            return "\n"
        return "".join(child.get_text_content() for child in self.children)


class RichDocument:
    """Ordered sequence of top-level block nodes."""

    def __init__(self, children: Optional[List[EditorNode]] = None):
        self.children: List[EditorNode] = list(children or [])

    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RichDocument":
        """Build a document from a serialized editor state.

        Accepts both ``{"root": {...}}`` and a bare root node.
        """
        if not isinstance(data, dict):
            raise DocumentModelError("Editor state must be an object")
        root = data.get("root", data)
        if not isinstance(root, dict):
            raise DocumentModelError("Editor state root must be an object")
        if root.get("type", "root") != "root":
            raise DocumentModelError("Editor state root has wrong type", details=str(root.get("type")))
        children = root.get("children", [])
        if not isinstance(children, list):
            raise DocumentModelError("Root children must be a list")
        return cls([EditorNode.from_dict(child) for child in children])

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "RichDocument":
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise DocumentModelError("Editor state is not valid JSON", details=str(exc)) from exc
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": {
                "type": "root",
                "children": [child.to_dict() for child in self.children],
            }
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> Iterator[EditorNode]:
        return iter(self.children)

    def is_empty(self) -> bool:
        return not self.children

    def index_of(self, key: str) -> int:
        for index, child in enumerate(self.children):
            if child.key == key:
                return index
        return -1

    def find(self, key: str) -> Optional[EditorNode]:
        for child in self.children:
            for node in child.walk():
                if node.key == key:
                    return node
        return None

    def insert_before(self, key: str, node: EditorNode) -> bool:
        """Insert ``node`` as a top-level sibling immediately before ``key``."""
        index = self.index_of(key)
        if index < 0:
            logger.debug(f"insert_before: no top-level node with key {key}")
            return False
        self.children.insert(index, node)
        return True

    def remove(self, key: str) -> Optional[EditorNode]:
        index = self.index_of(key)
        if index < 0:
            return None
        return self.children.pop(index)

    def page_breaks(self) -> List[EditorNode]:
        return [child for child in self.children if child.is_page_break]

    def get_text_content(self) -> str:
        return "\n".join(child.get_text_content() for child in self.children)
