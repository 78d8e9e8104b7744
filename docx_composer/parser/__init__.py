"""
Parser layer: walks the editor tree into normalized blocks.
"""

from .tree_walker import TreeWalker, extract_blocks

__all__ = ["TreeWalker", "extract_blocks"]
