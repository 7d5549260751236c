"""Structural node record produced by the extractors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

NODE_KINDS: frozenset[str] = frozenset({
    "function", "class", "method", "property", "interface",
    "type", "enum", "variable", "trait",
})

# Node kinds whose members are nested one level deeper
CLASS_LIKE_KINDS: frozenset[str] = frozenset({"class", "interface", "trait", "enum"})


@dataclass(frozen=True)
class StructuralNode:
    """A named, typed span of source text.

    ``end_offset`` is ``-1`` when the extractor could not determine where the
    node ends (regex fallback).  Offsets are character offsets into the
    source string; lines are zero-based.
    """
    kind: str
    name: str
    depth: int
    start_offset: int
    end_offset: int
    start_line: int
    end_line: int
    parent: Optional[str] = None
    parent_kind: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.end_offset >= 0

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "name": self.name,
            "depth": self.depth,
            "parent": self.parent,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "startLine": self.start_line,
            "endLine": self.end_line,
        }
