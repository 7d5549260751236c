"""
Language-neutral regex extractor used when no language-specific extractor
is registered.  It only finds where declarations start; every node it
produces has ``end_offset == -1``.
"""

from __future__ import annotations

import re
from typing import Iterator

from .base import StructureExtractor
from .nodes import StructuralNode

_CLASS_RE = re.compile(
    r"^[ \t]*(?P<decl>(?:export\s+(?:default\s+)?)?"
    r"(?:(?:public|private|protected|internal|abstract|final|static|sealed|partial)\s+)*"
    r"(?P<kind>class|interface|trait|enum|struct)\s+(?P<name>[A-Za-z_$][\w$]*))",
    re.MULTILINE,
)

_FUNCTION_RE = re.compile(
    r"\b(?P<decl>(?:function|def|func|fn|sub)\s+(?P<name>[A-Za-z_$][\w$]*))\s*\(",
)

_KIND_MAP = {"struct": "class"}


class RegexFallbackExtractor(StructureExtractor):
    """Best-effort extraction of class-like and function declarations."""

    languages = ("unknown",)

    def extract(self, source: str, language: str = "unknown") -> Iterator[StructuralNode]:
        found: list[StructuralNode] = []
        for m in _CLASS_RE.finditer(source):
            kind = m.group("kind")
            found.append(self._node(source, _KIND_MAP.get(kind, kind), m.group("name"), m.start("decl")))
        for m in _FUNCTION_RE.finditer(source):
            found.append(self._node(source, "function", m.group("name"), m.start("decl")))

        found.sort(key=lambda n: n.start_offset)
        yield from found

    @staticmethod
    def _node(source: str, kind: str, name: str, start: int) -> StructuralNode:
        line = source.count("\n", 0, start)
        return StructuralNode(
            kind=kind,
            name=name,
            depth=0,
            start_offset=start,
            end_offset=-1,
            start_line=line,
            end_line=line,
        )
