"""
Symbol resolver — finds the Nth symbol matching name/kind/parent criteria.

The same selection rule serves both the host symbol tree (``SymbolNode``)
and the flat structural node list (``StructuralNode``):

* candidates are visited in document pre-order;
* the parent filter looks at the *immediate* enclosing node only;
* one counter runs across the whole traversal and only advances over
  candidates that passed every filter; the first candidate reaching
  ``occurrence`` wins and the traversal stops.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Sequence

from ..structure.nodes import StructuralNode
from .document import Range, TextDocument

logger = logging.getLogger(__name__)


@dataclass
class SymbolNode:
    """A hierarchical symbol as reported by a host symbol provider."""
    name: str
    kind: str
    range: Range
    children: list["SymbolNode"] = field(default_factory=list)
    detail: str = ""


@dataclass(frozen=True)
class SymbolCriteria:
    """Filter for :func:`find_symbol` / :func:`find_structural_node`."""
    name: str
    kind: Optional[str] = None
    parent_name: Optional[str] = None
    parent_kind: Optional[str] = None
    depth: Optional[int] = None
    occurrence: int = 1

    def matches(
        self,
        name: str,
        kind: str,
        parent_name: Optional[str],
        parent_kind: Optional[str],
        depth: int,
    ) -> bool:
        if name != self.name:
            return False
        if self.kind is not None and not _same_kind(kind, self.kind):
            return False
        if self.depth is not None and depth != self.depth:
            return False
        if self.parent_name is not None:
            if parent_name != self.parent_name:
                return False
            if self.parent_kind is not None and not _same_kind(parent_kind, self.parent_kind):
                return False
        return True


def _same_kind(actual: Optional[str], wanted: str) -> bool:
    return actual is not None and actual.lower() == wanted.lower()


def _select_nth(candidates: Iterable[tuple[object, str, str, Optional[str], Optional[str], int]],
                criteria: SymbolCriteria):
    """Return the candidate that is the ``occurrence``-th match, or None."""
    count = 0
    for item, name, kind, parent_name, parent_kind, depth in candidates:
        if criteria.matches(name, kind, parent_name, parent_kind, depth):
            count += 1
            if count == criteria.occurrence:
                return item
    return None


def _walk_tree(tree: Sequence[SymbolNode]) -> Iterator[tuple[SymbolNode, str, str, Optional[str], Optional[str], int]]:
    """Pre-order walk yielding each symbol with its immediate parent and depth."""
    stack: list[tuple[SymbolNode, Optional[SymbolNode], int]] = [
        (node, None, 0) for node in reversed(tree)
    ]
    while stack:
        node, parent, depth = stack.pop()
        yield (
            node, node.name, node.kind,
            parent.name if parent else None,
            parent.kind if parent else None,
            depth,
        )
        for child in reversed(node.children):
            stack.append((child, node, depth + 1))


def find_symbol(tree: Sequence[SymbolNode], criteria: SymbolCriteria) -> Optional[SymbolNode]:
    """Find the ``criteria.occurrence``-th matching symbol in *tree*.

    Occurrence numbering is global over the pre-order traversal, so "the
    second method of class X" needs ``parent_name="X"``.
    """
    return _select_nth(_walk_tree(tree), criteria)


def find_structural_node(
    nodes: Iterable[StructuralNode],
    criteria: SymbolCriteria,
) -> Optional[StructuralNode]:
    """Find the ``criteria.occurrence``-th matching structural node.

    *nodes* must be in document pre-order, which is how the extractors
    produce them.
    """
    return _select_nth(
        ((n, n.name, n.kind, n.parent, n.parent_kind, n.depth) for n in nodes),
        criteria,
    )


def build_symbol_tree(nodes: Iterable[StructuralNode], document: TextDocument) -> list[SymbolNode]:
    """Nest structural nodes by containment into a host-style symbol tree.

    Symbol kinds are capitalized (``Function``, ``Class``, ``Method`` ...).
    Nodes without a known end become leaves with an empty range.
    """
    roots: list[SymbolNode] = []
    stack: list[tuple[SymbolNode, int]] = []

    for node in sorted(nodes, key=lambda n: (n.start_offset, -n.end_offset)):
        end = node.end_offset if node.is_complete else node.start_offset
        symbol = SymbolNode(
            name=node.name,
            kind=node.kind.capitalize(),
            range=Range(document.position_at(node.start_offset), document.position_at(end)),
            detail=node.parent or "",
        )
        while stack and stack[-1][1] <= node.start_offset:
            stack.pop()
        if stack:
            stack[-1][0].children.append(symbol)
        else:
            roots.append(symbol)
        stack.append((symbol, end))

    logger.debug("[Edit] Built symbol tree with %d root(s)", len(roots))
    return roots
