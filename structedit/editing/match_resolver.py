"""
Match resolver — reduces a declarative match specification to a concrete
range in one document snapshot.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional, Pattern, Sequence, Union

from ..structure import extract_nodes, language_for
from ..structure.nodes import StructuralNode
from .document import Position, Range, TextDocument
from .errors import IncompleteNodeError, MatchNotFoundError, OutOfRangeError, RequestError
from .models import (
    ASTNodeMatch, LineMatch, LinesMatch, MatchSpec, RegexMatch, StrMatch,
    SymbolMatch, WholeFileMatch, describe_match,
)
from .symbol_resolver import (
    SymbolCriteria, SymbolNode, find_structural_node, find_symbol,
)

logger = logging.getLogger(__name__)


def find_nth_match(
    content: str,
    search: Union[str, Pattern[str]],
    n: int,
    literal: bool = False,
) -> Optional[tuple[int, int]]:
    """Return ``(start, end)`` of the *n*-th non-overlapping match, or None.

    Parameters
    ----------
    content:
        Text to scan, left to right.
    search:
        A regular expression (string or compiled), or a literal string when
        *literal* is true.
    n:
        1-based occurrence.
    """
    if n < 1:
        return None
    if literal:
        regex = re.compile(re.escape(search))
    elif isinstance(search, str):
        try:
            regex = re.compile(search)
        except re.error as exc:
            raise RequestError(f"Invalid regex {search!r}: {exc}") from exc
    else:
        regex = search

    count = 0
    for m in regex.finditer(content):
        count += 1
        if count == n:
            return m.start(), m.end()
    return None


class ResolutionContext:
    """Everything a match can be resolved against for one document.

    *language* is used for structural extraction only when the document
    URI has no recognized extension.

    Structural nodes are extracted at most once, and the host symbol tree is
    fetched at most once, both on first use.
    """

    def __init__(
        self,
        document: TextDocument,
        language: Optional[str] = None,
        symbol_source: Optional[Callable[[], Sequence[SymbolNode]]] = None,
        structural_nodes: Optional[list[StructuralNode]] = None,
    ) -> None:
        self.document = document
        self.language = language
        self._symbol_source = symbol_source
        self._nodes = structural_nodes
        self._symbols: Optional[Sequence[SymbolNode]] = None

    @property
    def structural_nodes(self) -> list[StructuralNode]:
        if self._nodes is None:
            language = language_for(self.document.uri, self.language)
            self._nodes = extract_nodes(self.document.text, language)
            logger.debug("[Edit] Extracted %d structural node(s) from %s",
                         len(self._nodes), self.document.uri or "<buffer>")
        return self._nodes

    @property
    def symbols(self) -> Sequence[SymbolNode]:
        if self._symbols is None:
            if self._symbol_source is None:
                self._symbols = []
            else:
                self._symbols = self._symbol_source() or []
        return self._symbols


class MatchResolver:
    """Resolve match specifications against a :class:`ResolutionContext`."""

    def __init__(self, context: ResolutionContext) -> None:
        self.context = context
        self._dispatch: dict[type, Callable[..., Range]] = {
            LinesMatch: self._resolve_lines,
            LineMatch: self._resolve_line,
            RegexMatch: self._resolve_regex,
            StrMatch: self._resolve_str,
            WholeFileMatch: self._resolve_whole_file,
            SymbolMatch: self._resolve_symbol,
            ASTNodeMatch: self._resolve_ast,
        }

    @property
    def document(self) -> TextDocument:
        return self.context.document

    def resolve(self, match: MatchSpec, allow_open_end: bool = False) -> Range:
        """Resolve *match* to a range.

        Position-like results (an AST node whose end is unknown, accepted
        only with *allow_open_end*) come back as empty ranges.
        """
        handler = self._dispatch.get(type(match))
        if handler is None:
            raise RequestError(f"Unhandled match type: {type(match).__name__}")
        if isinstance(match, ASTNodeMatch):
            return handler(match, allow_open_end)
        return handler(match)

    # ------------------------------------------------------------------
    # Line based
    # ------------------------------------------------------------------

    def _resolve_lines(self, match: LinesMatch) -> Range:
        start, end = match.start - 1, match.end - 1
        if start < 0 or end >= self.document.line_count or start > end:
            raise OutOfRangeError(
                f"Invalid line range {match.start}-{match.end} "
                f"(document has {self.document.line_count} lines)"
            )
        return Range(Position(start, 0), self.document.line_range(end).end)

    def _resolve_line(self, match: LineMatch) -> Range:
        line = match.at - 1
        if line < 0 or line >= self.document.line_count:
            raise OutOfRangeError(
                f"Invalid line {match.at} (document has {self.document.line_count} lines)"
            )
        return self.document.line_range(line)

    # ------------------------------------------------------------------
    # Text search
    # ------------------------------------------------------------------

    def _resolve_regex(self, match: RegexMatch) -> Range:
        found = find_nth_match(self.document.text, match.pattern, match.occurrence)
        return self._offsets_to_range(found, match)

    def _resolve_str(self, match: StrMatch) -> Range:
        found = find_nth_match(self.document.text, match.text, match.occurrence, literal=True)
        return self._offsets_to_range(found, match)

    def _offsets_to_range(self, found: Optional[tuple[int, int]], match: MatchSpec) -> Range:
        if found is None:
            raise MatchNotFoundError(f"Could not find {describe_match(match)}", spec=match)
        return Range(self.document.position_at(found[0]), self.document.position_at(found[1]))

    def _resolve_whole_file(self, match: WholeFileMatch) -> Range:
        return self.document.full_range()

    # ------------------------------------------------------------------
    # Structural
    # ------------------------------------------------------------------

    def _resolve_symbol(self, match: SymbolMatch) -> Range:
        criteria = SymbolCriteria(
            name=match.name,
            kind=match.kind,
            parent_name=match.parent_name,
            parent_kind=match.parent_kind,
            occurrence=match.occurrence,
        )
        symbol = find_symbol(self.context.symbols, criteria)
        if symbol is None:
            raise MatchNotFoundError(f"Could not find {describe_match(match)}", spec=match)
        return symbol.range

    def _resolve_ast(self, match: ASTNodeMatch, allow_open_end: bool = False) -> Range:
        criteria = SymbolCriteria(
            name=match.name,
            kind=match.node_kind,
            parent_name=match.parent,
            depth=match.depth,
            occurrence=match.occurrence,
        )
        node = find_structural_node(self.context.structural_nodes, criteria)
        if node is None:
            raise MatchNotFoundError(f"Could not find {describe_match(match)}", spec=match)

        start = self.document.position_at(node.start_offset)
        if not node.is_complete:
            if allow_open_end:
                return Range.empty(start)
            raise IncompleteNodeError(
                f"{describe_match(match)} was found but its end could not be determined",
                node=node,
            )
        return Range(start, self.document.position_at(node.end_offset))