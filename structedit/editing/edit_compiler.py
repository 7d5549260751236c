"""
Edit compiler — turns a resolved match plus an action into one concrete
``TextEdit``, and compiles whole batches in two phases (resolve every
instruction, then compile every instruction) so a bad instruction aborts
the batch before anything is produced.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .document import Position, Range, TextDocument, TextEdit
from .errors import EditError, InvalidActionForMatchError
from .match_resolver import MatchResolver, ResolutionContext
from .models import (
    ALLOWED_MATCHES, STRUCTURAL_MATCHES, ASTNodeMatch, ApiEdit, LineMatch, LinesMatch,
)

logger = logging.getLogger(__name__)


def apply_indentation(text: str, indent: str) -> str:
    """Indent the continuation lines of *text* with *indent*.

    The first line is left alone (it lands after the existing indentation).
    Every later non-blank line gets *indent* prepended.  Text whose first
    line already carries *indent* is taken as absolutely indented: only that
    first copy of the indent is dropped.
    """
    if not indent:
        return text
    if text.startswith(indent):
        return text[len(indent):]
    lines = text.split("\n")
    if len(lines) == 1:
        return text
    return "\n".join([lines[0]] + [indent + line if line.strip() else line for line in lines[1:]])


class EditCompiler:
    """Compile ``(action, resolved range)`` pairs into text edits."""

    def __init__(self, document: TextDocument, normalize_indentation: bool = True) -> None:
        self.document = document
        self.normalize_indentation = normalize_indentation
        self._actions = {
            "replace": self._replace,
            "delete": self._delete,
            "insert-before": self._insert_before,
            "insert-after": self._insert_after,
            "prepend": self._prepend,
            "append": self._append,
        }

    def compile(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        """Produce the text edit for *edit* whose match resolved to *resolved*."""
        if not isinstance(edit.match, ALLOWED_MATCHES.get(edit.action_type, ())):
            raise InvalidActionForMatchError(
                f"Invalid match type for '{edit.action_type}': {edit.match.match_type}"
            )
        return self._actions[edit.action_type](edit, resolved)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _replace(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        return TextEdit(resolved, self._structural_text(edit, resolved))

    def _delete(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        rng = resolved
        if isinstance(edit.match, LinesMatch) and resolved.end.line + 1 < self.document.line_count:
            # Take the line break too, so the lines disappear entirely
            rng = Range(resolved.start, Position(resolved.end.line + 1, 0))
        return TextEdit(rng, "")

    def _insert_before(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        position = resolved.start
        if isinstance(edit.match, LineMatch):
            text = edit.new_text + self.document.eol_at(resolved.start.line)
        else:
            text = self._structural_text(edit, resolved)
            if self.normalize_indentation and isinstance(edit.match, STRUCTURAL_MATCHES) \
                    and text.endswith("\n"):
                # The node itself keeps its column
                text += self._indent_of(resolved)
        return TextEdit(Range.empty(position), text)

    def _insert_after(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        position = resolved.end
        if isinstance(edit.match, LineMatch):
            eol = self.document.eol_at(position.line)
            return TextEdit(Range.empty(position), eol + edit.new_text)

        text = self._structural_text(edit, resolved)
        if isinstance(edit.match, STRUCTURAL_MATCHES):
            offset = self.document.offset_at(position)
            if offset > 0 and self.document.text[offset - 1] not in "\r\n":
                indent = self._indent_of(resolved) if self.normalize_indentation else ""
                eol = self.document.eol_at(position.line)
                text = eol + eol + indent + text
        return TextEdit(Range.empty(position), text)

    def _prepend(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        return TextEdit(Range.empty(Position(resolved.start.line, 0)), edit.new_text)

    def _append(self, edit: ApiEdit, resolved: Range) -> TextEdit:
        return TextEdit(Range.empty(resolved.end), edit.new_text)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _structural_text(self, edit: ApiEdit, resolved: Range) -> str:
        if not self.normalize_indentation or not isinstance(edit.match, STRUCTURAL_MATCHES):
            return edit.new_text
        return apply_indentation(edit.new_text, self._indent_of(resolved))

    def _indent_of(self, resolved: Range) -> str:
        """Leading whitespace of the line where *resolved* starts."""
        line = self.document.line_text(resolved.start.line)[:resolved.start.character]
        return line[:len(line) - len(line.lstrip())]


def compile_edits(
    edits: Sequence[ApiEdit],
    context: ResolutionContext,
    normalize_indentation: bool = True,
) -> list[TextEdit]:
    """Resolve and compile a batch of edits for one document.

    Every match is resolved before any edit is compiled.  The first failure
    aborts the batch; the raised :class:`EditError` carries the failing
    instruction and its index.
    """
    resolver = MatchResolver(context)
    compiler = EditCompiler(context.document, normalize_indentation=normalize_indentation)

    resolved: list[Range] = []
    for index, edit in enumerate(edits):
        try:
            # Inserting before a node only needs its start
            open_end = edit.action_type == "insert-before" and isinstance(edit.match, ASTNodeMatch)
            resolved.append(resolver.resolve(edit.match, allow_open_end=open_end))
        except EditError as exc:
            logger.warning("[Edit] Instruction %d (%s) failed to resolve: %s",
                           index + 1, edit.action_type, exc)
            raise exc.annotate(index, edit)

    text_edits: list[TextEdit] = []
    for index, (edit, rng) in enumerate(zip(edits, resolved)):
        try:
            text_edits.append(compiler.compile(edit, rng))
        except EditError as exc:
            raise exc.annotate(index, edit)

    logger.debug("[Edit] Compiled %d edit(s) for %s", len(text_edits),
                 context.document.uri or "<buffer>")
    return text_edits
