"""
Batch applier — folds a list of text edits for one document into new text.

Edits are converted to absolute offsets against the *original* text and
spliced bottom-up (descending start offset), so an edit that changes the
length of the text never shifts the offsets of the edits still to apply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .document import TextDocument, TextEdit
from .errors import OverlappingEditsError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OffsetEdit:
    """A text edit expressed as absolute character offsets."""
    start: int
    end: int
    new_text: str
    index: int  # position in the submitted list

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end


def to_offset_edits(document: TextDocument, edits: Sequence[TextEdit]) -> list[OffsetEdit]:
    """Convert every edit's range to offsets in *document*."""
    return [
        OffsetEdit(
            start=document.offset_at(edit.range.start),
            end=document.offset_at(edit.range.end),
            new_text=edit.new_text,
            index=i,
        )
        for i, edit in enumerate(edits)
    ]


def check_overlaps(offset_edits: Sequence[OffsetEdit]) -> None:
    """Raise :class:`OverlappingEditsError` if two edits cover the same text.

    Touching edits are fine, as are insertions at the boundary of another
    edit or several insertions at the same point.  An insertion strictly
    inside a replaced span is an overlap.
    """
    spans = sorted((e for e in offset_edits if not e.is_insertion), key=lambda e: (e.start, e.end))
    for prev, cur in zip(spans, spans[1:]):
        if cur.start < prev.end:
            raise OverlappingEditsError(
                f"Edits {prev.index + 1} ({prev.start}-{prev.end}) and "
                f"{cur.index + 1} ({cur.start}-{cur.end}) overlap"
            )
    for ins in (e for e in offset_edits if e.is_insertion):
        for span in spans:
            if span.start < ins.start < span.end:
                raise OverlappingEditsError(
                    f"Insertion {ins.index + 1} at {ins.start} falls inside "
                    f"edit {span.index + 1} ({span.start}-{span.end})"
                )


def apply_edits(original_text: str, edits: Sequence[TextEdit], strict: bool = True) -> str:
    """Return *original_text* with every edit applied.

    Parameters
    ----------
    original_text:
        The text the edit ranges were computed against.
    edits:
        Text edits in any order.
    strict:
        When true, overlapping edits raise :class:`OverlappingEditsError`.
        When false they are applied anyway in descending start order, so the
        result is deterministic but probably not what anyone wanted.
    """
    if not edits:
        return original_text

    document = TextDocument(original_text)
    offset_edits = to_offset_edits(document, edits)
    if strict:
        check_overlaps(offset_edits)

    # Insertions sharing a position end up in submitted order
    ordered = sorted(offset_edits, key=lambda e: (e.start, e.end, e.index), reverse=True)

    text = original_text
    for edit in ordered:
        text = text[:edit.start] + edit.new_text + text[edit.end:]

    logger.debug("[Edit] Applied %d edit(s): %d -> %d chars",
                 len(ordered), len(original_text), len(text))
    return text
