"""
Document model — converts between (line, character) positions and flat
character offsets for an immutable text snapshot.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass

from .errors import OutOfRangeError


@dataclass(frozen=True, order=True)
class Position:
    """A zero-based (line, character) location."""
    line: int
    character: int

    def __str__(self) -> str:
        return f"{self.line}:{self.character}"


@dataclass(frozen=True)
class Range:
    """A half-open span between two positions (``start <= end``)."""
    start: Position
    end: Position

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Invalid range: start ({self.start}) > end ({self.end})")

    @classmethod
    def empty(cls, position: Position) -> "Range":
        return cls(position, position)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class TextEdit:
    """Replace ``range`` with ``new_text``.

    An empty ``new_text`` is a pure deletion; an empty range is a pure
    insertion at that boundary.
    """
    range: Range
    new_text: str

    @property
    def is_insertion(self) -> bool:
        return self.range.is_empty

    @property
    def is_deletion(self) -> bool:
        return self.new_text == ""

    def to_dict(self) -> dict:
        return {
            "range": {
                "start": {"line": self.range.start.line, "character": self.range.start.character},
                "end": {"line": self.range.end.line, "character": self.range.end.character},
            },
            "newText": self.new_text,
        }


def text_extent(start: Position, text: str) -> Position:
    """Return the position reached after writing *text* starting at *start*."""
    newlines = text.count("\n")
    if newlines == 0:
        return Position(start.line, start.character + len(text))
    return Position(start.line + newlines, len(text) - text.rfind("\n") - 1)


class TextDocument:
    """Position/offset arithmetic over a fixed text snapshot.

    Lines are split on ``\\n``; a ``\\r`` right before the ``\\n`` is part of
    the terminator and is excluded from :meth:`line_range`.
    """

    def __init__(self, text: str, uri: str = "") -> None:
        self._text = text
        self.uri = uri
        self._line_starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    @property
    def eol(self) -> str:
        """The document's line terminator, taken from its first line break."""
        first = self._text.find("\n")
        if first > 0 and self._text[first - 1] == "\r":
            return "\r\n"
        return "\n"

    def eol_at(self, line: int) -> str:
        """Terminator of *line*, or :attr:`eol` for a last line without one."""
        self._check_line(line)
        end = self._raw_line_end(line)
        if end >= len(self._text):
            return self.eol
        if end > self._line_starts[line] and self._text[end - 1] == "\r":
            return "\r\n"
        return "\n"

    def __len__(self) -> int:
        return len(self._text)

    # ------------------------------------------------------------------
    # Offsets
    # ------------------------------------------------------------------

    def position_at(self, offset: int) -> Position:
        """Convert a character offset into a position."""
        if offset < 0 or offset > len(self._text):
            raise OutOfRangeError(
                f"Offset {offset} is outside the document (length {len(self._text)})"
            )
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])

    def offset_at(self, position: Position) -> int:
        """Convert a position into a character offset."""
        self._check_line(position.line)
        start = self._line_starts[position.line]
        limit = self._raw_line_end(position.line) - start
        if position.character < 0 or position.character > limit:
            raise OutOfRangeError(
                f"Character {position.character} is outside line {position.line} "
                f"(length {limit})"
            )
        return start + position.character

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def line_text(self, line: int) -> str:
        """Return the text of *line* without its terminator."""
        r = self.line_range(line)
        return self._text[self._line_starts[line]:self._line_starts[line] + r.end.character]

    def line_range(self, line: int) -> Range:
        """Return the range of *line* excluding its line terminator."""
        self._check_line(line)
        start = self._line_starts[line]
        end = self._raw_line_end(line)
        if end > start and self._text[end - 1] == "\r":
            end -= 1
        return Range(Position(line, 0), Position(line, end - start))

    def get_text(self, rng: Range | None = None) -> str:
        """Return the whole text, or the text covered by *rng*."""
        if rng is None:
            return self._text
        return self._text[self.offset_at(rng.start):self.offset_at(rng.end)]

    def full_range(self) -> Range:
        return Range(Position(0, 0), self.position_at(len(self._text)))

    def _raw_line_end(self, line: int) -> int:
        """Offset of the ``\\n`` ending *line* (or end of text)."""
        if line + 1 < len(self._line_starts):
            return self._line_starts[line + 1] - 1
        return len(self._text)

    def _check_line(self, line: int) -> None:
        if line < 0 or line >= len(self._line_starts):
            raise OutOfRangeError(
                f"Line {line} is outside the document ({len(self._line_starts)} lines)"
            )
