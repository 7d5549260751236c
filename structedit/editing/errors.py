"""
Error taxonomy for edit resolution, compilation and application.

Resolution and compilation errors abort the whole batch before anything is
applied.  ``EditError.index`` / ``EditError.instruction`` are filled in by
the batch compiler so callers can report the offending instruction verbatim.
"""

from __future__ import annotations

from typing import Any, Optional


class EditError(Exception):
    """Base class for all edit engine errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.index: Optional[int] = None
        self.instruction: Any = None

    def annotate(self, index: int, instruction: Any) -> "EditError":
        """Attach the batch position and the instruction that failed."""
        self.index = index
        self.instruction = instruction
        return self


class RequestError(EditError):
    """Raised when an edit request is malformed."""


class OutOfRangeError(EditError):
    """Raised when a line or offset falls outside the document."""


class MatchNotFoundError(EditError):
    """Raised when a match specification resolves to nothing."""

    def __init__(self, message: str, spec: Any = None) -> None:
        super().__init__(message)
        self.spec = spec


class IncompleteNodeError(EditError):
    """Raised when a matched structural node has no known end offset."""

    def __init__(self, message: str, node: Any = None) -> None:
        super().__init__(message)
        self.node = node


class InvalidActionForMatchError(EditError):
    """Raised when an action is paired with a match type it does not accept."""


class OverlappingEditsError(EditError):
    """Raised when two edits of one batch cover overlapping text."""


class ApplyFailedError(EditError):
    """Raised when the host refuses to apply an edit set."""
