"""
Change ledger — records applied edits as pending changes that can later be
approved (kept) or rejected (reverted).

The first time a file is touched its full text is captured as the baseline.
The baseline stays frozen until the file's change set is cleared, and the
"before" text of every recorded edit is read from it, not from the live
document.
"""

from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence

from .document import Range, TextEdit, text_extent
from .errors import EditError

if TYPE_CHECKING:
    from .host import HostDocumentProvider

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class PendingChange:
    """An applied edit awaiting approval or rejection."""
    id: str
    file_path: str
    text_edit: TextEdit
    original_text: str
    description: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def inverse_edit(self) -> TextEdit:
        """The edit that undoes this change on the document it was applied to.

        The applied text occupies ``start`` .. extent of ``new_text``; the
        inverse puts ``original_text`` back in that span.  For a pure
        insertion ``original_text`` is empty and the inverse is a deletion.
        """
        start = self.text_edit.range.start
        end = text_extent(start, self.text_edit.new_text)
        return TextEdit(Range(start, end), self.original_text)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filePath": self.file_path,
            "textEdit": self.text_edit.to_dict(),
            "originalText": self.original_text,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class FileChangeSet:
    """Pending changes for one file plus its frozen baseline text."""
    file_path: str
    original_file_content: str
    changes: dict[str, PendingChange] = field(default_factory=dict)


class ChangeLedger:
    """Per-session record of pending changes, grouped by file."""

    def __init__(self, host: "HostDocumentProvider") -> None:
        self._host = host
        self._files: dict[str, FileChangeSet] = {}
        self._listeners: list[Callable[[str, str], None]] = []

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def add_changes(
        self,
        file_path: str,
        text_edits: Sequence[TextEdit],
        description: str,
    ) -> list[PendingChange]:
        """Record *text_edits* (about to be applied to *file_path*)."""
        change_set = self._ensure_baseline(file_path)
        total = len(text_edits)
        added: list[PendingChange] = []

        for i, text_edit in enumerate(text_edits, start=1):
            original = _slice_baseline(change_set.original_file_content, text_edit.range)
            change = PendingChange(
                id=self._generate_id(),
                file_path=file_path,
                text_edit=text_edit,
                original_text=original,
                description=f"{description} ({i}/{total})",
            )
            change_set.changes[change.id] = change
            added.append(change)
            logger.debug("[Ledger] Added change %s: %r -> %r",
                         change.id, original, text_edit.new_text)
        return added

    def discard_changes(self, change_ids: Iterable[str]) -> None:
        """Forget changes that were recorded but never applied."""
        for change_id in change_ids:
            self._remove(change_id)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def approve_change(self, change_id: str) -> bool:
        """Keep the change: drop its record.  False if the id is unknown."""
        change = self.find_change(change_id)
        if change is None:
            return False
        self._remove(change_id)
        logger.info("[Ledger] Approved: %s", change.description)
        self._notify(change_id, "approved")
        return True

    def reject_change(self, change_id: str) -> bool:
        """Revert the change in the live document, persist it, drop the record.

        Returns False if the id is unknown or the host could not apply the
        inverse edit (the record is then kept).
        """
        change = self.find_change(change_id)
        if change is None:
            return False

        inverse = change.inverse_edit()
        try:
            applied = self._host.apply_edits(change.file_path, [inverse])
        except (EditError, OSError) as exc:
            logger.warning("[Ledger] Reverting %s failed: %s", change_id, exc)
            return False
        if not applied:
            logger.warning("[Ledger] Host refused to revert %s", change_id)
            return False

        self._remove(change_id)
        logger.info("[Ledger] Rejected: %s", change.description)
        self._notify(change_id, "rejected")
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pending_changes(self, file_path: str) -> list[PendingChange]:
        change_set = self._files.get(file_path)
        return list(change_set.changes.values()) if change_set else []

    def find_change(self, change_id: str) -> Optional[PendingChange]:
        for change_set in self._files.values():
            change = change_set.changes.get(change_id)
            if change is not None:
                return change
        return None

    def baseline(self, file_path: str) -> Optional[str]:
        """The frozen original text of *file_path*, if it is tracked."""
        change_set = self._files.get(file_path)
        return change_set.original_file_content if change_set else None

    def clear_changes_for_file(self, file_path: str) -> None:
        """Drop the whole change set of *file_path*, baseline included."""
        if self._files.pop(file_path, None) is not None:
            logger.debug("[Ledger] Cleared change set for %s", file_path)

    def subscribe(self, listener: Callable[[str, str], None]) -> None:
        """Call ``listener(change_id, status)`` after each approve/reject."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_baseline(self, file_path: str) -> FileChangeSet:
        change_set = self._files.get(file_path)
        if change_set is not None:
            return change_set
        try:
            content = self._host.get_text(file_path)
            logger.debug("[Ledger] Captured baseline for %s (%d chars)", file_path, len(content))
        except (EditError, OSError) as exc:
            logger.warning("[Ledger] Failed to capture baseline for %s: %s", file_path, exc)
            content = ""
        change_set = FileChangeSet(file_path=file_path, original_file_content=content)
        self._files[file_path] = change_set
        return change_set

    def _remove(self, change_id: str) -> bool:
        for change_set in self._files.values():
            if change_set.changes.pop(change_id, None) is not None:
                return True
        return False

    def _notify(self, change_id: str, status: str) -> None:
        for listener in self._listeners:
            listener(change_id, status)

    def _generate_id(self) -> str:
        while True:
            suffix = "".join(random.choices(_ID_ALPHABET, k=9))
            change_id = f"change_{int(time.time() * 1000)}_{suffix}"
            if self.find_change(change_id) is None:
                return change_id


def _slice_baseline(baseline: str, rng: Range) -> str:
    """Text of *rng* in *baseline*; out-of-range parts come back empty."""
    lines = baseline.split("\n")

    def line(n: int) -> str:
        return lines[n] if 0 <= n < len(lines) else ""

    if rng.start.line == rng.end.line:
        return line(rng.start.line)[rng.start.character:rng.end.character]
    parts = [line(rng.start.line)[rng.start.character:]]
    parts.extend(line(n) for n in range(rng.start.line + 1, rng.end.line))
    parts.append(line(rng.end.line)[:rng.end.character])
    return "\n".join(parts)
