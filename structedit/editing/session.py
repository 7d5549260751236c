"""
Edit session — the entry point for applying declarative edit requests.

A session ties a host, a change ledger and the engine configuration
together.  ``apply_request`` runs the whole pipeline for one request:

  1. Read the document from the host
  2. Resolve and compile every instruction (the batch aborts on the first
     bad one, before anything is written)
  3. Check the compiled edits for overlaps
  4. Record them as pending changes
  5. Apply them through the host in one atomic operation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import Config
from .batch_applier import apply_edits, check_overlaps, to_offset_edits
from .change_ledger import ChangeLedger, PendingChange
from .diff import compute_diff
from .document import TextDocument, TextEdit
from .edit_compiler import compile_edits
from .errors import ApplyFailedError, EditError
from .host import HostDocumentProvider
from .match_resolver import ResolutionContext
from .metrics import log_edit_metric
from .models import ApplyEditsRequest

logger = logging.getLogger(__name__)


@dataclass
class PreviewResult:
    """What a request would do, without writing anything."""
    file_path: str
    text_edits: list[TextEdit]
    new_text: str
    diff: str = ""


@dataclass
class ApplyResult:
    """Outcome of :meth:`EditSession.apply_request`."""
    success: bool
    message: str
    file_path: str
    text_edits: list[TextEdit] = field(default_factory=list)
    pending_changes: list[PendingChange] = field(default_factory=list)


class EditSession:
    """Apply edit requests to host documents and review the results."""

    def __init__(
        self,
        host: HostDocumentProvider,
        ledger: Optional[ChangeLedger] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.host = host
        self.ledger = ledger or ChangeLedger(host)
        self.config = config or Config()

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    def preview(self, request: ApplyEditsRequest) -> PreviewResult:
        """Compile *request* and compute the resulting text and diff."""
        path = self.host.resolve_path(request.file_path)
        document, text_edits = self._compile(request, path)
        new_text = apply_edits(document.text, text_edits,
                               strict=self.config.REJECT_OVERLAPPING_EDITS)
        diff = compute_diff(request.file_path, document.text, new_text) or ""
        return PreviewResult(file_path=path, text_edits=text_edits, new_text=new_text, diff=diff)

    def apply_request(self, request: ApplyEditsRequest, track: bool = True) -> ApplyResult:
        """Resolve, record and apply every instruction of *request*.

        Raises
        ------
        EditError
            If any instruction fails to resolve or compile, or the compiled
            edits overlap.  Nothing has been written in that case.
        ApplyFailedError
            If the host could not apply the edits.  Changes recorded for this
            request are discarded.
        """
        path = self.host.resolve_path(request.file_path)
        if not request.edits:
            return ApplyResult(success=True, message="No edits to apply.", file_path=path)

        try:
            _, text_edits = self._compile(request, path)
        except EditError as exc:
            self._record_metric(request, success=False, error=exc)
            raise

        changes: list[PendingChange] = []
        if track:
            changes = self.ledger.add_changes(path, text_edits, request.short_comment or "No comment")

        if not self.host.apply_edits(path, text_edits):
            self.ledger.discard_changes(change.id for change in changes)
            exc = ApplyFailedError(f"Failed to apply {len(text_edits)} edit(s) to {request.file_path}")
            self._record_metric(request, success=False, error=exc)
            logger.warning("[Edit] %s", exc)
            raise exc

        self._record_metric(request, success=True)
        message = f"Applied {len(text_edits)} edit(s) to {request.file_path}"
        if track:
            message += f" ({len(changes)} pending change(s))"
        logger.info("[Edit] %s", message)
        return ApplyResult(
            success=True,
            message=message,
            file_path=path,
            text_edits=text_edits,
            pending_changes=changes,
        )

    def _compile(self, request: ApplyEditsRequest, path: str) -> tuple[TextDocument, list[TextEdit]]:
        document = self.host.open_document(path)
        context = ResolutionContext(
            document,
            language=self.config.DEFAULT_LANGUAGE,
            symbol_source=lambda: self.host.resolve_symbols(path),
        )
        text_edits = compile_edits(request.edits, context,
                                   normalize_indentation=self.config.NORMALIZE_INDENTATION)
        if self.config.REJECT_OVERLAPPING_EDITS:
            check_overlaps(to_offset_edits(document, text_edits))
        logger.debug("[Edit] Compiled %d instruction(s) for %s", len(text_edits), path)
        return document, text_edits

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    def pending_changes(self, file_path: str) -> list[PendingChange]:
        return self.ledger.get_pending_changes(self.host.resolve_path(file_path))

    def approve(self, change_id: str) -> bool:
        return self.ledger.approve_change(change_id)

    def reject(self, change_id: str) -> bool:
        return self.ledger.reject_change(change_id)

    def approve_all(self, file_path: str) -> int:
        """Approve every pending change of *file_path*; returns how many."""
        return sum(self.approve(change.id) for change in self.pending_changes(file_path))

    def reject_all(self, file_path: str) -> int:
        """Revert every pending change of *file_path*, bottom-up; returns how many."""
        changes = sorted(self.pending_changes(file_path),
                         key=lambda c: c.text_edit.range.start, reverse=True)
        return sum(self.reject(change.id) for change in changes)

    def save_and_clear(self, file_path: str) -> bool:
        """Save the document and forget its change set, baseline included."""
        path = self.host.resolve_path(file_path)
        if not self.host.save(path):
            logger.warning("[Host] Failed to save %s", path)
            return False
        self.ledger.clear_changes_for_file(path)
        return True

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def _record_metric(
        self,
        request: ApplyEditsRequest,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        if not self.config.METRICS_ENABLED:
            return
        data = {
            "file": request.file_path,
            "edits": len(request.edits),
            "actions": [edit.action_type for edit in request.edits],
            "match_types": [edit.match.match_type for edit in request.edits],
            "success": success,
            "error": str(error) if error else None,
            "error_type": type(error).__name__ if error else None,
        }
        log_edit_metric(data, project_root=self.config.PROJECT_ROOT,
                        metrics_dir=self.config.METRICS_DIR)
