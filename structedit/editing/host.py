"""
Host boundary — where documents are read, edits are persisted and symbol
trees come from.

``HostDocumentProvider`` is the narrow interface the engine needs from an
editor.  ``FileSystemHost`` implements it directly on files: text edits go
through the batch applier and are written atomically.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..structure import extract_nodes, language_for
from .batch_applier import apply_edits
from .document import TextDocument, TextEdit
from .errors import EditError
from .symbol_resolver import SymbolNode, build_symbol_tree

logger = logging.getLogger(__name__)


class HostDocumentProvider(ABC):
    """What the edit engine needs from the host editor."""

    @abstractmethod
    def get_text(self, file_path: str) -> str:
        """Return the current text of *file_path*."""

    @abstractmethod
    def apply_edits(self, file_path: str, edits: Sequence[TextEdit]) -> bool:
        """Atomically apply and persist *edits*; True on success."""

    @abstractmethod
    def resolve_symbols(self, file_path: str) -> list[SymbolNode]:
        """Return the hierarchical symbol tree of *file_path*."""

    def resolve_path(self, file_path: str) -> str:
        """Map a request path to the key the host uses for the file."""
        return file_path

    def open_document(self, file_path: str) -> TextDocument:
        return TextDocument(self.get_text(file_path), uri=file_path)

    def save(self, file_path: str) -> bool:
        """Flush the document to storage.  Hosts that write through return True."""
        return True


class FileSystemHost(HostDocumentProvider):
    """Host that edits files on disk.

    Parameters
    ----------
    project_root:
        Relative request paths are resolved against this directory
        (defaults to the current working directory).
    strict_overlaps:
        Passed to :func:`apply_edits`.
    language:
        Language tag used for symbol extraction when the extension alone
        does not identify one.
    """

    def __init__(
        self,
        project_root: Optional[str] = None,
        strict_overlaps: bool = True,
        language: Optional[str] = None,
    ) -> None:
        self.project_root = os.path.abspath(project_root or os.getcwd())
        self.strict_overlaps = strict_overlaps
        self.language = language

    def resolve_path(self, file_path: str) -> str:
        if os.path.isabs(file_path):
            return file_path
        return os.path.normpath(os.path.join(self.project_root, file_path))

    def get_text(self, file_path: str) -> str:
        path = self.resolve_path(file_path)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"File not found: {path}")
        # newline="" keeps CRLF endings intact
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def apply_edits(self, file_path: str, edits: Sequence[TextEdit]) -> bool:
        path = self.resolve_path(file_path)
        try:
            original = self.get_text(path)
            new_text = apply_edits(original, edits, strict=self.strict_overlaps)
            self._safe_write(path, new_text)
        except (EditError, OSError) as exc:
            logger.warning("[Host] Failed to apply %d edit(s) to %s: %s", len(edits), path, exc)
            return False
        logger.debug("[Host] Applied %d edit(s) to %s", len(edits), path)
        return True

    def resolve_symbols(self, file_path: str) -> list[SymbolNode]:
        path = self.resolve_path(file_path)
        document = TextDocument(self.get_text(path), uri=path)
        nodes = extract_nodes(document.text, language_for(path, self.language))
        return build_symbol_tree(nodes, document)

    # ------------------------------------------------------------------
    # Atomic file write
    # ------------------------------------------------------------------

    @staticmethod
    def _safe_write(file_path: str, content: str) -> None:
        """Write content to file atomically via temp file + rename."""
        abs_path = os.path.abspath(file_path)
        tmp_path = abs_path + ".structedit_tmp"

        try:
            with open(tmp_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_path, abs_path)
        except OSError:
            # Clean up temp file on failure
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
