"""Declarative edits — match resolution, edit compilation and change tracking."""

from .document import Position, Range, TextDocument, TextEdit
from .errors import (
    EditError, RequestError, OutOfRangeError, MatchNotFoundError, IncompleteNodeError,
    InvalidActionForMatchError, OverlappingEditsError, ApplyFailedError,
)
from .models import (
    LinesMatch, LineMatch, RegexMatch, StrMatch, WholeFileMatch, SymbolMatch, ASTNodeMatch,
    ApiEdit, ApplyEditsRequest,
)
from .symbol_resolver import SymbolNode, SymbolCriteria, find_symbol, build_symbol_tree
from .match_resolver import MatchResolver, ResolutionContext, find_nth_match
from .edit_compiler import EditCompiler, compile_edits
from .batch_applier import apply_edits
from .change_ledger import ChangeLedger, PendingChange
from .host import HostDocumentProvider, FileSystemHost
from .session import EditSession, ApplyResult, PreviewResult
from .metrics import log_edit_metric, read_edit_stats

__all__ = [
    "Position", "Range", "TextDocument", "TextEdit",
    "EditError", "RequestError", "OutOfRangeError", "MatchNotFoundError",
    "IncompleteNodeError", "InvalidActionForMatchError", "OverlappingEditsError",
    "ApplyFailedError",
    "LinesMatch", "LineMatch", "RegexMatch", "StrMatch", "WholeFileMatch",
    "SymbolMatch", "ASTNodeMatch", "ApiEdit", "ApplyEditsRequest",
    "SymbolNode", "SymbolCriteria", "find_symbol", "build_symbol_tree",
    "MatchResolver", "ResolutionContext", "find_nth_match",
    "EditCompiler", "compile_edits", "apply_edits",
    "ChangeLedger", "PendingChange",
    "HostDocumentProvider", "FileSystemHost",
    "EditSession", "ApplyResult", "PreviewResult",
    "log_edit_metric", "read_edit_stats",
]
