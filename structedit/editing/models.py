"""
Edit request models — the declarative ``{action, match}`` instructions.

Every match kind is its own frozen dataclass; ``MatchSpec`` is the closed
union of them.  ``ALLOWED_MATCHES`` is the single table of which match kinds
each action accepts, checked whenever an :class:`ApiEdit` is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .errors import InvalidActionForMatchError, RequestError


@dataclass(frozen=True)
class LinesMatch:
    """Lines ``start``..``end`` (1-based, inclusive)."""
    start: int
    end: int
    match_type = "lines"


@dataclass(frozen=True)
class LineMatch:
    """A single line (1-based)."""
    at: int
    match_type = "line"


@dataclass(frozen=True)
class RegexMatch:
    """The Nth non-overlapping match of a regular expression."""
    pattern: str
    occurrence: int = 1
    match_type = "regex"


@dataclass(frozen=True)
class StrMatch:
    """The Nth non-overlapping occurrence of a literal string."""
    text: str
    occurrence: int = 1
    match_type = "str"


@dataclass(frozen=True)
class WholeFileMatch:
    """The entire document."""
    match_type = "whole_file"


@dataclass(frozen=True)
class SymbolMatch:
    """A symbol from the host symbol tree."""
    name: str
    kind: Optional[str] = None
    parent_name: Optional[str] = None
    parent_kind: Optional[str] = None
    occurrence: int = 1
    match_type = "symbol"


@dataclass(frozen=True)
class ASTNodeMatch:
    """A structural node produced by the structural extractor."""
    node_kind: str
    name: str
    depth: Optional[int] = None
    parent: Optional[str] = None
    occurrence: int = 1
    match_type = "ast"


MatchSpec = Union[
    LinesMatch, LineMatch, RegexMatch, StrMatch,
    WholeFileMatch, SymbolMatch, ASTNodeMatch,
]

STRUCTURAL_MATCHES = (SymbolMatch, ASTNodeMatch)

ACTION_TYPES = ("replace", "insert-before", "insert-after", "prepend", "append", "delete")

_RANGE_MATCHES = (LinesMatch, RegexMatch, StrMatch, WholeFileMatch, SymbolMatch, ASTNodeMatch)
_INSERT_MATCHES = (LineMatch, RegexMatch, StrMatch, SymbolMatch, ASTNodeMatch)

ALLOWED_MATCHES: dict[str, tuple[type, ...]] = {
    "replace": _RANGE_MATCHES,
    "delete": _RANGE_MATCHES,
    "insert-before": _INSERT_MATCHES,
    "insert-after": _INSERT_MATCHES,
    "prepend": (LineMatch,),
    "append": (LineMatch,),
}


def describe_match(match: MatchSpec) -> str:
    """Short human-readable form of a match, used in error messages."""
    if isinstance(match, LinesMatch):
        return f"lines {match.start}-{match.end}"
    if isinstance(match, LineMatch):
        return f"line {match.at}"
    if isinstance(match, RegexMatch):
        return f"occurrence {match.occurrence} of regex {match.pattern!r}"
    if isinstance(match, StrMatch):
        return f"occurrence {match.occurrence} of string {match.text!r}"
    if isinstance(match, WholeFileMatch):
        return "whole file"
    if isinstance(match, SymbolMatch):
        desc = f"symbol {match.name!r}"
        if match.kind:
            desc += f" of kind {match.kind}"
        if match.parent_name:
            desc += f" in {match.parent_kind or 'parent'} {match.parent_name!r}"
        return desc + f" (occurrence {match.occurrence})"
    desc = f"AST node {match.node_kind} {match.name!r}"
    if match.depth is not None:
        desc += f" at depth {match.depth}"
    if match.parent:
        desc += f" in parent {match.parent!r}"
    return desc + f" (occurrence {match.occurrence})"


@dataclass(frozen=True)
class ApiEdit:
    """One declarative edit instruction."""
    action_type: str
    match: MatchSpec
    new_text: str = ""

    def __post_init__(self) -> None:
        allowed = ALLOWED_MATCHES.get(self.action_type)
        if allowed is None:
            raise RequestError(f"Unknown action type: {self.action_type!r}")
        if not isinstance(self.match, allowed):
            names = ", ".join(m.match_type for m in allowed)
            raise InvalidActionForMatchError(
                f"Invalid match type for '{self.action_type}': "
                f"{self.match.match_type}. Must be one of: {names}."
            )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"action_type": self.action_type}
        data.update(_match_to_dict(self.match))
        if self.action_type != "delete":
            data["newText"] = self.new_text
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ApiEdit":
        """Build an edit from the wire format (``action_type``/``match_type`` keys)."""
        if not isinstance(data, dict):
            raise RequestError(f"Edit must be an object, got {type(data).__name__}")
        action = data.get("action_type")
        if action not in ALLOWED_MATCHES:
            raise RequestError(f"Unknown action type: {action!r}")

        match = _match_from_dict(data)
        if action == "delete":
            new_text = ""
        else:
            new_text = data.get("newText")
            if not isinstance(new_text, str):
                raise RequestError(f"Action '{action}' requires a string 'newText'")
        return cls(action_type=action, match=match, new_text=new_text)


@dataclass
class ApplyEditsRequest:
    """A batch of edits for a single file."""
    file_path: str
    edits: list[ApiEdit] = field(default_factory=list)
    short_comment: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ApplyEditsRequest":
        if not isinstance(data, dict):
            raise RequestError("Request must be a JSON object")
        file_path = data.get("filePath")
        edits = data.get("edits")
        if not file_path or edits is None:
            raise RequestError("Missing filePath or edits in request body.")
        if not isinstance(edits, list):
            raise RequestError("'edits' must be a list")

        parsed: list[ApiEdit] = []
        for index, raw in enumerate(edits):
            try:
                parsed.append(ApiEdit.from_dict(raw))
            except (RequestError, InvalidActionForMatchError) as exc:
                raise exc.annotate(index, raw)
        return cls(
            file_path=str(file_path),
            edits=parsed,
            short_comment=str(data.get("shortComment") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "filePath": self.file_path,
            "shortComment": self.short_comment,
            "edits": [e.to_dict() for e in self.edits],
        }


# ---------------------------------------------------------------------------
# Wire-format helpers
# ---------------------------------------------------------------------------

def _int_field(data: dict, key: str, default: Optional[int] = None, minimum: int = 1) -> int:
    value = data.get(key, default)
    if value is None:
        raise RequestError(f"Missing required field {key!r}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise RequestError(f"Field {key!r} must be an integer, got {value!r}")
    if value < minimum:
        raise RequestError(f"Field {key!r} must be >= {minimum}, got {value}")
    return value


def _str_field(data: dict, key: str, required: bool = True) -> Optional[str]:
    value = data.get(key)
    if value is None:
        if required:
            raise RequestError(f"Missing required field {key!r}")
        return None
    if not isinstance(value, str) or (required and not value):
        raise RequestError(f"Field {key!r} must be a non-empty string")
    return value


def _match_from_dict(data: dict) -> MatchSpec:
    match_type = data.get("match_type")
    if match_type == "lines":
        return LinesMatch(_int_field(data, "startLine"), _int_field(data, "endLine"))
    if match_type == "line":
        return LineMatch(_int_field(data, "atLine"))
    if match_type == "regex":
        return RegexMatch(_str_field(data, "regex"), _int_field(data, "occurrence", 1))
    if match_type == "str":
        return StrMatch(_str_field(data, "text"), _int_field(data, "occurrence", 1))
    if match_type == "whole_file":
        return WholeFileMatch()
    if match_type == "symbol":
        return SymbolMatch(
            name=_str_field(data, "name"),
            kind=_str_field(data, "kind", required=False),
            parent_name=_str_field(data, "parentName", required=False),
            parent_kind=_str_field(data, "parentKind", required=False),
            occurrence=_int_field(data, "occurrence", 1),
        )
    if match_type == "ast":
        depth = data.get("depth")
        return ASTNodeMatch(
            node_kind=_str_field(data, "nodeType"),
            name=_str_field(data, "name"),
            depth=None if depth is None else _int_field(data, "depth", minimum=0),
            parent=_str_field(data, "parent", required=False),
            occurrence=_int_field(data, "occurrence", 1),
        )
    raise RequestError(f"Unknown match type: {match_type!r}")


def _match_to_dict(match: MatchSpec) -> dict:
    if isinstance(match, LinesMatch):
        return {"match_type": "lines", "startLine": match.start, "endLine": match.end}
    if isinstance(match, LineMatch):
        return {"match_type": "line", "atLine": match.at}
    if isinstance(match, RegexMatch):
        return {"match_type": "regex", "regex": match.pattern, "occurrence": match.occurrence}
    if isinstance(match, StrMatch):
        return {"match_type": "str", "text": match.text, "occurrence": match.occurrence}
    if isinstance(match, WholeFileMatch):
        return {"match_type": "whole_file"}
    if isinstance(match, SymbolMatch):
        data = {"match_type": "symbol", "name": match.name, "occurrence": match.occurrence}
        for key, value in (("kind", match.kind), ("parentName", match.parent_name),
                           ("parentKind", match.parent_kind)):
            if value is not None:
                data[key] = value
        return data
    data = {"match_type": "ast", "nodeType": match.node_kind, "name": match.name,
            "occurrence": match.occurrence}
    if match.depth is not None:
        data["depth"] = match.depth
    if match.parent is not None:
        data["parent"] = match.parent
    return data
