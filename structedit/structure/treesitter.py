"""
Tree-sitter structural extractor.

Supports: Python, JavaScript, TypeScript/TSX, Java, C, C++, Go, Rust, Ruby,
PHP, C#

Uses tree-sitter >= 0.22 API with individual language packages.  Each
language is described by a :class:`LanguageSpec` table mapping grammar node
types to structural node kinds; the walk itself is shared.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

import tree_sitter as ts

from .base import StructureExtractor
from .nodes import CLASS_LIKE_KINDS, StructuralNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LanguageSpec:
    """How to find structural nodes in one tree-sitter grammar."""
    name: str
    module: str
    kinds: dict[str, str]
    extensions: tuple[str, ...] = ()
    entry: str = "language"
    # Node types counted when computing depth
    scopes: frozenset[str] = frozenset()
    # Subset of scopes whose name becomes the parent of nested nodes
    named_scopes: frozenset[str] = frozenset()
    # Node types that only count when they carry a body (C-family specifiers)
    body_required: frozenset[str] = field(default_factory=frozenset)


_JS_KINDS = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "class_declaration": "class",
    "method_definition": "method",
    "field_definition": "property",
    "variable_declarator": "function",
}

_TS_KINDS = {
    **_JS_KINDS,
    "abstract_class_declaration": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
    "method_signature": "method",
    "abstract_method_signature": "method",
    "public_field_definition": "property",
    "property_signature": "property",
}

_TS_SCOPES = frozenset({
    "class_declaration", "abstract_class_declaration", "class",
    "interface_declaration", "object",
})

LANGUAGE_SPECS: dict[str, LanguageSpec] = {
    spec.name: spec
    for spec in (
        LanguageSpec(
            name="python",
            module="tree_sitter_python",
            extensions=(".py", ".pyw"),
            kinds={
                "function_definition": "function",
                "class_definition": "class",
                "assignment": "variable",
            },
            scopes=frozenset({"class_definition"}),
            named_scopes=frozenset({"class_definition"}),
        ),
        LanguageSpec(
            name="javascript",
            module="tree_sitter_javascript",
            extensions=(".js", ".mjs", ".cjs", ".jsx"),
            kinds=_JS_KINDS,
            scopes=frozenset({"class_declaration", "class", "object"}),
            named_scopes=frozenset({"class_declaration", "class"}),
        ),
        LanguageSpec(
            name="typescript",
            module="tree_sitter_typescript",
            entry="language_typescript",
            extensions=(".ts", ".mts", ".cts"),
            kinds=_TS_KINDS,
            scopes=_TS_SCOPES,
            named_scopes=_TS_SCOPES - {"object"},
        ),
        LanguageSpec(
            name="tsx",
            module="tree_sitter_typescript",
            entry="language_tsx",
            extensions=(".tsx",),
            kinds=_TS_KINDS,
            scopes=_TS_SCOPES,
            named_scopes=_TS_SCOPES - {"object"},
        ),
        LanguageSpec(
            name="java",
            module="tree_sitter_java",
            extensions=(".java",),
            kinds={
                "class_declaration": "class",
                "record_declaration": "class",
                "interface_declaration": "interface",
                "enum_declaration": "enum",
                "method_declaration": "method",
                "constructor_declaration": "method",
                "field_declaration": "property",
            },
            scopes=frozenset({
                "class_declaration", "record_declaration",
                "interface_declaration", "enum_declaration",
            }),
            named_scopes=frozenset({
                "class_declaration", "record_declaration",
                "interface_declaration", "enum_declaration",
            }),
        ),
        LanguageSpec(
            name="c",
            module="tree_sitter_c",
            extensions=(".c", ".h"),
            kinds={
                "function_definition": "function",
                "struct_specifier": "class",
                "enum_specifier": "enum",
                "type_definition": "type",
            },
            body_required=frozenset({"struct_specifier", "enum_specifier"}),
        ),
        LanguageSpec(
            name="cpp",
            module="tree_sitter_cpp",
            extensions=(".cpp", ".cc", ".cxx", ".hpp", ".hxx"),
            kinds={
                "function_definition": "function",
                "class_specifier": "class",
                "struct_specifier": "class",
                "enum_specifier": "enum",
            },
            scopes=frozenset({"class_specifier", "struct_specifier"}),
            named_scopes=frozenset({"class_specifier", "struct_specifier"}),
            body_required=frozenset({"class_specifier", "struct_specifier", "enum_specifier"}),
        ),
        LanguageSpec(
            name="go",
            module="tree_sitter_go",
            extensions=(".go",),
            kinds={
                "function_declaration": "function",
                "method_declaration": "method",
                "type_spec": "type",
            },
        ),
        LanguageSpec(
            name="rust",
            module="tree_sitter_rust",
            extensions=(".rs",),
            kinds={
                "function_item": "function",
                "function_signature_item": "method",
                "struct_item": "class",
                "enum_item": "enum",
                "trait_item": "trait",
                "type_item": "type",
            },
            scopes=frozenset({"impl_item", "trait_item"}),
            named_scopes=frozenset({"impl_item", "trait_item"}),
        ),
        LanguageSpec(
            name="ruby",
            module="tree_sitter_ruby",
            extensions=(".rb",),
            kinds={
                "class": "class",
                "module": "class",
                "method": "function",
                "singleton_method": "method",
            },
            scopes=frozenset({"class", "module"}),
            named_scopes=frozenset({"class", "module"}),
        ),
        LanguageSpec(
            name="php",
            module="tree_sitter_php",
            entry="language_php",
            extensions=(".php", ".phtml"),
            kinds={
                "class_declaration": "class",
                "interface_declaration": "interface",
                "trait_declaration": "trait",
                "enum_declaration": "enum",
                "function_definition": "function",
                "method_declaration": "method",
            },
            scopes=frozenset({
                "class_declaration", "interface_declaration",
                "trait_declaration", "enum_declaration",
            }),
            named_scopes=frozenset({
                "class_declaration", "interface_declaration",
                "trait_declaration", "enum_declaration",
            }),
        ),
        LanguageSpec(
            name="c_sharp",
            module="tree_sitter_c_sharp",
            extensions=(".cs",),
            kinds={
                "class_declaration": "class",
                "struct_declaration": "class",
                "record_declaration": "class",
                "interface_declaration": "interface",
                "enum_declaration": "enum",
                "method_declaration": "method",
                "constructor_declaration": "method",
                "property_declaration": "property",
            },
            scopes=frozenset({
                "class_declaration", "struct_declaration",
                "record_declaration", "interface_declaration",
            }),
            named_scopes=frozenset({
                "class_declaration", "struct_declaration",
                "record_declaration", "interface_declaration",
            }),
        ),
    )
}

_FUNCTION_VALUES = frozenset({
    "arrow_function", "function_expression", "function", "generator_function",
})

_DECLARATION_WRAPPERS = frozenset({"lexical_declaration", "variable_declaration"})

_IDENTIFIER_TYPES = frozenset({
    "identifier", "field_identifier", "type_identifier",
    "property_identifier", "constant", "name", "destructor_name", "operator_name",
})


# ---------------------------------------------------------------------------
# Language / parser caches
# ---------------------------------------------------------------------------

_LANG_CACHE: dict[str, ts.Language] = {}
_PARSER_CACHE: dict[str, ts.Parser] = {}


def _get_ts_language(spec: LanguageSpec) -> ts.Language:
    """Return the tree_sitter.Language object for *spec* (cached)."""
    lang = _LANG_CACHE.get(spec.name)
    if lang is None:
        module = importlib.import_module(spec.module)
        lang = ts.Language(getattr(module, spec.entry)())
        _LANG_CACHE[spec.name] = lang
    return lang


def _get_ts_parser(spec: LanguageSpec) -> ts.Parser:
    """Return a tree-sitter Parser configured for *spec* (cached)."""
    parser = _PARSER_CACHE.get(spec.name)
    if parser is None:
        parser = ts.Parser(_get_ts_language(spec))
        _PARSER_CACHE[spec.name] = parser
    return parser


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

def _text(node) -> str:
    """Decode a tree-sitter Node's text as UTF-8."""
    if node is None or not node.text:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _node_name(node) -> str:
    """Find the declared name of *node*.

    Looks at the ``name`` field first, then ``property`` (JS class fields),
    then follows the ``declarator`` chain used by C-family grammars.
    """
    for fld in ("name", "property"):
        child = node.child_by_field_name(fld)
        if child is not None:
            return _text(child)

    decl = node.child_by_field_name("declarator")
    while decl is not None:
        if decl.type in _IDENTIFIER_TYPES:
            return _text(decl)
        name = decl.child_by_field_name("name")
        if name is not None:
            return _text(name)
        decl = decl.child_by_field_name("declarator")
    return ""


def _scope_name(node) -> str:
    """Name of a scope node; Rust ``impl`` blocks are named by their type."""
    if node.type == "impl_item":
        return _text(node.child_by_field_name("type"))
    return _node_name(node)


def _describe(node, spec: LanguageSpec) -> Optional[tuple[str, str, object]]:
    """Return ``(kind, name, span_node)`` if *node* is a structural node."""
    kind = spec.kinds.get(node.type)
    if kind is None:
        return None
    if node.type in spec.body_required and node.child_by_field_name("body") is None:
        return None

    span = node
    parent = node.parent

    if node.type == "variable_declarator":
        value = node.child_by_field_name("value")
        if value is None or value.type not in _FUNCTION_VALUES:
            return None
        if parent is not None and parent.type in _DECLARATION_WRAPPERS and parent.named_child_count == 1:
            span = parent
    elif node.type == "assignment":
        left = node.child_by_field_name("left")
        if left is None or left.type != "identifier":
            return None
        if parent is None or parent.type != "expression_statement":
            return None
        span = parent
    elif node.type == "type_spec":
        type_node = node.child_by_field_name("type")
        if type_node is not None and type_node.type == "struct_type":
            kind = "class"
        elif type_node is not None and type_node.type == "interface_type":
            kind = "interface"
        if parent is not None and parent.type == "type_declaration" and parent.named_child_count == 1:
            span = parent
    elif parent is not None and parent.type == "decorated_definition":
        span = parent

    if node.type == "assignment":
        name = _text(node.child_by_field_name("left"))
    else:
        name = _node_name(node)
    if not name:
        return None
    return kind, name, span


def _byte_to_char_table(source: str, source_bytes: bytes) -> Optional[list[int]]:
    """Map UTF-8 byte offsets to character offsets (None when ASCII)."""
    if len(source) == len(source_bytes):
        return None
    table = [0] * (len(source_bytes) + 1)
    pos = 0
    for i, ch in enumerate(source):
        width = len(ch.encode("utf-8"))
        for k in range(width):
            table[pos + k] = i
        pos += width
    table[pos] = len(source)
    return table


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class TreeSitterExtractor(StructureExtractor):
    """Structural extractor backed by a tree-sitter grammar."""

    def __init__(self, spec: LanguageSpec) -> None:
        self.spec = spec
        self.languages = (spec.name,)
        self.extensions = spec.extensions

    def extract(self, source: str, language: str = "") -> Iterator[StructuralNode]:
        source_bytes = source.encode("utf-8")
        tree = _get_ts_parser(self.spec).parse(source_bytes)
        if tree.root_node.has_error:
            logger.debug("[Structure] %s source contains syntax errors; extraction is partial",
                         self.spec.name)
        table = _byte_to_char_table(source, source_bytes)

        def offset(b: int) -> int:
            return b if table is None else table[b]

        # Explicit stack: (node, depth, parent_name, parent_kind, owner_kind)
        stack: list[tuple[object, int, Optional[str], Optional[str], Optional[str]]] = [
            (tree.root_node, 0, None, None, None)
        ]
        while stack:
            node, depth, parent_name, parent_kind, owner_kind = stack.pop()

            described = _describe(node, self.spec)
            emitted_kind: Optional[str] = None
            emitted_name = ""
            if described is not None:
                kind, emitted_name, span = described
                if owner_kind in CLASS_LIKE_KINDS:
                    if kind == "function":
                        kind = "method"
                    elif kind == "variable":
                        kind = "property"
                if kind == "variable" and owner_kind in ("function", "method"):
                    kind = None
                if kind is not None:
                    emitted_kind = kind
                    yield StructuralNode(
                        kind=kind,
                        name=emitted_name,
                        depth=depth,
                        start_offset=offset(span.start_byte),
                        end_offset=offset(span.end_byte),
                        start_line=span.start_point[0],
                        end_line=span.end_point[0],
                        parent=parent_name,
                        parent_kind=parent_kind,
                    )

            child_depth = depth
            if node.type in self.spec.scopes:
                child_depth += 1
            if node.type in self.spec.named_scopes:
                parent_name = emitted_name or _scope_name(node) or parent_name
                parent_kind = emitted_kind or "class"
                owner_kind = parent_kind
            elif emitted_kind is not None:
                owner_kind = emitted_kind

            for child in reversed(node.children):
                stack.append((child, child_depth, parent_name, parent_kind, owner_kind))


def default_extractors() -> list[TreeSitterExtractor]:
    """One extractor per built-in language spec."""
    return [TreeSitterExtractor(spec) for spec in LANGUAGE_SPECS.values()]
