"""Tests for the edit compiler: action semantics and two-phase batches."""

import pytest

from structedit.editing.batch_applier import apply_edits
from structedit.editing.document import Position, Range, TextDocument, TextEdit
from structedit.editing.edit_compiler import EditCompiler, apply_indentation, compile_edits
from structedit.editing.errors import (
    IncompleteNodeError, InvalidActionForMatchError, MatchNotFoundError, OutOfRangeError,
)
from structedit.editing.match_resolver import ResolutionContext
from structedit.editing.models import (
    ASTNodeMatch, ApiEdit, LineMatch, LinesMatch, RegexMatch, StrMatch, SymbolMatch,
    WholeFileMatch,
)
from structedit.editing.symbol_resolver import SymbolNode
from structedit.structure.nodes import StructuralNode


def _run(text, edits, **context_kwargs):
    """Compile *edits* against *text* and return the edited text."""
    context = ResolutionContext(TextDocument(text), **context_kwargs)
    return apply_edits(text, compile_edits(edits, context))


CLASS_SRC = (
    "class Animal:\n"
    "    def eat(self, food):\n"
    "        return food\n"
    "\n"
    "    def sleep(self):\n"
    "        return 'zzz'\n"
)


def _animal_symbols():
    doc = TextDocument(CLASS_SRC)
    eat_start = CLASS_SRC.index("def eat")
    eat_end = CLASS_SRC.index("return food") + len("return food")
    sleep_start = CLASS_SRC.index("def sleep")
    eat = SymbolNode("eat", "Method", Range(doc.position_at(eat_start), doc.position_at(eat_end)))
    sleep = SymbolNode("sleep", "Method",
                       Range(doc.position_at(sleep_start), doc.position_at(len(CLASS_SRC) - 1)))
    animal = SymbolNode("Animal", "Class",
                        Range(Position(0, 0), doc.position_at(len(CLASS_SRC) - 1)), [eat, sleep])
    return [animal]


class TestLineActions:
    def test_replace_first_line(self):
        result = _run("line1\nline2\nline3\n", [ApiEdit("replace", LinesMatch(1, 1), "X")])
        assert result == "X\nline2\nline3\n"

    def test_insert_after_line(self):
        result = _run("a\nb\n", [ApiEdit("insert-after", LineMatch(1), "// note")])
        assert result == "a\n// note\nb\n"

    def test_insert_before_line(self):
        result = _run("a\nb\n", [ApiEdit("insert-before", LineMatch(2), "x")])
        assert result == "a\nx\nb\n"

    def test_prepend_and_append(self):
        result = _run("a\nb\n", [
            ApiEdit("prepend", LineMatch(2), "# "),
            ApiEdit("append", LineMatch(1), ";"),
        ])
        assert result == "a;\n# b\n"

    def test_append_on_crlf_line_stays_before_terminator(self):
        result = _run("a\r\nb\r\n", [ApiEdit("append", LineMatch(1), "!")])
        assert result == "a!\r\nb\r\n"

    def test_line_inserts_use_crlf_in_crlf_document(self):
        result = _run("a\r\nb\r\n", [
            ApiEdit("insert-after", LineMatch(1), "// note"),
            ApiEdit("insert-before", LineMatch(2), "// pre"),
        ])
        assert result == "a\r\n// note\r\n// pre\r\nb\r\n"

    def test_insert_after_unterminated_last_line_uses_document_eol(self):
        result = _run("a\r\nb", [ApiEdit("insert-after", LineMatch(2), "c")])
        assert result == "a\r\nb\r\nc"

    def test_structural_insert_after_uses_crlf_separator(self):
        text = "def f():\r\n    pass"
        nodes = [StructuralNode(kind="function", name="f", depth=0, start_offset=0,
                                end_offset=len(text), start_line=0, end_line=1)]
        result = _run(text, [ApiEdit("insert-after", ASTNodeMatch("function", "f"), "def g():")],
                      structural_nodes=nodes)
        assert result == "def f():\r\n    pass\r\n\r\ndef g():"

    def test_delete_lines_removes_line_breaks(self):
        result = _run("a\nb\nc\nd\n", [ApiEdit("delete", LinesMatch(2, 3))])
        assert result == "a\nd\n"

    def test_delete_last_line_without_terminator(self):
        result = _run("a\nb\nc", [ApiEdit("delete", LinesMatch(3, 3))])
        assert result == "a\nb\n"


class TestTextActions:
    def test_replace_second_regex_occurrence(self):
        result = _run("x = 1\ny = 2\n", [ApiEdit("replace", RegexMatch(r"\d", 2), "42")])
        assert result == "x = 1\ny = 42\n"

    def test_insert_around_string(self):
        result = _run("call(arg)", [
            ApiEdit("insert-before", StrMatch("arg"), "*"),
            ApiEdit("insert-after", StrMatch("arg"), ", extra"),
        ])
        assert result == "call(*arg, extra)"

    def test_replace_whole_file(self):
        assert _run("old\ncontent\n", [ApiEdit("replace", WholeFileMatch(), "new\n")]) == "new\n"

    def test_delete_string(self):
        assert _run("a foo b", [ApiEdit("delete", StrMatch(" foo"))]) == "a b"


class TestStructuralActions:
    def test_replace_method_leaves_siblings(self):
        new_method = "def eat(self, food):\n    return food * 2"
        result = _run(CLASS_SRC, [ApiEdit("replace", SymbolMatch("eat", kind="Method"), new_method)],
                      symbol_source=_animal_symbols)
        assert "        return food * 2\n" in result
        assert "    def sleep(self):\n        return 'zzz'\n" in result
        assert result.count("def eat") == 1

    def test_insert_after_symbol_adds_blank_line_and_indent(self):
        new_method = "def drink(self):\n    return 'water'"
        result = _run(CLASS_SRC, [ApiEdit("insert-after", SymbolMatch("eat"), new_method)],
                      symbol_source=_animal_symbols)
        assert (
            "        return food\n"
            "\n"
            "    def drink(self):\n"
            "        return 'water'\n"
        ) in result

    def test_insert_before_symbol_keeps_column(self):
        result = _run(CLASS_SRC, [ApiEdit("insert-before", SymbolMatch("sleep"), "@staticmethod\n")],
                      symbol_source=_animal_symbols)
        assert "    @staticmethod\n    def sleep(self):\n" in result

    def test_normalization_off_inserts_text_verbatim(self):
        context = ResolutionContext(TextDocument(CLASS_SRC), symbol_source=_animal_symbols)
        compiler = EditCompiler(context.document, normalize_indentation=False)
        rng = _animal_symbols()[0].children[0].range
        edit = compiler.compile(ApiEdit("replace", SymbolMatch("eat"), "a\nb"), rng)
        assert edit.new_text == "a\nb"

    def test_insert_before_incomplete_ast_node(self):
        text = "class Widget {\n}\n"
        nodes = [StructuralNode("class", "Widget", 0, 0, -1, 0, 0)]
        result = _run(text, [ApiEdit("insert-before", ASTNodeMatch("class", "Widget"), "// w\n")],
                      structural_nodes=nodes)
        assert result == "// w\nclass Widget {\n}\n"

    def test_replace_incomplete_ast_node_fails(self):
        nodes = [StructuralNode("class", "Widget", 0, 0, -1, 0, 0)]
        with pytest.raises(IncompleteNodeError):
            _run("class Widget {}\n", [ApiEdit("replace", ASTNodeMatch("class", "Widget"), "")],
                 structural_nodes=nodes)


class TestApplyIndentation:
    def test_first_line_untouched(self):
        assert apply_indentation("a\nb", "    ") == "a\n    b"

    def test_relative_indentation_preserved(self):
        assert apply_indentation("if x:\n    y()", "  ") == "if x:\n      y()"

    def test_blank_lines_not_indented(self):
        assert apply_indentation("a\n\nb", "\t") == "a\n\n\tb"

    def test_absolute_text_not_indented_twice(self):
        text = "    def f():\n        return 1"
        assert apply_indentation(text, "    ") == "def f():\n        return 1"


class TestCompileEdits:
    def test_failure_is_annotated(self):
        edits = [
            ApiEdit("replace", LinesMatch(1, 1), "ok"),
            ApiEdit("replace", RegexMatch("missing"), "x"),
        ]
        with pytest.raises(MatchNotFoundError) as excinfo:
            _run("a\nb\n", edits)
        assert excinfo.value.index == 1
        assert excinfo.value.instruction is edits[1]

    def test_out_of_range_aborts_batch(self):
        with pytest.raises(OutOfRangeError):
            _run("a\n", [ApiEdit("append", LineMatch(1), "x"), ApiEdit("append", LineMatch(9), "y")])

    def test_compiler_rejects_disallowed_pair(self):
        # Bypasses ApiEdit validation to reach the compiler's own check
        edit = ApiEdit("append", LineMatch(1), "x")
        object.__setattr__(edit, "match", StrMatch("a"))
        compiler = EditCompiler(TextDocument("a"))
        with pytest.raises(InvalidActionForMatchError):
            compiler.compile(edit, Range(Position(0, 0), Position(0, 1)))

    def test_empty_batch(self):
        context = ResolutionContext(TextDocument("abc"))
        assert compile_edits([], context) == []

    def test_round_trip_delete_then_insert(self):
        original = "alpha beta gamma"
        context = ResolutionContext(TextDocument(original))
        (deletion,) = compile_edits([ApiEdit("delete", StrMatch("beta "))], context)
        removed = TextDocument(original).get_text(deletion.range)
        deleted = apply_edits(original, [deletion])
        restored = apply_edits(deleted, [TextEdit(Range.empty(deletion.range.start), removed)])
        assert restored == original
