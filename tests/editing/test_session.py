"""End-to-end tests for EditSession on top of the file-system host."""

import json
import os
import textwrap
from unittest.mock import patch

import pytest

from structedit.config import Config
from structedit.editing.document import Position, Range, TextEdit
from structedit.editing.errors import (
    ApplyFailedError, MatchNotFoundError, OverlappingEditsError,
)
from structedit.editing.host import FileSystemHost
from structedit.editing.models import ApplyEditsRequest
from structedit.editing.session import EditSession


@pytest.fixture
def config(tmp_path):
    return Config({"project_root": str(tmp_path), "metrics_enabled": False})


@pytest.fixture
def session(tmp_path, config):
    return EditSession(FileSystemHost(str(tmp_path)), config=config)


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8", newline="")
    return path


def _read(path):
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _request(file_path, *edits, comment="test"):
    return ApplyEditsRequest.from_dict(
        {"filePath": file_path, "shortComment": comment, "edits": list(edits)}
    )


def _replace_line(n, text):
    return {"action_type": "replace", "match_type": "lines",
            "startLine": n, "endLine": n, "newText": text}


class TestScenarios:
    def test_replace_first_line(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "line1\nline2\nline3\n")
        result = session.apply_request(_request("a.txt", _replace_line(1, "X")))
        assert result.success is True
        assert _read(path) == "X\nline2\nline3\n"

    def test_replace_method_by_symbol(self, tmp_path, session):
        pytest.importorskip("tree_sitter_javascript")
        source = textwrap.dedent("""\
            class Animal {
              eat(food) {
                return food;
              }
              sleep() {
                return 1;
              }
            }
        """)
        path = _write(tmp_path, "animal.js", source)
        session.apply_request(_request("animal.js", {
            "action_type": "replace", "match_type": "symbol",
            "name": "eat", "kind": "Method", "occurrence": 1,
            "newText": "eat(food) {\n  return food + 1;\n}",
        }))
        assert _read(path) == textwrap.dedent("""\
            class Animal {
              eat(food) {
                return food + 1;
              }
              sleep() {
                return 1;
              }
            }
        """)

    def test_insert_after_line(self, tmp_path, session):
        path = _write(tmp_path, "a.js", "a\nb\n")
        session.apply_request(_request("a.js", {
            "action_type": "insert-after", "match_type": "line", "atLine": 1, "newText": "// note",
        }))
        assert _read(path) == "a\n// note\nb\n"

    def test_missing_second_occurrence_leaves_file_alone(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "one foo here\n")
        with pytest.raises(MatchNotFoundError) as excinfo:
            session.apply_request(_request("a.txt", _replace_line(1, "ok"), {
                "action_type": "replace", "match_type": "regex",
                "regex": "foo", "occurrence": 2, "newText": "bar",
            }))
        assert excinfo.value.index == 1
        assert _read(path) == "one foo here\n"
        assert session.pending_changes("a.txt") == []

    def test_submission_order_does_not_matter(self, tmp_path, session):
        content = "".join(f"line{i}\n" for i in range(1, 11))
        first = _write(tmp_path, "first.txt", content)
        second = _write(tmp_path, "second.txt", content)
        edits = [_replace_line(2, "two\n2b"), _replace_line(5, "five")]

        session.apply_request(_request("first.txt", *edits))
        session.apply_request(_request("second.txt", *reversed(edits)))
        assert _read(first) == _read(second)
        assert _read(first).startswith("line1\ntwo\n2b\nline3\nline4\nfive\nline6\n")


class TestApplyRequest:
    def test_empty_request(self, tmp_path, session):
        _write(tmp_path, "a.txt", "x")
        result = session.apply_request(_request("a.txt"))
        assert result.success is True
        assert result.message == "No edits to apply."

    def test_tracks_pending_changes(self, tmp_path, session):
        _write(tmp_path, "a.txt", "a\nb\n")
        result = session.apply_request(
            _request("a.txt", _replace_line(1, "A"), _replace_line(2, "B"), comment="caps"))
        assert [c.description for c in result.pending_changes] == ["caps (1/2)", "caps (2/2)"]
        assert len(session.pending_changes("a.txt")) == 2

    def test_missing_comment(self, tmp_path, session):
        _write(tmp_path, "a.txt", "a\n")
        result = session.apply_request(_request("a.txt", _replace_line(1, "A"), comment=""))
        assert result.pending_changes[0].description == "No comment (1/1)"

    def test_untracked(self, tmp_path, session):
        _write(tmp_path, "a.txt", "a\n")
        result = session.apply_request(_request("a.txt", _replace_line(1, "A")), track=False)
        assert result.pending_changes == []
        assert session.pending_changes("a.txt") == []

    def test_overlapping_edits_rejected(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "a\nb\nc\n")
        with pytest.raises(OverlappingEditsError):
            session.apply_request(_request("a.txt", {
                "action_type": "replace", "match_type": "lines",
                "startLine": 1, "endLine": 2, "newText": "x",
            }, _replace_line(2, "y")))
        assert _read(path) == "a\nb\nc\n"

    def test_overlapping_edits_allowed_by_config(self, tmp_path):
        config = Config({"project_root": str(tmp_path), "metrics_enabled": False,
                         "reject_overlapping_edits": False})
        host = FileSystemHost(str(tmp_path), strict_overlaps=False)
        session = EditSession(host, config=config)
        path = _write(tmp_path, "a.txt", "abcdef")
        session.apply_request(_request("a.txt",
            {"action_type": "replace", "match_type": "str", "text": "abc", "newText": "X"},
            {"action_type": "replace", "match_type": "str", "text": "cde", "newText": "Y"},
        ), track=False)
        assert _read(path) == "Xf"

    def test_default_language_does_not_override_known_extension(self, tmp_path):
        pytest.importorskip("tree_sitter_javascript")
        config = Config({"project_root": str(tmp_path), "metrics_enabled": False,
                         "default_language": "python"})
        session = EditSession(FileSystemHost(str(tmp_path), language="python"), config=config)
        path = _write(tmp_path, "util.js", "function foo() {\n  return 1;\n}\n")
        session.apply_request(_request("util.js", {
            "action_type": "replace", "match_type": "ast", "nodeType": "function",
            "name": "foo", "newText": "function foo() {\n  return 2;\n}"}))
        assert _read(path) == "function foo() {\n  return 2;\n}\n"

    def test_default_language_used_for_unknown_extension(self, tmp_path):
        pytest.importorskip("tree_sitter_python")
        config = Config({"project_root": str(tmp_path), "metrics_enabled": False,
                         "default_language": "python"})
        session = EditSession(FileSystemHost(str(tmp_path)), config=config)
        path = _write(tmp_path, "job.tmpl", "def foo():\n    return 1\n")
        session.apply_request(_request("job.tmpl", {
            "action_type": "replace", "match_type": "ast", "nodeType": "function",
            "name": "foo", "newText": "def foo():\n    return 2"}))
        assert _read(path) == "def foo():\n    return 2\n"

    def test_host_failure_discards_changes(self, tmp_path, session):
        _write(tmp_path, "a.txt", "a\n")
        with patch.object(FileSystemHost, "apply_edits", return_value=False):
            with pytest.raises(ApplyFailedError):
                session.apply_request(_request("a.txt", _replace_line(1, "A")))
        assert session.pending_changes("a.txt") == []

    def test_missing_file(self, session):
        with pytest.raises(FileNotFoundError):
            session.apply_request(_request("nope.txt", _replace_line(1, "A")))

    def test_metrics_logged(self, tmp_path):
        config = Config({"project_root": str(tmp_path), "metrics_enabled": True})
        session = EditSession(FileSystemHost(str(tmp_path)), config=config)
        _write(tmp_path, "a.txt", "a\n")
        session.apply_request(_request("a.txt", _replace_line(1, "A")))
        with pytest.raises(MatchNotFoundError):
            session.apply_request(_request("a.txt", {
                "action_type": "delete", "match_type": "str", "text": "zzz"}))

        metrics = tmp_path / ".structedit" / "edit_metrics.jsonl"
        entries = [json.loads(line) for line in metrics.read_text().splitlines()]
        assert [e["success"] for e in entries] == [True, False]
        assert entries[0]["actions"] == ["replace"]
        assert entries[0]["match_types"] == ["lines"]
        assert entries[1]["error_type"] == "MatchNotFoundError"


class TestPreview:
    def test_preview_does_not_write(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "line1\nline2\n")
        preview = session.preview(_request("a.txt", _replace_line(1, "X")))
        assert preview.new_text == "X\nline2\n"
        assert "-line1" in preview.diff
        assert "+X" in preview.diff
        assert _read(path) == "line1\nline2\n"
        assert session.pending_changes("a.txt") == []


class TestReview:
    def test_reject_restores_file(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "keep\nchange me\nkeep\n")
        result = session.apply_request(_request("a.txt", _replace_line(2, "changed\nand grew")))
        assert session.reject(result.pending_changes[0].id) is True
        assert _read(path) == "keep\nchange me\nkeep\n"

    def test_reject_all_restores_file(self, tmp_path, session):
        content = "".join(f"line{i}\n" for i in range(1, 6))
        path = _write(tmp_path, "a.txt", content)
        session.apply_request(_request("a.txt", _replace_line(2, "TWO"), _replace_line(4, "FOUR")))
        assert session.reject_all("a.txt") == 2
        assert _read(path) == content

    def test_approve_all_keeps_edits(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "a\nb\n")
        session.apply_request(_request("a.txt", _replace_line(1, "A"), _replace_line(2, "B")))
        assert session.approve_all("a.txt") == 2
        assert _read(path) == "A\nB\n"
        assert session.pending_changes("a.txt") == []

    def test_approve_unknown(self, session):
        assert session.approve("change_1_abcdefghi") is False
        assert session.reject("change_1_abcdefghi") is False

    def test_save_and_clear_drops_baseline(self, tmp_path, session):
        path = _write(tmp_path, "a.txt", "a\n")
        session.apply_request(_request("a.txt", _replace_line(1, "A")))
        assert session.save_and_clear("a.txt") is True
        assert session.ledger.baseline(session.host.resolve_path("a.txt")) is None
        assert session.pending_changes("a.txt") == []


class TestFileSystemHost:
    def test_crlf_preserved(self, tmp_path):
        path = _write(tmp_path, "a.txt", "a\r\nb\r\n")
        host = FileSystemHost(str(tmp_path))
        assert host.apply_edits("a.txt", [TextEdit(Range.empty(Position(1, 1)), "!")]) is True
        assert _read(path) == "a\r\nb!\r\n"

    def test_apply_failure_returns_false(self, tmp_path):
        _write(tmp_path, "a.txt", "abc")
        host = FileSystemHost(str(tmp_path))
        assert host.apply_edits("a.txt", [TextEdit(Range.empty(Position(5, 0)), "!")]) is False
        assert not os.path.exists(str(tmp_path / "a.txt") + ".structedit_tmp")

    def test_resolve_path(self, tmp_path):
        host = FileSystemHost(str(tmp_path))
        assert host.resolve_path("src/a.py") == os.path.join(str(tmp_path), "src", "a.py")
        assert host.resolve_path(str(tmp_path / "b.py")) == str(tmp_path / "b.py")

    def test_resolve_symbols_with_fallback(self, tmp_path):
        _write(tmp_path, "script.zz", "function go() {\n}\n")
        host = FileSystemHost(str(tmp_path))
        (symbol,) = host.resolve_symbols("script.zz")
        assert (symbol.name, symbol.kind) == ("go", "Function")

    def test_resolve_symbols_prefers_extension_over_language(self, tmp_path):
        pytest.importorskip("tree_sitter_javascript")
        _write(tmp_path, "app.js", "function go() {\n  return 1;\n}\n")
        host = FileSystemHost(str(tmp_path), language="python")
        (symbol,) = host.resolve_symbols("app.js")
        assert (symbol.name, symbol.kind) == ("go", "Function")
        assert symbol.range == Range(Position(0, 0), Position(2, 1))
