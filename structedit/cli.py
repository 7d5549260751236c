"""
`structedit` command-line interface.

Commands
--------
structedit apply REQUEST.json               -- apply an edit request
structedit apply REQUEST.json --dry-run     -- show the diff, write nothing
structedit apply REQUEST.json --no-track    -- apply without recording pending changes
structedit apply REQUEST.json --review      -- approve/reject each change interactively
structedit outline FILE                     -- list the structural nodes of FILE
structedit outline FILE --language python --json
structedit edit-stats                       -- summarize the edit metrics log
structedit edit-stats --last-n 20
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from .config import Config
from .editing.change_ledger import PendingChange
from .editing.diff import format_colored_diff
from .editing.errors import EditError
from .editing.host import FileSystemHost
from .editing.metrics import read_edit_stats
from .editing.models import ApplyEditsRequest
from .editing.session import EditSession
from .structure import extract_nodes

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_config(args: argparse.Namespace) -> Config:
    config = Config.load(getattr(args, "config", None))
    if getattr(args, "project_root", None):
        config.PROJECT_ROOT = args.project_root
    return config


def _load_request(path: str) -> ApplyEditsRequest:
    """Read and parse a JSON edit request; exits on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Cannot read request {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    try:
        return ApplyEditsRequest.from_dict(data)
    except EditError as exc:
        print(f"Invalid request: {_describe_error(exc)}", file=sys.stderr)
        sys.exit(1)


def _describe_error(exc: EditError) -> str:
    if exc.index is None:
        return str(exc)
    return f"edit {exc.index + 1}: {exc}"


def _print_change(change: PendingChange) -> None:
    start = change.text_edit.range.start
    print(f"\n{change.description}  [{change.id}]  at {start.line + 1}:{start.character + 1}")
    print("-" * 60)
    for line in change.original_text.splitlines():
        print(f"\033[31m- {line}\033[0m")
    for line in change.text_edit.new_text.splitlines():
        print(f"\033[32m+ {line}\033[0m")


def _review(session: EditSession, file_path: str) -> None:
    """Prompt approve/reject for every pending change of *file_path*."""
    # Bottom-up, so reverting one change leaves the ranges above it valid
    changes = sorted(session.pending_changes(file_path),
                     key=lambda c: c.text_edit.range.start, reverse=True)
    approved = rejected = 0
    for change in changes:
        _print_change(change)
        try:
            answer = input("Keep this change? [Y/n] ").strip().lower()
        except EOFError:
            answer = ""
        if answer in ("n", "no"):
            if session.reject(change.id):
                rejected += 1
            else:
                print(f"  Could not revert {change.id}", file=sys.stderr)
        else:
            session.approve(change.id)
            approved += 1
    session.save_and_clear(file_path)
    print(f"\nReview done: {approved} approved, {rejected} rejected")


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_apply(args: argparse.Namespace) -> None:
    """Apply (or preview) a JSON edit request."""
    config = _load_config(args)
    request = _load_request(args.request)

    host = FileSystemHost(
        config.PROJECT_ROOT,
        strict_overlaps=config.REJECT_OVERLAPPING_EDITS,
        language=config.DEFAULT_LANGUAGE,
    )
    session = EditSession(host, config=config)

    try:
        if args.dry_run:
            preview = session.preview(request)
            if preview.diff:
                print(format_colored_diff(preview.diff))
            else:
                print("(no changes)")
            return

        track = config.TRACK_CHANGES and not args.no_track
        result = session.apply_request(request, track=track or args.review)
    except EditError as exc:
        print(f"Edit failed: {_describe_error(exc)}", file=sys.stderr)
        sys.exit(1)
    except OSError as exc:
        print(f"Edit failed: {exc}", file=sys.stderr)
        sys.exit(1)

    print(result.message)
    if args.review and result.pending_changes:
        _review(session, request.file_path)


def _cmd_outline(args: argparse.Namespace) -> None:
    """Print the structural nodes of a source file."""
    try:
        with open(args.file, "r", encoding="utf-8", newline="") as f:
            source = f.read()
    except OSError as exc:
        print(f"Cannot read {args.file}: {exc}", file=sys.stderr)
        sys.exit(1)

    nodes = extract_nodes(source, args.language or args.file)
    if args.json:
        print(json.dumps([n.to_dict() for n in nodes], indent=2))
        return

    if not nodes:
        print(f"  (no declarations found in {args.file})")
        return
    print(f"\n{args.file}  [{len(nodes)} node(s)]")
    print("-" * 60)
    for n in nodes:
        label = "  " * n.depth + f"{n.kind:<10}  {n.name}"
        if n.parent:
            label += f"  (in {n.parent})"
        end = n.end_line + 1 if n.is_complete else "?"
        print(f"  {label:<50}  {n.start_line + 1}-{end}")


def _cmd_edit_stats(args: argparse.Namespace) -> None:
    """Summarize the edit metrics log."""
    config = _load_config(args)
    stats = read_edit_stats(args.last_n, project_root=config.PROJECT_ROOT,
                            metrics_dir=config.METRICS_DIR)
    if not stats["total_batches"]:
        print("No edit metrics recorded yet.")
        return

    print(
        f"Edit stats (last {stats['total_batches']} batch(es))\n"
        f"  Edits          : {stats['total_edits']}\n"
        f"  Success rate   : {stats['success_rate']:.1f}%\n"
        f"  Avg edits/batch: {stats['avg_edits_per_batch']:.1f}"
    )
    for title, key in (("Actions", "actions"), ("Match types", "match_types")):
        print(f"  {title}:")
        for name, pct in stats[key].items():
            print(f"    {name:<14} {pct:5.1f}%")
    if stats["errors"]:
        print("  Errors:")
        for name, count in stats["errors"].items():
            print(f"    {name:<24} {count}")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="structedit",
        description="Declarative structural edits with reviewable change tracking",
    )
    parser.add_argument("--config", help="Path to a .structedit.yaml file")
    parser.add_argument("--project-root", help="Resolve request paths against this directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="cmd", metavar="COMMAND")
    subparsers.required = True

    # --- apply ---
    apply_p = subparsers.add_parser("apply", help="Apply a JSON edit request")
    apply_p.add_argument("request", help="Path to the request JSON file")
    apply_p.add_argument("--dry-run", action="store_true",
                         help="Show the resulting diff without writing")
    apply_p.add_argument("--no-track", action="store_true",
                         help="Do not record pending changes")
    apply_p.add_argument("--review", action="store_true",
                         help="Approve or reject each change after applying")
    apply_p.set_defaults(func=_cmd_apply)

    # --- outline ---
    outline_p = subparsers.add_parser("outline", help="List the structural nodes of a file")
    outline_p.add_argument("file", help="Source file")
    outline_p.add_argument("--language", help="Language tag (default: from the extension)")
    outline_p.add_argument("--json", action="store_true", help="Print JSON")
    outline_p.set_defaults(func=_cmd_outline)

    # --- edit-stats ---
    stats_p = subparsers.add_parser("edit-stats", help="Summarize recorded edit metrics")
    stats_p.add_argument("--last-n", type=int, default=50,
                         help="Number of most recent batches (default: 50)")
    stats_p.set_defaults(func=_cmd_edit_stats)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the ``structedit`` console script.

    Parameters
    ----------
    argv:
        Argument list (defaults to ``sys.argv[1:]``).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Configure logging if not already configured
    if not logging.root.handlers:
        level = logging.DEBUG if args.verbose else Config.load(args.config).LOG_LEVEL
        logging.basicConfig(
            level=level,
            format="%(levelname)s  %(name)s  %(message)s",
        )

    args.func(args)


if __name__ == "__main__":
    main()
