"""
Edit metrics — records applied edit batches in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_METRICS_DIR = ".structedit"
_METRICS_FILE = "edit_metrics.jsonl"


def _metrics_path(project_root: str | None = None, metrics_dir: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, metrics_dir or _METRICS_DIR, _METRICS_FILE)


def log_edit_metric(
    data: dict,
    project_root: str | None = None,
    metrics_dir: str | None = None,
) -> None:
    """Append a single edit metric entry to the JSONL log.

    Parameters
    ----------
    data:
        Metric fields to log (file, edits, actions, match_types, success, ...).
    project_root:
        Optional project root directory. Defaults to CWD.
    metrics_dir:
        Directory under the project root holding the log.
    """
    path = _metrics_path(project_root, metrics_dir)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[Edit] Failed to write metrics: %s", exc)


def read_edit_stats(
    last_n: int = 50,
    project_root: str | None = None,
    metrics_dir: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Returns
    -------
    dict
        ``total_batches``, ``total_edits``, ``success_rate``,
        ``avg_edits_per_batch``, ``actions`` and ``match_types`` (percent of
        all edits), ``errors`` (most common error types).
    """
    path = _metrics_path(project_root, metrics_dir)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError:
            pass

    # Take last N entries
    entries = entries[-last_n:]

    if not entries:
        return {
            "total_batches": 0,
            "total_edits": 0,
            "success_rate": 0.0,
            "avg_edits_per_batch": 0.0,
            "actions": {},
            "match_types": {},
            "errors": {},
        }

    total = len(entries)
    successes = sum(1 for e in entries if e.get("success", False))
    edit_counts = [e.get("edits", 0) for e in entries]
    total_edits = sum(edit_counts)

    actions: Counter = Counter()
    match_types: Counter = Counter()
    for e in entries:
        actions.update(e.get("actions", []))
        match_types.update(e.get("match_types", []))
    errors = Counter(e["error_type"] for e in entries if e.get("error_type"))

    def _pct(counter: Counter) -> dict:
        n = sum(counter.values())
        return {k: v / n * 100 for k, v in counter.most_common()} if n else {}

    return {
        "total_batches": total,
        "total_edits": total_edits,
        "success_rate": successes / total * 100,
        "avg_edits_per_batch": total_edits / total,
        "actions": _pct(actions),
        "match_types": _pct(match_types),
        "errors": dict(errors.most_common()),
    }
