"""
Configuration — loads settings from .structedit.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

from __future__ import annotations

import os

import yaml


_DEFAULTS = {
    "project_root": "",
    "default_language": "",
    "reject_overlapping_edits": True,
    "normalize_indentation": True,
    "track_changes": True,
    "metrics_enabled": True,
    "metrics_dir": ".structedit",
    "log_level": "WARNING",
}

# Config file search locations
_CONFIG_FILENAMES = [".structedit.yaml", ".structedit.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Engine configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``STRUCTEDIT_*``)
    3. .structedit.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return _DEFAULTS[yaml_key]

        def _get_bool(env_key: str, yaml_key: str) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() in ("1", "true", "yes", "on")
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return _DEFAULTS[yaml_key]

        self.PROJECT_ROOT = _get("STRUCTEDIT_PROJECT_ROOT", "project_root") or os.getcwd()
        self.DEFAULT_LANGUAGE = _get("STRUCTEDIT_DEFAULT_LANGUAGE", "default_language") or None

        # Overlapping edits in one batch: hard error, or last-applied-wins
        self.REJECT_OVERLAPPING_EDITS = _get_bool("STRUCTEDIT_REJECT_OVERLAPPING_EDITS",
                                                  "reject_overlapping_edits")
        self.NORMALIZE_INDENTATION = _get_bool("STRUCTEDIT_NORMALIZE_INDENTATION",
                                               "normalize_indentation")
        self.TRACK_CHANGES = _get_bool("STRUCTEDIT_TRACK_CHANGES", "track_changes")

        # Edit metrics log
        self.METRICS_ENABLED = _get_bool("STRUCTEDIT_METRICS_ENABLED", "metrics_enabled")
        self.METRICS_DIR = _get("STRUCTEDIT_METRICS_DIR", "metrics_dir")

        self.LOG_LEVEL = str(_get("STRUCTEDIT_LOG_LEVEL", "log_level")).upper()

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
