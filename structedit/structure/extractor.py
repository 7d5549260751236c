"""
Structural extractor registry and dispatch.

``extract(source, language_or_path)`` picks an extractor by explicit
language tag, then by file extension, and falls back to the regex
extractor when nothing is registered for the input.
"""

from __future__ import annotations

import logging
import os
from typing import Iterator, Optional

from .base import StructureExtractor
from .fallback import RegexFallbackExtractor
from .nodes import StructuralNode
from .treesitter import default_extractors

logger = logging.getLogger(__name__)

_EXTRACTORS: dict[str, StructureExtractor] = {}
_EXTENSION_TO_LANGUAGE: dict[str, str] = {}
_FALLBACK = RegexFallbackExtractor()

# Common aliases accepted as language tags
_ALIASES = {
    "py": "python",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "csharp": "c_sharp",
    "c#": "c_sharp",
    "c++": "cpp",
    "golang": "go",
}


def register_extractor(extractor: StructureExtractor) -> None:
    """Register *extractor* for its languages and extensions.

    Later registrations replace earlier ones for the same tag/extension.
    """
    for lang in extractor.languages:
        _EXTRACTORS[lang] = extractor
    if extractor.languages:
        for ext in extractor.extensions:
            _EXTENSION_TO_LANGUAGE[ext.lower()] = extractor.languages[0]


def supported_languages() -> set[str]:
    return set(_EXTRACTORS)


def detect_language(file_path: str) -> Optional[str]:
    """Return the language tag for *file_path*, or None if unsupported.

    Parameters
    ----------
    file_path:
        Any file path; only the extension is examined.
    """
    ext = os.path.splitext(file_path)[1].lower()
    return _EXTENSION_TO_LANGUAGE.get(ext)


def language_for(file_path: Optional[str], default: Optional[str] = None) -> Optional[str]:
    """Language of *file_path* by extension, else *default*."""
    return (detect_language(file_path) if file_path else None) or default


def resolve_language(language_or_path: Optional[str]) -> Optional[str]:
    """Normalize an explicit tag or a file path into a registered tag."""
    if not language_or_path:
        return None
    tag = language_or_path.lower()
    tag = _ALIASES.get(tag, tag)
    if tag in _EXTRACTORS:
        return tag
    return detect_language(language_or_path)


def extract(source: str, language_or_path: Optional[str] = None) -> Iterator[StructuralNode]:
    """Yield the structural nodes of *source*.

    The result is a generator; iterate it again by calling ``extract`` again
    (which re-parses).

    Parameters
    ----------
    source:
        The source text.
    language_or_path:
        A language tag (``"python"``, ``"typescript"``, ...) or a file path
        whose extension selects the language.
    """
    language = resolve_language(language_or_path)
    if language is None:
        logger.debug("[Structure] No extractor for %r, using regex fallback", language_or_path)
        yield from _FALLBACK.extract(source)
        return

    try:
        nodes = list(_EXTRACTORS[language].extract(source, language))
    except (ImportError, ValueError, RuntimeError) as exc:
        logger.warning("[Structure] %s extraction failed (%s), using regex fallback",
                       language, exc)
        nodes = list(_FALLBACK.extract(source))
    yield from nodes


def extract_nodes(source: str, language_or_path: Optional[str] = None) -> list[StructuralNode]:
    """Eager variant of :func:`extract`."""
    return list(extract(source, language_or_path))


for _extractor in default_extractors():
    register_extractor(_extractor)
