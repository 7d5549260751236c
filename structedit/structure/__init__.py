"""Structural extraction — named declarations with ranges, depth and parent."""

from .base import StructureExtractor
from .extractor import (
    detect_language, extract, extract_nodes, language_for, register_extractor,
    resolve_language, supported_languages,
)
from .fallback import RegexFallbackExtractor
from .nodes import NODE_KINDS, StructuralNode
from .treesitter import LANGUAGE_SPECS, LanguageSpec, TreeSitterExtractor

__all__ = [
    "StructureExtractor", "StructuralNode", "NODE_KINDS",
    "detect_language", "extract", "extract_nodes", "language_for", "register_extractor",
    "resolve_language", "supported_languages",
    "RegexFallbackExtractor", "LANGUAGE_SPECS", "LanguageSpec", "TreeSitterExtractor",
]
