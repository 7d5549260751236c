"""Common interface for per-language structural extractors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from .nodes import StructuralNode


class StructureExtractor(ABC):
    """Extract named structural nodes (functions, classes, ...) from source.

    Implementations are stateless apart from parser caches; every call to
    :meth:`extract` re-parses the source.
    """

    #: Language tags this extractor handles.
    languages: tuple[str, ...] = ()
    #: File extensions (lower-case, with dot) mapped to ``languages[0]``.
    extensions: tuple[str, ...] = ()

    @abstractmethod
    def extract(self, source: str, language: str) -> Iterator[StructuralNode]:
        """Yield structural nodes of *source* in document pre-order."""
