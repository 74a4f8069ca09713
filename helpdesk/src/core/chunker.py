"""
Helpdesk - Chunker
===================
Splits ``Document`` units into overlapping ``Passage`` windows with
LangChain's ``RecursiveCharacterTextSplitter``.

Separator hierarchy: paragraph → line → sentence → word → hard cut, so
a window only falls back to a mid-word cut when a single word is longer
than ``chunk_size``.
"""

from __future__ import annotations

import time
from collections.abc import Iterable

from langchain_text_splitters import RecursiveCharacterTextSplitter

from helpdesk.config.settings import settings
from helpdesk.src.core.exceptions import ConfigurationError
from helpdesk.src.core.models import Document, Passage
from helpdesk.src.utils.logger import get_logger

logger = get_logger(__name__)

SEPARATORS: list[str] = ["\n\n", "\n", ". ", " ", ""]


class Chunker:
    """Fixed-size, overlapping window splitter."""

    __slots__ = ("chunk_size", "chunk_overlap", "_splitter")

    def __init__(self, chunk_size: int | None = None, chunk_overlap: int | None = None) -> None:
        self.chunk_size = settings.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = settings.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ConfigurationError(f"chunk_overlap must be non-negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(f"chunk_overlap ({self.chunk_overlap}) must be smaller than chunk_size ({self.chunk_size})")

        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=SEPARATORS,
            keep_separator="end",
            strip_whitespace=False,
            length_function=len,
        )


    def split_text(self, text: str) -> list[str]:
        """Split one text.  Texts no longer than ``chunk_size`` come back whole."""
        if not text:
            return []
        if len(text) <= self.chunk_size:
            return [text]
        return [piece for piece in self._splitter.split_text(text) if piece]


    def split(self, documents: Iterable[Document]) -> list[Passage]:
        """Split every document, preserving document order and in-text order."""
        t_start = time.perf_counter()
        passages: list[Passage] = []
        doc_count = 0

        for document in documents:
            doc_count += 1
            pieces = self.split_text(document.raw_text)
            passages.extend(
                Passage(text=piece, source_document_id=document.document_id, ordinal=ordinal)
                for ordinal, piece in enumerate(pieces)
            )

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        logger.info("Chunked %d document(s) → %d passage(s) in %.1fms (size=%d, overlap=%d).", doc_count, len(passages), elapsed_ms, self.chunk_size, self.chunk_overlap)
        return passages
