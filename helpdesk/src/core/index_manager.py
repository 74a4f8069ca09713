"""
Helpdesk - IndexManager
========================
Owns the load → split → embed → index sequence and decides when it runs.

Modes
-----
``"shared"`` (default)
    One immutable index snapshot is shared read-only by every request.
    Before each lookup the docs folder fingerprint (path, size, mtime of
    every file) is compared with the one the snapshot was built from; on
    change the index is rebuilt.  Rebuilds are serialised by a single
    ``asyncio.Lock`` and published with one reference assignment, so a
    concurrent reader sees either the previous or the new complete index,
    never a partial one.  A failed rebuild keeps the previous snapshot.

``"per_request"``
    Every call builds a private index from disk and discards it
    afterwards.  No state is shared between requests.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Literal

from helpdesk.config.settings import settings
from helpdesk.src.core.chunker import Chunker
from helpdesk.src.core.embeddings import EmbeddingService
from helpdesk.src.core.loader import DocumentLoader
from helpdesk.src.database.vector_store import IndexBackend, InMemoryIndex, LanceIndex, build_index
from helpdesk.src.utils.logger import get_logger

logger = get_logger(__name__)

IndexMode = Literal["shared", "per_request"]
Fingerprint = tuple[tuple[str, int, int], ...]


@dataclass(frozen=True, slots=True)
class IndexSnapshot:
    """A fully built index plus the folder state it reflects."""

    index: InMemoryIndex | LanceIndex
    fingerprint: Fingerprint
    documents: int
    passages: int
    failures: int
    build_seconds: float


class IndexManager:
    """
    Parameters
    ----------
    loader, chunker, embedder
        Pipeline stages (injected).
    mode
        ``"shared"`` or ``"per_request"``.  Defaults to ``settings.INDEX_MODE``.
    backend
        ``"memory"`` or ``"lancedb"``.  Defaults to ``settings.INDEX_BACKEND``.
    """

    __slots__ = ("_loader", "_chunker", "_embedder", "mode", "backend", "_snapshot", "_lock")

    def __init__(self, loader: DocumentLoader, chunker: Chunker, embedder: EmbeddingService, mode: IndexMode | None = None, backend: IndexBackend | None = None) -> None:
        self._loader = loader
        self._chunker = chunker
        self._embedder = embedder
        self.mode: IndexMode = mode or settings.INDEX_MODE
        self.backend: IndexBackend = backend or settings.INDEX_BACKEND
        self._snapshot: IndexSnapshot | None = None
        self._lock = asyncio.Lock()


    @property
    def snapshot(self) -> IndexSnapshot | None:
        """The currently published shared index, if any."""
        return self._snapshot


    async def build(self) -> IndexSnapshot:
        """Run the full pipeline once and return a new, unpublished snapshot."""
        t_start = time.perf_counter()
        fingerprint = await asyncio.to_thread(self._loader.fingerprint)
        loaded = await self._loader.aload()
        passages = self._chunker.split(loaded.documents)
        index = await build_index(passages, self._embedder, backend=self.backend)

        snapshot = IndexSnapshot(
            index=index,
            fingerprint=fingerprint,
            documents=len(loaded.documents),
            passages=len(passages),
            failures=len(loaded.failures),
            build_seconds=round(time.perf_counter() - t_start, 3),
        )
        logger.info("Index build complete — %d document unit(s), %d passage(s), %d failed file(s) in %.2fs.", snapshot.documents, snapshot.passages, snapshot.failures, snapshot.build_seconds)
        return snapshot


    async def refresh(self, force: bool = False) -> IndexSnapshot:
        """
        Return an up-to-date shared snapshot, rebuilding if the folder changed.

        Only one rebuild runs at a time; callers queued behind it re-check
        the fingerprint and reuse the fresh snapshot.
        """
        current = self._snapshot
        if not force and current is not None and await self._is_current(current):
            return current

        async with self._lock:
            current = self._snapshot
            if not force and current is not None and await self._is_current(current):
                return current

            reason = "forced" if force else ("initial" if current is None else "docs changed")
            logger.info("Rebuilding shared index (%s).", reason)
            fresh = await self.build()
            # single assignment publishes the complete index; the previous
            # one is released once in-flight readers drop their reference
            self._snapshot = fresh

        return fresh


    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[InMemoryIndex | LanceIndex]:
        """Yield an index suitable for one request according to ``mode``."""
        if self.mode == "per_request":
            snapshot = await self.build()
            try:
                yield snapshot.index
            finally:
                snapshot.index.close()
            return

        snapshot = await self.refresh()
        yield snapshot.index


    def close(self) -> None:
        if self._snapshot is not None:
            self._snapshot.index.close()
            self._snapshot = None


    async def _is_current(self, snapshot: IndexSnapshot) -> bool:
        return await asyncio.to_thread(self._loader.fingerprint) == snapshot.fingerprint
