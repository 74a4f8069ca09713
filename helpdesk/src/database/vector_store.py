"""
Helpdesk - Vector Indexes
==========================
Nearest-neighbour structures over (``Passage``, vector) pairs.

Two interchangeable backends implement the ``VectorIndex`` protocol:

  • ``InMemoryIndex`` — NumPy matrix of L2-normalised rows, exact cosine
    similarity via one matrix-vector product.  Default; ideal for the
    small corpora this service targets.
  • ``LanceIndex`` — a LanceDB table with a strict PyArrow schema, created
    inside a temporary directory that is removed when the index is
    closed or garbage-collected.  Nothing survives a restart.

Both return results highest-similarity first, break ties by insertion
order, never return more than ``k`` rows, and treat an empty passage set
as a valid (empty) index.

Usage:
    index = await build_index(passages, embedding_service, backend="memory")
    hits  = index.search(query_vector, k=3)
"""

from __future__ import annotations

import tempfile
import time
from collections.abc import Sequence
from typing import Literal, Protocol, runtime_checkable

import lancedb
import numpy as np
import pyarrow as pa

from helpdesk.src.core.embeddings import EmbeddingService, Vector
from helpdesk.src.core.exceptions import EmbeddingError
from helpdesk.src.core.models import Passage, RetrievedPassage
from helpdesk.src.utils.logger import get_logger

logger = get_logger(__name__)

IndexBackend = Literal["memory", "lancedb"]

_TABLE_NAME = "passages"


# ── Index Protocol ────────────────────────────────────────────────────

@runtime_checkable
class VectorIndex(Protocol):
    """Structural type shared by every index backend."""

    def search(self, query_vector: Sequence[float], k: int) -> list[RetrievedPassage]: ...

    def __len__(self) -> int: ...


# ── Helpers ───────────────────────────────────────────────────────────

def _as_matrix(vectors: Sequence[Vector], expected_rows: int) -> np.ndarray:
    """Stack vectors into an L2-normalised float32 matrix."""
    if len(vectors) != expected_rows:
        raise EmbeddingError("Embedding count does not match passage count", detail=f"{len(vectors)} vectors for {expected_rows} passages")
    try:
        matrix = np.asarray(vectors, dtype=np.float32)
    except ValueError as exc:
        raise EmbeddingError("Embedding vectors have inconsistent dimensions", detail=str(exc)) from exc
    if matrix.ndim != 2 or matrix.shape[1] == 0:
        raise EmbeddingError("Embedding vectors have inconsistent dimensions", detail=f"shape {matrix.shape}")

    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


def _normalise_query(query_vector: Sequence[float], dim: int) -> np.ndarray:
    query = np.asarray(query_vector, dtype=np.float32)
    if query.ndim != 1 or query.shape[0] != dim:
        raise EmbeddingError("Query vector dimension does not match the index", detail=f"expected {dim}, got {query.shape}")
    norm = np.linalg.norm(query)
    return query / norm if norm else query


# ══════════════════════════════════════════════════════════════════════
#  IN-MEMORY (NumPy)
# ══════════════════════════════════════════════════════════════════════


class InMemoryIndex:
    """Exact cosine search over a dense NumPy matrix."""

    __slots__ = ("_passages", "_matrix")

    def __init__(self, passages: Sequence[Passage], vectors: Sequence[Vector]) -> None:
        self._passages: tuple[Passage, ...] = tuple(passages)
        self._matrix: np.ndarray | None = _as_matrix(vectors, len(self._passages)) if self._passages else None


    def __len__(self) -> int:
        return len(self._passages)


    @property
    def dimension(self) -> int:
        return 0 if self._matrix is None else int(self._matrix.shape[1])


    def search(self, query_vector: Sequence[float], k: int) -> list[RetrievedPassage]:
        if k <= 0 or self._matrix is None:
            return []

        query = _normalise_query(query_vector, self.dimension)
        scores = self._matrix @ query
        # stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [RetrievedPassage(passage=self._passages[i], score=float(scores[i])) for i in order]


    def close(self) -> None:
        """No-op; present for interface parity with ``LanceIndex``."""


    def __repr__(self) -> str:
        return f"InMemoryIndex(passages={len(self)}, dim={self.dimension})"


# ══════════════════════════════════════════════════════════════════════
#  LANCEDB (temporary table)
# ══════════════════════════════════════════════════════════════════════


def _passage_schema(dim: int) -> pa.Schema:
    return pa.schema([
        pa.field("vector", pa.list_(pa.float32(), dim)),
        pa.field("row_id", pa.int64()),
        pa.field("text", pa.utf8()),
        pa.field("source_document_id", pa.utf8()),
        pa.field("ordinal", pa.int32()),
    ])


class LanceIndex:
    """
    Exact search over a LanceDB table living in a private temp directory.

    Vectors are stored L2-normalised so the table's default L2 ranking
    matches cosine ranking; the reported score is the cosine similarity
    recomputed from the stored vector.
    """

    __slots__ = ("_passages", "_dim", "_tmpdir", "_table")

    def __init__(self, passages: Sequence[Passage], vectors: Sequence[Vector]) -> None:
        self._passages: tuple[Passage, ...] = tuple(passages)
        self._dim = 0
        self._tmpdir: tempfile.TemporaryDirectory[str] | None = None
        self._table = None

        if not self._passages:
            return

        matrix = _as_matrix(vectors, len(self._passages))
        self._dim = int(matrix.shape[1])
        self._tmpdir = tempfile.TemporaryDirectory(prefix="helpdesk-lance-")

        try:
            db = lancedb.connect(self._tmpdir.name)
            records = [
                {"vector": row.tolist(), "row_id": i, "text": p.text, "source_document_id": p.source_document_id, "ordinal": p.ordinal}
                for i, (p, row) in enumerate(zip(self._passages, matrix))
            ]
            data = pa.Table.from_pylist(records, schema=_passage_schema(self._dim))
            self._table = db.create_table(_TABLE_NAME, data=data)
        except Exception:
            logger.exception("Failed to create temporary LanceDB table.")
            self.close()
            raise

        logger.debug("LanceDB table created in %s (%d rows).", self._tmpdir.name, len(self._passages))


    def __len__(self) -> int:
        return len(self._passages)


    def search(self, query_vector: Sequence[float], k: int) -> list[RetrievedPassage]:
        if k <= 0 or self._table is None:
            return []

        query = _normalise_query(query_vector, self._dim)
        # full ranking so equal scores at the k-th position resolve by row_id
        rows = self._table.search(query.tolist()).limit(len(self._passages)).to_list()

        hits: list[tuple[float, int]] = []
        for row in rows:
            stored = np.asarray(row["vector"], dtype=np.float32)
            hits.append((float(stored @ query), int(row["row_id"])))

        hits.sort(key=lambda h: (-h[0], h[1]))
        return [RetrievedPassage(passage=self._passages[row_id], score=score) for score, row_id in hits[:k]]


    def close(self) -> None:
        """Drop the table and remove its directory."""
        self._table = None
        if self._tmpdir is not None:
            self._tmpdir.cleanup()
            self._tmpdir = None


    def __repr__(self) -> str:
        return f"LanceIndex(passages={len(self)}, dim={self._dim})"


# ══════════════════════════════════════════════════════════════════════
#  BUILD
# ══════════════════════════════════════════════════════════════════════


async def build_index(passages: Sequence[Passage], embedder: EmbeddingService, backend: IndexBackend = "memory") -> InMemoryIndex | LanceIndex:
    """
    Embed every passage and load the pairs into a fresh index.

    Raises
    ------
    EmbeddingError
        If the embedding service fails or returns unusable vectors.
    ValueError
        For an unknown *backend*.
    """
    if backend not in ("memory", "lancedb"):
        raise ValueError(f"Unknown index backend: {backend!r}")

    t_start = time.perf_counter()
    vectors = await embedder.embed_documents([p.text for p in passages])

    index: InMemoryIndex | LanceIndex
    if backend == "lancedb":
        index = LanceIndex(passages, vectors)
    else:
        index = InMemoryIndex(passages, vectors)

    elapsed_ms = (time.perf_counter() - t_start) * 1000
    logger.info("Built %r in %.1fms.", index, elapsed_ms)
    return index
