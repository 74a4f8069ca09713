"""Top-K passage lookup: embed the question, then search the index."""

from __future__ import annotations

import time

from helpdesk.config.settings import settings
from helpdesk.src.core.embeddings import EmbeddingService
from helpdesk.src.core.exceptions import ConfigurationError
from helpdesk.src.core.models import RetrievedPassage
from helpdesk.src.database.vector_store import VectorIndex
from helpdesk.src.utils.logger import get_logger

logger = get_logger(__name__)


class Retriever:
    """
    Parameters
    ----------
    embedder
        Service used to embed the question.
    k
        Passages returned per lookup.  Defaults to ``settings.RETRIEVAL_K``.
    """

    __slots__ = ("_embedder", "k")

    def __init__(self, embedder: EmbeddingService, k: int | None = None) -> None:
        self._embedder = embedder
        self.k = settings.RETRIEVAL_K if k is None else k
        if self.k < 1:
            raise ConfigurationError(f"k must be ≥ 1, got {self.k}")


    async def retrieve(self, index: VectorIndex, question: str) -> list[RetrievedPassage]:
        # An empty index needs no query embedding.
        if len(index) == 0:
            logger.warning("Index is empty — retrieval skipped.")
            return []

        t_start = time.perf_counter()
        query_vector = await self._embedder.embed_query(question)
        hits = index.search(query_vector, self.k)

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        logger.info("Retrieved %d/%d passage(s) in %.1fms (top score %.3f).", len(hits), self.k, elapsed_ms, hits[0].score if hits else 0.0)
        return hits
