"""
Helpdesk - EmbeddingService
============================
Narrow, async embedding capability over any LangChain ``Embeddings``
object (``GoogleGenerativeAIEmbeddings`` in production, a deterministic
fake in tests).

Design decisions:
  • **Dependency Injection** — the LangChain embedder is injected, never
    hard-coded, so the provider can be swapped or mocked.
  • **Batch embedding** — document lists are embedded in batches of
    ``EMBEDDING_BATCH_SIZE`` to keep request payloads bounded.
  • **Bounded calls** — every remote call is wrapped in
    ``asyncio.wait_for(EMBEDDING_TIMEOUT_SECONDS)``.
  • **One error kind** — network, quota, rate-limit, timeout and
    malformed-output failures all surface as ``EmbeddingError``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from langchain_core.embeddings import Embeddings
from langchain_google_genai import GoogleGenerativeAIEmbeddings

from helpdesk.config.settings import Settings, settings
from helpdesk.src.core.exceptions import EmbeddingError
from helpdesk.src.utils.logger import get_logger

logger = get_logger(__name__)

Vector = list[float]


def build_google_embeddings(config: Settings | None = None) -> Embeddings:
    """Create the Gemini embedding client from settings."""
    config = config or settings
    logger.info("Initialising embedding model: %s", config.EMBEDDING_MODEL)
    return GoogleGenerativeAIEmbeddings(model=config.EMBEDDING_MODEL, google_api_key=config.GOOGLE_API_KEY.get_secret_value())


class EmbeddingService:
    """
    Parameters
    ----------
    embeddings
        Any LangChain ``Embeddings`` implementation.
    timeout
        Seconds allowed per remote call.  Defaults to
        ``settings.EMBEDDING_TIMEOUT_SECONDS``.
    batch_size
        Texts per ``embed_documents`` call.  Defaults to
        ``settings.EMBEDDING_BATCH_SIZE``.
    """

    __slots__ = ("_embeddings", "_timeout", "_batch_size")

    def __init__(self, embeddings: Embeddings, timeout: float | None = None, batch_size: int | None = None) -> None:
        self._embeddings = embeddings
        self._timeout = timeout or settings.EMBEDDING_TIMEOUT_SECONDS
        self._batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE


    async def embed_documents(self, texts: Sequence[str]) -> list[Vector]:
        """Embed passages, one vector per text, in input order."""
        if not texts:
            return []

        t_start = time.perf_counter()
        vectors: list[Vector] = []
        for i in range(0, len(texts), self._batch_size):
            batch = list(texts[i : i + self._batch_size])
            try:
                result = await asyncio.wait_for(self._embeddings.aembed_documents(batch), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                logger.error("Embedding batch %d–%d timed out after %.1fs.", i, i + len(batch) - 1, self._timeout)
                raise EmbeddingError("Embedding service unavailable", detail=f"timed out after {self._timeout}s") from exc
            except Exception as exc:
                logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
                raise EmbeddingError("Embedding service unavailable", detail=str(exc) or type(exc).__name__) from exc

            if len(result) != len(batch):
                raise EmbeddingError("Embedding service returned an unexpected number of vectors", detail=f"expected {len(batch)}, got {len(result)}")
            vectors.extend([float(x) for x in vec] for vec in result)

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        logger.info("Embedded %d text(s) in batches of %d in %.1fms.", len(texts), self._batch_size, elapsed_ms)
        return vectors


    async def embed_query(self, text: str) -> Vector:
        """Embed a single question."""
        try:
            vector = await asyncio.wait_for(self._embeddings.aembed_query(text), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Query embedding timed out after %.1fs.", self._timeout)
            raise EmbeddingError("Embedding service unavailable", detail=f"timed out after {self._timeout}s") from exc
        except Exception as exc:
            logger.error("Failed to embed query: %s", exc)
            raise EmbeddingError("Embedding service unavailable", detail=str(exc) or type(exc).__name__) from exc

        if not vector:
            raise EmbeddingError("Embedding service returned an empty vector")
        return [float(x) for x in vector]
