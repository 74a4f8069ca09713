"""
Helpdesk - RAG Engine
======================
Orchestrates one question through the Retrieval-Augmented Generation
pipeline.

Architecture
------------
``IndexManager``
    Supplies an index for the request (shared snapshot or a private
    per-request build).

``Retriever``
    Embeds the question and returns the top-K passages.

``AnswerGenerator``
    Renders the prompt (context + question + chat history) and calls
    Gemini.

``RAGEngine``
    Stateless orchestrator.  Flow:
        1. Serialise chat history
        2. Acquire index (build / refresh as needed)
        3. Retrieve top-K passages
        4. Generate answer (fallback on empty output)
        5. Return answer

Errors from any stage propagate unchanged; the engine holds no
request-scoped state, so a failed request leaves it ready for the next.

Usage:
    from helpdesk.src.core.rag_engine import RAGEngine
    engine = RAGEngine.from_settings()
    answer = await engine.answer("Where is my order?", [{"role": "user", "content": "Hi"}])
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence

from langchain_core.embeddings import Embeddings
from langchain_core.runnables import Runnable

from helpdesk.config.settings import Settings, settings
from helpdesk.src.core.chunker import Chunker
from helpdesk.src.core.embeddings import EmbeddingService, build_google_embeddings
from helpdesk.src.core.generator import AnswerGenerator, build_chat_model
from helpdesk.src.core.index_manager import IndexManager
from helpdesk.src.core.loader import DocumentLoader, ParserRegistry
from helpdesk.src.core.retriever import Retriever
from helpdesk.src.utils.logger import get_logger
from helpdesk.src.utils.text_utils import serialize_history

logger = get_logger(__name__)

ChatTurn = Mapping[str, str]


class RAGEngine:
    """
    Parameters
    ----------
    index_manager
        Index lifecycle owner.
    retriever
        Top-K lookup over the acquired index.
    generator
        Prompt rendering + model call.
    """

    __slots__ = ("index_manager", "_retriever", "_generator")

    def __init__(self, index_manager: IndexManager, retriever: Retriever, generator: AnswerGenerator) -> None:
        self.index_manager = index_manager
        self._retriever = retriever
        self._generator = generator


    @classmethod
    def from_settings(cls, config: Settings | None = None, embeddings: Embeddings | None = None, chat_model: Runnable | None = None, registry: ParserRegistry | None = None) -> "RAGEngine":
        """
        Wire the full pipeline from configuration.

        *embeddings* and *chat_model* default to the Gemini clients; pass
        LangChain fakes to run without network access.
        """
        config = config or settings
        embedder = EmbeddingService(embeddings or build_google_embeddings(config), timeout=config.EMBEDDING_TIMEOUT_SECONDS, batch_size=config.EMBEDDING_BATCH_SIZE)
        manager = IndexManager(
            loader=DocumentLoader(config.DOCS_DIR, registry=registry),
            chunker=Chunker(config.CHUNK_SIZE, config.CHUNK_OVERLAP),
            embedder=embedder,
            mode=config.INDEX_MODE,
            backend=config.INDEX_BACKEND,
        )
        retriever = Retriever(embedder, k=config.RETRIEVAL_K)
        generator = AnswerGenerator(chat_model or build_chat_model(config), timeout=config.GENERATION_TIMEOUT_SECONDS)
        return cls(manager, retriever, generator)


    async def warm_up(self) -> None:
        """Build the shared index ahead of the first request (shared mode only)."""
        if self.index_manager.mode == "shared":
            await self.index_manager.refresh()


    async def answer(self, question: str, history: Sequence[ChatTurn]) -> str:
        """Full pipeline for one question.  Never returns an empty string."""
        t_start = time.perf_counter()
        logger.info("[RAG] Query received | question_length=%d | history_turns=%d", len(question), len(history))

        # ── 1. Serialise history ─────────────────────────────────────
        history_str = serialize_history(history)

        # ── 2–3. Acquire index + retrieve ────────────────────────────
        t_search = time.perf_counter()
        async with self.index_manager.acquire() as index:
            passages = await self._retriever.retrieve(index, question)
        search_ms = (time.perf_counter() - t_search) * 1000

        # ── 4. Generate ──────────────────────────────────────────────
        t_llm = time.perf_counter()
        answer = await self._generator.generate(passages, question, history_str)
        llm_ms = (time.perf_counter() - t_llm) * 1000

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RAG] Pipeline total: %.1fms (index+search=%.1f, llm=%.1f)", total_ms, search_ms, llm_ms)
        return answer


    def close(self) -> None:
        self.index_manager.close()
