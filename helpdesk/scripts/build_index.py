"""
Helpdesk - Index Build & Retrieval Check
=========================================
CLI entry point that orchestrates:
    1. Validate that ``GOOGLE_API_KEY`` is set (fail-fast).
    2. Load, chunk and embed the docs folder into a fresh index.
    3. Print a structured execution summary with timing breakdown.
    4. Optionally run a retrieval query and show the top passages.

Nothing is persisted: the index lives only for the duration of the run.

Flags:
    --docs-dir PATH   Scan this folder instead of ``DOCS_DIR``.
    --query TEXT      Run a retrieval check after building.
    --k N             Passages to show for ``--query`` (default ``RETRIEVAL_K``).
    --backend NAME    ``memory`` or ``lancedb`` (default ``INDEX_BACKEND``).

Usage:
    helpdesk-index
    helpdesk-index --query "How long do refunds take?" --k 3
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="helpdesk-index", description="Helpdesk — Build the retrieval index from the docs folder and optionally test a query.")
    parser.add_argument("--docs-dir", type=Path, default=None, help="Folder to scan (defaults to DOCS_DIR).")
    parser.add_argument("--query", default=None, help="Question to run against the freshly built index.")
    parser.add_argument("--k", type=int, default=None, help="Number of passages to show for --query.")
    parser.add_argument("--backend", choices=("memory", "lancedb"), default=None, help="Index backend (defaults to INDEX_BACKEND).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    t_start = time.perf_counter()

    # ── 0. Load settings + .env ────────────────────────────────────────
    try:
        from helpdesk.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        sys.exit(1)

    from helpdesk.src.utils.logger import get_logger
    logger = get_logger(__name__)

    docs_dir = args.docs_dir or settings.DOCS_DIR
    backend = args.backend or settings.INDEX_BACKEND
    _print_header(settings, docs_dir, backend)

    # ── 1. Wire the pipeline ───────────────────────────────────────────
    from helpdesk.src.core.chunker import Chunker
    from helpdesk.src.core.embeddings import EmbeddingService, build_google_embeddings
    from helpdesk.src.core.exceptions import HelpdeskError
    from helpdesk.src.core.index_manager import IndexManager
    from helpdesk.src.core.loader import DocumentLoader
    from helpdesk.src.core.retriever import Retriever

    try:
        embedder = EmbeddingService(build_google_embeddings(settings))
        manager = IndexManager(DocumentLoader(docs_dir), Chunker(), embedder, mode="per_request", backend=backend)
        retriever = Retriever(embedder, k=args.k)
    except (HelpdeskError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    # ── 2. Build + optional query ──────────────────────────────────────
    try:
        snapshot, hits = asyncio.run(_build_and_query(manager, retriever, args.query))
    except HelpdeskError as exc:
        logger.error("Index build failed: %s (%s)", exc.message, exc.detail)
        sys.exit(1)

    if args.query is not None:
        _print_hits(args.query, hits)

    _print_footer(snapshot, time.perf_counter() - t_start)


async def _build_and_query(manager, retriever, query: str | None):
    snapshot = await manager.build()
    hits = []
    try:
        if query is not None:
            hits = await retriever.retrieve(snapshot.index, query)
    finally:
        snapshot.index.close()
    return snapshot, hits


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object, docs_dir: Path, backend: str) -> None:
    api_key_val = settings.GOOGLE_API_KEY.get_secret_value()  # type: ignore[attr-defined]
    masked = f"****{api_key_val[-4:]}" if len(api_key_val) > 4 else "****"

    print()
    print("=" * 60)
    print("  HELPDESK — Index Build")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                              # type: ignore[attr-defined]
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")                  # type: ignore[attr-defined]
    print(f"  Backend      : {backend}")
    print(f"  Source dir   : {docs_dir}")
    print(f"  Chunking     : {settings.CHUNK_SIZE} chars / {settings.CHUNK_OVERLAP} overlap")  # type: ignore[attr-defined]
    print(f"  API Key      : {masked}")
    print("=" * 60)
    print()


def _print_hits(query: str, hits: list) -> None:
    print(f"Query: {query}")
    print("=" * 60)
    if not hits:
        print("  (no passages)")
    for i, hit in enumerate(hits, 1):
        print(f"\n--- Result {i} ---")
        print(f"  Source:    {hit.passage.source_document_id}")
        print(f"  Score:     {hit.score:.4f}")
        print(f"  Passage #: {hit.passage.ordinal}")
        print(f"    {hit.text[:300]}")
    print()


def _print_footer(snapshot, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EXECUTION SUMMARY")
    print("-" * 60)
    print(f"  Document units       : {snapshot.documents}")
    print(f"  Files failed         : {snapshot.failures}")
    print(f"  Passages indexed     : {snapshot.passages}")
    print(f"  Build time           : {snapshot.build_seconds:>8.2f}s")
    print(f"  Total elapsed        : {elapsed:>8.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
