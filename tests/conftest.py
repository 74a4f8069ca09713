"""
Shared fixtures.

Settings are loaded at import time, so a dummy API key is placed in the
environment before any ``helpdesk`` module is imported.  No test talks
to Google: every engine is wired with the fakes in ``fakes.py``.
"""

import os

os.environ.setdefault("GOOGLE_API_KEY", "test-key-0000")
os.environ.setdefault("ENV", "prod")

from pathlib import Path

import pytest

from helpdesk.config.settings import Settings
from helpdesk.src.core.rag_engine import RAGEngine

from fakes import REFUND_TEXT, SHIPPING_TEXT, KeywordEmbeddings, context_echo_model


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    """An empty docs folder inside the test's temp directory."""
    path = tmp_path / "docs"
    path.mkdir()
    return path


@pytest.fixture
def help_docs(docs_dir: Path) -> Path:
    """Docs folder with a refund policy and a shipping note."""
    (docs_dir / "refunds.txt").write_text(REFUND_TEXT, encoding="utf-8")
    (docs_dir / "shipping.txt").write_text(SHIPPING_TEXT, encoding="utf-8")
    return docs_dir


@pytest.fixture
def make_settings(docs_dir: Path):
    """Factory for ``Settings`` pointed at the temp docs folder."""

    def _make(**overrides) -> Settings:
        values = {"GOOGLE_API_KEY": "test-key-0000", "DOCS_DIR": docs_dir, "RETRIEVAL_K": 1, "DISCONNECT_POLL_SECONDS": 0.05}
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def make_engine(make_settings):
    """Factory for a fully wired engine backed by offline fakes."""

    def _make(embeddings=None, chat_model=None, **overrides) -> RAGEngine:
        config = make_settings(**overrides)
        return RAGEngine.from_settings(config, embeddings=embeddings or KeywordEmbeddings(), chat_model=chat_model or context_echo_model())

    return _make
