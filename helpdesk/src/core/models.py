"""
Helpdesk - Pipeline Data Types
===============================
Immutable value objects that flow through load → split → embed → index →
retrieve.  Request/response bodies for the HTTP layer live in
``helpdesk.src.api.schemas``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Document:
    """
    One parsed unit of a source file.

    A text file yields one ``Document``; a CSV yields one per row, a PDF
    one per page, a JSON file one per string value.  ``unit`` is the
    position of this unit inside its file.
    """

    source_path: str
    raw_text: str
    unit: int = 0

    @property
    def document_id(self) -> str:
        return f"{self.source_path}#{self.unit}"


@dataclass(frozen=True, slots=True)
class Passage:
    """A bounded slice of a ``Document``: the unit of retrieval."""

    text: str
    source_document_id: str
    ordinal: int


@dataclass(frozen=True, slots=True)
class RetrievedPassage:
    """A ``Passage`` paired with its cosine similarity to the query."""

    passage: Passage
    score: float

    @property
    def text(self) -> str:
        return self.passage.text


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Outcome of one directory scan."""

    documents: list[Document] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def files_loaded(self) -> int:
        return len({d.source_path for d in self.documents})
