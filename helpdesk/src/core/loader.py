"""
Helpdesk - DocumentLoader
==========================
Reads every file under the docs directory and turns it into a flat list
of ``Document`` units.

Key design decisions:
    • **Parser registry** – extension → LangChain loader factory, resolved
      once at construction.  Unknown extensions raise
      ``UnsupportedFormatError`` from ``ParserRegistry.resolve`` and are
      reported as *ignored* by the loader.
    • **Per-file isolation** – a file that fails to parse is logged and
      skipped; it never aborts the rest of the scan.
    • **Parser-defined units** – ``.txt`` → one unit per file, ``.csv`` →
      one per row, ``.pdf`` → one per page, ``.json`` → one per string value.
    • **Off the event loop** – ``aload`` runs the blocking scan in a
      worker thread.

Usage:
    from helpdesk.src.core.loader import DocumentLoader
    result = DocumentLoader(settings.DOCS_DIR).load()
    result.documents, result.ignored, result.failures
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from pathlib import Path

from langchain_community.document_loaders import CSVLoader, JSONLoader, PyPDFLoader, TextLoader
from langchain_core.document_loaders import BaseLoader

from helpdesk.config.settings import settings
from helpdesk.src.core.exceptions import IngestionError, UnsupportedFormatError
from helpdesk.src.core.models import Document, LoadResult
from helpdesk.src.utils.logger import get_logger
from helpdesk.src.utils.text_utils import clean_text

logger = get_logger(__name__)

ParserFactory = Callable[[Path], BaseLoader]

# jq program selecting every string value anywhere in the JSON tree
_JSON_STRINGS_JQ = ".. | strings"


def _text_parser(path: Path) -> BaseLoader:
    return TextLoader(str(path), encoding="utf-8", autodetect_encoding=True)


def _csv_parser(path: Path) -> BaseLoader:
    return CSVLoader(str(path), csv_args={"delimiter": ","}, encoding="utf-8")


def _json_parser(path: Path) -> BaseLoader:
    return JSONLoader(str(path), jq_schema=_JSON_STRINGS_JQ, text_content=True)


def _pdf_parser(path: Path) -> BaseLoader:
    return PyPDFLoader(str(path))


DEFAULT_PARSERS: dict[str, ParserFactory] = {
    ".txt": _text_parser,
    ".csv": _csv_parser,
    ".json": _json_parser,
    ".pdf": _pdf_parser,
}


class ParserRegistry:
    """
    Static extension → parser mapping.

    Extensions are matched case-insensitively and must include the
    leading dot.
    """

    __slots__ = ("_parsers",)

    def __init__(self, parsers: Mapping[str, ParserFactory] | None = None) -> None:
        self._parsers: dict[str, ParserFactory] = {}
        for extension, factory in (parsers if parsers is not None else DEFAULT_PARSERS).items():
            self.register(extension, factory)


    def register(self, extension: str, factory: ParserFactory) -> None:
        if not extension.startswith("."):
            raise ValueError(f"Extension must start with '.', got {extension!r}")
        self._parsers[extension.lower()] = factory


    def resolve(self, path: Path) -> ParserFactory:
        """Return the parser for *path* or raise ``UnsupportedFormatError``."""
        extension = path.suffix.lower()
        try:
            return self._parsers[extension]
        except KeyError:
            raise UnsupportedFormatError(str(path), extension) from None


    @property
    def extensions(self) -> frozenset[str]:
        return frozenset(self._parsers)


class DocumentLoader:
    """
    Directory scan: enumerate → dispatch by extension → parse → clean.

    Parameters
    ----------
    directory
        Root folder to scan recursively.  Defaults to ``settings.DOCS_DIR``.
    registry
        Parser registry.  Defaults to the four built-in formats.
    clean
        Run ``clean_text`` on every unit and drop units left empty.
    """

    __slots__ = ("_directory", "_registry", "_clean")

    def __init__(self, directory: Path | None = None, registry: ParserRegistry | None = None, clean: bool = True) -> None:
        self._directory = Path(directory or settings.DOCS_DIR)
        self._registry = registry or ParserRegistry()
        self._clean = clean


    @property
    def directory(self) -> Path:
        return self._directory


    def load(self) -> LoadResult:
        """Scan the directory synchronously."""
        t_start = time.perf_counter()
        result = LoadResult()

        if not self._directory.is_dir():
            logger.warning("Docs directory does not exist: %s", self._directory)
            return result

        files = sorted(p for p in self._directory.rglob("*") if p.is_file())

        for filepath in files:
            relative = filepath.relative_to(self._directory).as_posix()
            try:
                parser = self._registry.resolve(filepath)
            except UnsupportedFormatError as exc:
                logger.debug("Ignoring %s (%s).", relative, exc.reason)
                result.ignored.append(relative)
                continue

            try:
                documents = self._parse(filepath, relative, parser)
            except IngestionError as exc:
                logger.error("Skipping %s: %s", relative, exc.reason)
                result.failures[relative] = exc.reason
                continue

            result.documents.extend(documents)
            logger.debug("Loaded %s → %d unit(s).", relative, len(documents))

        elapsed_ms = (time.perf_counter() - t_start) * 1000
        logger.info("Loaded %d document unit(s) from %d file(s) in %.1fms (%d ignored, %d failed).", len(result.documents), result.files_loaded, elapsed_ms, len(result.ignored), len(result.failures))
        return result


    async def aload(self) -> LoadResult:
        """Scan the directory in a worker thread."""
        return await asyncio.to_thread(self.load)


    def fingerprint(self) -> tuple[tuple[str, int, int], ...]:
        """
        Cheap change detector: ``(relative path, size, mtime_ns)`` of every file.

        Returns an empty tuple when the directory is missing.
        """
        if not self._directory.is_dir():
            return ()
        entries: list[tuple[str, int, int]] = []
        for path in sorted(p for p in self._directory.rglob("*") if p.is_file()):
            stat = path.stat()
            entries.append((path.relative_to(self._directory).as_posix(), stat.st_size, stat.st_mtime_ns))
        return tuple(entries)


    def _parse(self, filepath: Path, relative: str, parser: ParserFactory) -> list[Document]:
        try:
            raw_units = parser(filepath).load()
        except Exception as exc:
            raise IngestionError(relative, f"{type(exc).__name__}: {exc}") from exc

        documents: list[Document] = []
        for unit, raw in enumerate(raw_units):
            text = clean_text(raw.page_content) if self._clean else raw.page_content
            if not text.strip():
                continue
            documents.append(Document(source_path=relative, raw_text=text, unit=unit))
        return documents
