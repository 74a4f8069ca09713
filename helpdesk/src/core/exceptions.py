"""
Helpdesk - Error Kinds
=======================
Every failure the pipeline can surface maps to one class here.  The
HTTP layer turns them into responses via ``status_code``; per-file
ingestion errors never reach it because the loader isolates them.
"""

from __future__ import annotations


class HelpdeskError(Exception):
    """Base class for all pipeline errors."""

    status_code: int = 500

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or message


class ConfigurationError(HelpdeskError, ValueError):
    """Invalid component configuration (e.g. chunk overlap ≥ chunk size)."""


class RequestValidationFailed(HelpdeskError):
    """Malformed ``/api/chat`` request."""

    status_code = 400


class IngestionError(HelpdeskError):
    """A single document could not be read or parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to ingest {path}: {reason}", detail=reason)
        self.path = path
        self.reason = reason


class UnsupportedFormatError(IngestionError):
    """No parser is registered for the file extension."""

    def __init__(self, path: str, extension: str) -> None:
        super().__init__(path, f"no parser registered for extension '{extension or '<none>'}'")
        self.extension = extension


class EmbeddingError(HelpdeskError):
    """The remote embedding service failed, timed out, or returned unusable vectors."""


class GenerationError(HelpdeskError):
    """The chat model call failed or was rejected."""


class PromptRenderError(GenerationError):
    """A required prompt field was not supplied."""

    def __init__(self, missing: set[str]) -> None:
        names = ", ".join(sorted(missing))
        super().__init__(f"Prompt is missing required field(s): {names}")
        self.missing = frozenset(missing)


class InternalError(HelpdeskError):
    """Anything unexpected raised while serving a request."""


class ClientDisconnected(HelpdeskError):
    """The caller went away before the answer was ready."""

    status_code = 499
