"""
Helpdesk - Centralized Configuration
=====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.

Index lifecycle
---------------
``INDEX_MODE`` selects between a process-wide index that is rebuilt only
when the docs folder changes (``"shared"``) and a fresh index for every
request (``"per_request"``).  ``INDEX_BACKEND`` selects the nearest-neighbour
structure: an in-memory NumPy matrix or a throw-away LanceDB table.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

HarassmentThreshold = Literal["BLOCK_NONE", "BLOCK_ONLY_HIGH", "BLOCK_MEDIUM_AND_ABOVE", "BLOCK_LOW_AND_ABOVE"]


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini chat + embeddings).  **Required.**
        Access the raw value with ``settings.GOOGLE_API_KEY.get_secret_value()``.
    PORT : int
        Listening port of the HTTP server.
    DOCS_DIR : Path
        Directory scanned for source documents.  Fixed per process.
    CHUNK_SIZE / CHUNK_OVERLAP : int
        Character window and overlap used by the chunker.
    RETRIEVAL_K : int
        Passages handed to the answer generator per question.
    HARASSMENT_BLOCK_THRESHOLD : str
        Gemini ``HarmBlockThreshold`` name applied to the harassment category.
    EMBEDDING_TIMEOUT_SECONDS / GENERATION_TIMEOUT_SECONDS : float
        Upper bound for every remote call.
    REQUIRE_NON_EMPTY_HISTORY : bool
        Reject ``history: []`` with a 400 when enabled.
    LOG_LEVEL : str | None
        Overrides the level derived from ``ENV``.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = _PROJECT_ROOT
    DOCS_DIR: Path = _PROJECT_ROOT / "docs"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = None

    # ── HTTP Server ────────────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    DISCONNECT_POLL_SECONDS: float = 0.5
    REQUIRE_NON_EMPTY_HISTORY: bool = False

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── Ingestion Parameters ───────────────────────────────────────────
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 100

    # ── Retrieval ──────────────────────────────────────────────────────
    RETRIEVAL_K: int = 3
    INDEX_MODE: Literal["shared", "per_request"] = "shared"
    INDEX_BACKEND: Literal["memory", "lancedb"] = "memory"

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "models/gemini-embedding-001"
    EMBEDDING_BATCH_SIZE: int = 64
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.3
    MAX_OUTPUT_TOKENS: int = 2048
    HARASSMENT_BLOCK_THRESHOLD: HarassmentThreshold = "BLOCK_LOW_AND_ABOVE"

    # ── Timeouts ───────────────────────────────────────────────────────
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    GENERATION_TIMEOUT_SECONDS: float = 60.0

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("CHUNK_SIZE")
    @classmethod
    def _chunk_size_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"CHUNK_SIZE must be ≥ 1, got {v}")
        return v


    @field_validator("CHUNK_OVERLAP")
    @classmethod
    def _chunk_overlap_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"CHUNK_OVERLAP must be ≥ 0, got {v}")
        return v


    @field_validator("RETRIEVAL_K")
    @classmethod
    def _k_range(cls, v: int) -> int:
        if not 1 <= v <= 20:
            raise ValueError(f"RETRIEVAL_K must be 1–20, got {v}")
        return v


    @field_validator("EMBEDDING_BATCH_SIZE", "MAX_OUTPUT_TOKENS")
    @classmethod
    def _positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be ≥ 1, got {v}")
        return v


    @field_validator("EMBEDDING_TIMEOUT_SECONDS", "GENERATION_TIMEOUT_SECONDS", "DISCONNECT_POLL_SECONDS")
    @classmethod
    def _positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeouts must be > 0, got {v}")
        return v


    @model_validator(mode="after")
    def _overlap_below_size(self) -> "Settings":
        if self.CHUNK_OVERLAP >= self.CHUNK_SIZE:
            raise ValueError(f"CHUNK_OVERLAP ({self.CHUNK_OVERLAP}) must be smaller than CHUNK_SIZE ({self.CHUNK_SIZE})")
        return self

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=_PROJECT_ROOT / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from helpdesk.config.settings import settings
settings = Settings()
