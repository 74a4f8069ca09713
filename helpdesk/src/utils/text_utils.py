"""
Helpdesk - Text Utilities
==========================
Helper functions for text cleaning and for serialising pipeline data
into prompt fields.

These utilities are consumed by the ``DocumentLoader`` and the
``AnswerGenerator`` and should remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Mapping

from helpdesk.config.prompt_templates import NO_CONTEXT_PLACEHOLDER, NO_HISTORY_PLACEHOLDER, ROLE_LABELS


# ── Non-printable character pattern ────────────────────────────────────
# Matches control characters (C0/C1), except \n, \r, \t which we handle
# separately. Also catches BOM, zero-width chars, soft hyphens, etc.
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060\ufffe]")


def clean_text(text: str) -> str:
    """
    Sanitise raw document text for embedding.

    Steps:
        1. Unicode NFC normalisation (canonical composition).
        2. Strip non-printable / zero-width characters and formatting
           artifacts (BOM, soft hyphens, directional marks).
        3. Collapse runs of horizontal whitespace (spaces, tabs,
           non-breaking spaces) into a single space, *preserving*
           newlines.
        4. Strip leading / trailing whitespace from every line.
        5. Collapse 3+ consecutive blank lines to 2.

    Args:
        text: Raw text extracted from a source file.

    Returns:
        Cleaned, normalised text ready for chunking.
    """
    text = unicodedata.normalize("NFC", text)
    text = _NON_PRINTABLE_RE.sub("", text)
    text = re.sub(r"[^\S\n]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def format_context(texts: Iterable[str]) -> str:
    """Join retrieved passage texts with blank lines, or a placeholder when empty."""
    joined = "\n\n".join(t for t in texts if t)
    return joined or NO_CONTEXT_PLACEHOLDER


def serialize_history(turns: Iterable[Mapping[str, str]]) -> str:
    """
    Flatten chat turns into a readable conversation block.

    Each turn becomes ``"<Label>: <content>"`` on its own line, where the
    label comes from ``ROLE_LABELS`` (unknown roles are title-cased).
    """
    lines: list[str] = []
    for turn in turns:
        role = str(turn.get("role", "")).strip()
        content = str(turn.get("content", "")).strip()
        if not content:
            continue
        label = ROLE_LABELS.get(role.lower(), role.title() or "Unknown")
        lines.append(f"{label}: {content}")

    return "\n".join(lines) if lines else NO_HISTORY_PLACEHOLDER
