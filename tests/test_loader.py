"""DocumentLoader: per-format parsing, ignored files and failure isolation."""

import json
from pathlib import Path

import pytest

from helpdesk.src.core.exceptions import UnsupportedFormatError
from helpdesk.src.core.loader import DEFAULT_PARSERS, DocumentLoader, ParserRegistry


def test_txt_is_one_unit(docs_dir: Path):
    (docs_dir / "refunds.txt").write_text("Refunds take 5 business days.\nReturns within 30 days.", encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert len(result.documents) == 1
    doc = result.documents[0]
    assert doc.source_path == "refunds.txt"
    assert doc.document_id == "refunds.txt#0"
    assert "5 business days" in doc.raw_text


def test_csv_is_one_unit_per_row(docs_dir: Path):
    (docs_dir / "faq.csv").write_text("question,answer\nShip abroad?,Yes\nTrack order?,Use the link\n", encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert [d.unit for d in result.documents] == [0, 1]
    assert "question: Ship abroad?" in result.documents[0].raw_text
    assert "answer: Use the link" in result.documents[1].raw_text


def test_json_is_one_unit_per_string(docs_dir: Path):
    payload = {"statuses": [{"name": "Shipped", "code": 2}, {"name": "Delivered", "notes": ["left at door"]}]}
    (docs_dir / "statuses.json").write_text(json.dumps(payload), encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert sorted(d.raw_text for d in result.documents) == ["Delivered", "Shipped", "left at door"]


def test_unknown_extension_is_ignored(docs_dir: Path):
    (docs_dir / "notes.md").write_text("# not indexed", encoding="utf-8")
    (docs_dir / "refunds.txt").write_text("Refunds take 5 business days.", encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert result.ignored == ["notes.md"]
    assert [d.source_path for d in result.documents] == ["refunds.txt"]


def test_nested_folders_are_scanned(docs_dir: Path):
    nested = docs_dir / "policies" / "returns"
    nested.mkdir(parents=True)
    (nested / "window.txt").write_text("Items can be returned within 30 days.", encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert [d.source_path for d in result.documents] == ["policies/returns/window.txt"]


def test_parse_failure_skips_only_that_file(docs_dir: Path):
    (docs_dir / "broken.txt").write_text("whatever", encoding="utf-8")
    (docs_dir / "good.csv").write_text("q,a\nx,y\n", encoding="utf-8")

    def _exploding(path: Path):
        raise ValueError("cannot decode")

    registry = ParserRegistry({**DEFAULT_PARSERS, ".txt": _exploding})
    result = DocumentLoader(docs_dir, registry=registry).load()

    assert list(result.failures) == ["broken.txt"]
    assert "cannot decode" in result.failures["broken.txt"]
    assert [d.source_path for d in result.documents] == ["good.csv"]


def test_whitespace_only_units_are_dropped(docs_dir: Path):
    (docs_dir / "blank.txt").write_text("  \n\n \t ", encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert result.documents == []
    assert result.failures == {}


def test_missing_directory_yields_nothing(tmp_path: Path):
    loader = DocumentLoader(tmp_path / "nope")

    result = loader.load()

    assert result.documents == [] and result.ignored == [] and result.failures == {}
    assert loader.fingerprint() == ()


def test_fingerprint_tracks_changes(docs_dir: Path):
    loader = DocumentLoader(docs_dir)
    (docs_dir / "a.txt").write_text("one", encoding="utf-8")
    before = loader.fingerprint()

    (docs_dir / "a.txt").write_text("one two three", encoding="utf-8")

    assert loader.fingerprint() != before


def test_registry_resolves_case_insensitively():
    registry = ParserRegistry()
    assert registry.resolve(Path("Manual.PDF")) is DEFAULT_PARSERS[".pdf"]
    assert registry.extensions == frozenset({".txt", ".csv", ".json", ".pdf"})


def test_registry_rejects_unknown_extension():
    with pytest.raises(UnsupportedFormatError) as excinfo:
        ParserRegistry().resolve(Path("slides.pptx"))
    assert excinfo.value.extension == ".pptx"


def test_registry_requires_leading_dot():
    with pytest.raises(ValueError):
        ParserRegistry().register("md", DEFAULT_PARSERS[".txt"])


@pytest.mark.asyncio
async def test_aload_matches_load(docs_dir: Path):
    (docs_dir / "refunds.txt").write_text("Refunds take 5 business days.", encoding="utf-8")
    loader = DocumentLoader(docs_dir)

    assert (await loader.aload()).documents == loader.load().documents


def _write_pdf(path: Path, page_texts: list[str]) -> None:
    """Write a minimal valid PDF with one Helvetica text line per page."""
    n = len(page_texts)
    font_id = 3 + 2 * n
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [" + b" ".join(b"%d 0 R" % (3 + 2 * i) for i in range(n)) + b"] /Count %d >>" % n,
    ]
    for i, text in enumerate(page_texts):
        content = b"BT /F1 18 Tf 72 700 Td (" + text.encode("latin-1") + b") Tj ET"
        objects.append(b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources << /Font << /F1 %d 0 R >> >> /Contents %d 0 R >>" % (font_id, 4 + 2 * i))
        objects.append(b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream")
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    out += b"".join(b"%010d 00000 n \n" % off for off in offsets)
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    path.write_bytes(bytes(out))


def test_pdf_is_one_unit_per_page(docs_dir: Path):
    _write_pdf(docs_dir / "policy.pdf", ["Refunds take 5 business days.", "Returns are accepted within 30 days."])

    result = DocumentLoader(docs_dir).load()

    assert result.failures == {}
    assert [(d.source_path, d.unit) for d in result.documents] == [("policy.pdf", 0), ("policy.pdf", 1)]
    assert "5 business days" in result.documents[0].raw_text
    assert "30 days" in result.documents[1].raw_text


def test_corrupt_pdf_is_recorded_as_failure(docs_dir: Path):
    (docs_dir / "broken.pdf").write_bytes(b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog")
    (docs_dir / "refunds.txt").write_text("Refunds take 5 business days.", encoding="utf-8")

    result = DocumentLoader(docs_dir).load()

    assert list(result.failures) == ["broken.pdf"]
    assert [d.source_path for d in result.documents] == ["refunds.txt"]
