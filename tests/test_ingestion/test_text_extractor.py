from __future__ import annotations

import hashlib
from pathlib import Path
from types import SimpleNamespace

import pytest

from src.ingestion import text_extractor as text_extractor_module
from src.ingestion.text_extractor import TextExtractor, sha256_text
from src.storage.schemas import DocumentKind
from src.utils.errors import UnsupportedDocumentError


def test_supports_known_suffixes() -> None:
    extractor = TextExtractor()

    assert extractor.supports("paper.PDF")
    assert extractor.supports("notes.md")
    assert extractor.supports("notes.markdown")
    assert extractor.supports(Path("notes.txt"))
    assert not extractor.supports("slides.pptx")


def test_identify_text_file_hashes_decoded_text(tmp_path: Path) -> None:
    path = tmp_path / "notes.md"
    path.write_text("# Title\n\nNeural networks learn.", encoding="utf-8")

    source = TextExtractor().identify(path)

    assert source.kind == DocumentKind.TEXT
    assert source.file_name == "notes.md"
    assert source.content_hash == sha256_text("# Title\n\nNeural networks learn.")
    assert source.size == path.stat().st_size
    assert TextExtractor().extract_text(source) == "# Title\n\nNeural networks learn."


def test_identical_content_gives_identical_hash(tmp_path: Path) -> None:
    first = tmp_path / "a.txt"
    second = tmp_path / "b.txt"
    first.write_text("same body", encoding="utf-8")
    second.write_text("same body", encoding="utf-8")

    extractor = TextExtractor()

    assert extractor.identify(first).content_hash == extractor.identify(second).content_hash


def test_identify_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        TextExtractor().identify(tmp_path / "missing.txt")


def test_identify_unsupported_type_raises(tmp_path: Path) -> None:
    path = tmp_path / "slides.pptx"
    path.write_bytes(b"binary")

    with pytest.raises(UnsupportedDocumentError, match="Unsupported document type"):
        TextExtractor().identify(path)


def test_pdf_pages_joined_with_blank_lines(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "paper.pdf"
    path.write_bytes(b"%PDF-1.4 fake body")

    class _FakeReader:
        def __init__(self, filename: str) -> None:
            assert filename == str(path)
            self.pages = [
                SimpleNamespace(extract_text=lambda: "Page one."),
                SimpleNamespace(extract_text=lambda: None),
                SimpleNamespace(extract_text=lambda: "Page three."),
            ]

    monkeypatch.setattr(text_extractor_module, "PdfReader", _FakeReader)

    extractor = TextExtractor()
    source = extractor.identify(path)

    assert source.kind == DocumentKind.PDF
    assert source.content_hash == hashlib.sha256(b"%PDF-1.4 fake body").hexdigest()
    assert extractor.extract_text(source) == "Page one.\n\n\n\nPage three."
