"""Plain-text extraction and content hashing for source documents.

- `.txt`/`.md`/`.markdown`: read as UTF-8; hashed over the decoded text
- `.pdf`: page text via pypdf, pages joined by blank lines; hashed over the raw bytes
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from loguru import logger
from pydantic import BaseModel
from pypdf import PdfReader

from src.storage.schemas import DocumentKind
from src.utils.errors import UnsupportedDocumentError


class SourceFile(BaseModel):
    """A document file identified for ingestion, before text extraction."""

    path: Path
    file_name: str
    content_hash: str
    size: int
    kind: DocumentKind


class TextExtractor:
    """Identify supported document files and read them into plain text."""

    TEXT_SUFFIXES = {".txt", ".md", ".markdown"}
    PDF_SUFFIXES = {".pdf"}

    def supports(self, path: Path | str) -> bool:
        suffix = Path(path).suffix.lower()
        return suffix in self.TEXT_SUFFIXES or suffix in self.PDF_SUFFIXES

    def identify(self, path: Path | str) -> SourceFile:
        """Hash a file for deduplication.

        Raises:
            FileNotFoundError: If the file does not exist
            UnsupportedDocumentError: If the suffix is not a supported type
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix in self.TEXT_SUFFIXES:
            kind = DocumentKind.TEXT
            content_hash = sha256_text(self._read_text(file_path))
        elif suffix in self.PDF_SUFFIXES:
            kind = DocumentKind.PDF
            content_hash = hashlib.sha256(file_path.read_bytes()).hexdigest()
        else:
            raise UnsupportedDocumentError(
                f"Unsupported document type: {suffix or file_path.name} "
                "(supported: .pdf, .txt, .md, .markdown)"
            )

        return SourceFile(
            path=file_path,
            file_name=file_path.name,
            content_hash=content_hash,
            size=file_path.stat().st_size,
            kind=kind,
        )

    def extract_text(self, source: SourceFile) -> str:
        if source.kind == DocumentKind.PDF:
            return self._extract_pdf_text(source.path)
        return self._read_text(source.path)

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return path.read_text(encoding="utf-8", errors="replace")

    def _extract_pdf_text(self, path: Path) -> str:
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
        logger.debug(f"Extracted text from {len(pages)} PDF page(s): {path.name}")
        return "\n\n".join(pages)


def sha256_text(content: str) -> str:
    hasher = hashlib.sha256()
    hasher.update(content.encode("utf-8", errors="replace"))
    return hasher.hexdigest()
