"""Ingestion module for document text extraction and chunking."""

from src.ingestion.chunker import TextChunker, chunk_text, get_chunk_statistics
from src.ingestion.text_extractor import SourceFile, TextExtractor

__all__ = [
    "SourceFile",
    "TextChunker",
    "TextExtractor",
    "chunk_text",
    "get_chunk_statistics",
]
