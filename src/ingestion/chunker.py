"""Sliding-window document chunking module.

Splits raw document text into overlapping chunks that prefer natural
boundaries. From each start offset the raw end is ``start + chunk_size``; a
break point is then searched backwards within a fixed window, preferring:

- a paragraph break (blank line)
- a sentence terminator followed by whitespace
- a word boundary (space)
- the raw end itself

Every chunk satisfies ``chunk.content == text[chunk.start_offset:chunk.end_offset]``.
"""

import re
from typing import Any, Dict, List, Optional

from loguru import logger

from src.storage.schemas import TextChunk
from src.utils.config import ChunkingConfig
from src.utils.ids import DocumentId, new_chunk_id

# Greedy: matches up to and including the last terminator + whitespace in the region.
_SENTENCE_END_RE = re.compile(r"[\s\S]*[.!?]\s")


def find_break_point(text: str, target: int, search_window: int = 200) -> int:
    """Find the best break offset at or before ``target``.

    Args:
        text: Full document text
        target: Raw end offset
        search_window: How far back from ``target`` to look for a boundary

    Returns:
        Offset just after the chosen boundary, or ``target`` when none is found
    """
    if target >= len(text):
        return len(text)

    search_start = max(0, target - search_window)
    region = text[search_start:target]

    para_index = region.rfind("\n\n")
    if para_index != -1:
        return search_start + para_index + 2

    sentence = _SENTENCE_END_RE.match(region)
    if sentence:
        return search_start + sentence.end()

    space_index = region.rfind(" ")
    if space_index != -1:
        return search_start + space_index + 1

    return target


class TextChunker:
    """Create overlapping, boundary-aware chunks from document text.

    Example:
        >>> chunker = TextChunker(ChunkingConfig(chunk_size=1000, chunk_overlap=100))
        >>> chunks = chunker.chunk_text(text, document_id)
        >>> assert chunks[-1].end_offset == len(text)
    """

    def __init__(self, config: Optional[ChunkingConfig] = None) -> None:
        """Initialize the chunker.

        Args:
            config: Chunking configuration. If None, uses default settings.
        """
        self.config = config or ChunkingConfig()

        logger.debug(
            f"Initialized TextChunker: chunk_size={self.config.chunk_size}, "
            f"overlap={self.config.chunk_overlap}, window={self.config.break_search_window}"
        )

    def chunk_text(self, text: str, document_id: DocumentId) -> List[TextChunk]:
        """Split ``text`` into ordered chunks.

        Empty or whitespace-only text yields no chunks. Text shorter than the chunk
        size yields exactly one chunk spanning all of it.

        Args:
            text: Document text
            document_id: Owning document

        Returns:
            Chunks with sequential ``chunk_index`` starting at 0
        """
        chunks: List[TextChunk] = []
        if not text or not text.strip():
            return chunks

        chunk_size = self.config.chunk_size
        overlap = self.config.chunk_overlap
        window = self.config.break_search_window
        length = len(text)

        start = 0
        index = 0
        while start < length:
            raw_end = start + chunk_size
            if raw_end >= length:
                end = length
            else:
                end = find_break_point(text, raw_end, window)

            if end <= start:
                end = min(start + chunk_size, length)

            chunks.append(
                TextChunk(
                    id=new_chunk_id(),
                    document_id=document_id,
                    content=text[start:end],
                    start_offset=start,
                    end_offset=end,
                    chunk_index=index,
                )
            )

            if end >= length:
                break

            start += max(end - start - overlap, 1)
            index += 1

        logger.debug(f"Chunked {length} characters into {len(chunks)} chunk(s)")
        return chunks


def chunk_text(
    text: str,
    document_id: DocumentId,
    chunk_size: int = 1500,
    chunk_overlap: int = 200,
) -> List[TextChunk]:
    """Convenience wrapper around :class:`TextChunker`."""
    config = ChunkingConfig(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    return TextChunker(config).chunk_text(text, document_id)


def get_chunk_statistics(chunks: List[TextChunk]) -> Dict[str, Any]:
    """Summarize chunk lengths.

    Args:
        chunks: Chunks to summarize

    Returns:
        Dictionary with count and min/max/average content length
    """
    if not chunks:
        return {"count": 0, "min_length": 0, "max_length": 0, "avg_length": 0.0}

    lengths = [len(c.content) for c in chunks]
    return {
        "count": len(chunks),
        "min_length": min(lengths),
        "max_length": max(lengths),
        "avg_length": sum(lengths) / len(lengths),
    }
