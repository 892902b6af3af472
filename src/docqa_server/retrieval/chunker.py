"""
Word-Window Chunking

Splits extracted text into fixed-size, non-overlapping word windows. Chunk
order equals text order, and rejoining every chunk's words reproduces the
whitespace-tokenized source exactly.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ..config import settings
from ..core.errors import ChunkingError
from ..documents.models import Chunk

LARGE_DOCUMENT_WINDOW = 200
DEFAULT_WINDOW = 300


def chunk_text(text: str, max_words: int, document_id: str = "") -> List[Chunk]:
    """
    Window ``text`` into chunks of at most ``max_words`` words.

    Raises
    ------
    ChunkingError
        If ``text`` has no words or ``max_words`` is not positive.
    """
    if not isinstance(max_words, int) or max_words <= 0:
        raise ChunkingError("maxWords must be a positive number")
    if not isinstance(text, str):
        raise ChunkingError("text must be a non-empty string")

    words = text.split()
    if not words:
        raise ChunkingError("text must be a non-empty string")

    windows = [words[i : i + max_words] for i in range(0, len(words), max_words)]
    total = len(windows)

    return [
        Chunk(
            document_id=document_id,
            index=index,
            text=" ".join(window),
            total_chunks=total,
        )
        for index, window in enumerate(windows)
    ]


def choose_chunk_size(char_count: int, large_document_chars: Optional[int] = None) -> int:
    """
    Window size for a document of ``char_count`` characters. Larger documents
    get smaller windows to bound per-call embedding payloads.
    """
    threshold = large_document_chars or settings.large_document_chars
    return LARGE_DOCUMENT_WINDOW if char_count > threshold else DEFAULT_WINDOW


def cap_chunks(chunks: List[Chunk], max_chunks: Optional[int] = None) -> Tuple[List[Chunk], bool]:
    """
    Keep at most ``max_chunks`` leading chunks.

    Returns the kept chunks (with ``total_chunks`` rewritten to the kept
    count) and whether the tail was truncated.
    """
    limit = max_chunks or settings.max_chunks
    if len(chunks) <= limit:
        return chunks, False

    kept = [
        chunk.model_copy(update={"total_chunks": limit})
        for chunk in chunks[:limit]
    ]
    return kept, True
