"""
Document Store Contract

The QA service talks to the persisted vector index only through
``DocumentStore``. Records are keyed by document identifier (the source
URL); a document is written once, queried many times, and removed only by a
whole-document purge.

Record shape (export/compatibility format)::

    {
        "id": "<documentId>_chunk_<index>",
        "values": [float, ...],
        "metadata": {
            "text": str,
            "pdfUrl": str,
            "chunkIndex": int,
            "totalChunks": int,
            "createdAt": ISO-8601 str,
        },
    }
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..core.errors import StoreAdapterError
from ..documents.models import Chunk, DocumentStats, RetrievalResult


class DocumentStore(Protocol):
    async def exists(self, document_id: str) -> bool: ...

    async def upsert(
        self,
        document_id: str,
        chunks: Sequence[Chunk],
        vectors: Sequence[Sequence[float]],
    ) -> int: ...

    async def query(
        self,
        document_id: str,
        vector: Sequence[float],
        k: int,
    ) -> RetrievalResult: ...

    async def purge(self, document_id: str) -> int: ...

    async def stats(self, document_id: str) -> Optional[DocumentStats]: ...


def chunk_record_id(document_id: str, chunk_index: int) -> str:
    """Composite record id: ``<documentId>_chunk_<index>``."""
    return f"{document_id}_chunk_{chunk_index}"


def build_chunk_records(
    document_id: str,
    chunks: Sequence[Chunk],
    vectors: Sequence[Sequence[float]],
    created_at: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Pair chunks with their vectors in the persisted record shape.

    Raises
    ------
    StoreAdapterError
        If chunk and vector counts differ.
    """
    if len(chunks) != len(vectors):
        raise StoreAdapterError(
            "Chunk count does not match vector count",
            details=f"{len(chunks)} chunks, {len(vectors)} vectors",
        )

    stamp = (created_at or datetime.now(timezone.utc)).isoformat()
    return [
        {
            "id": chunk_record_id(document_id, chunk.index),
            "values": [float(x) for x in vector],
            "metadata": {
                "text": chunk.text,
                "pdfUrl": document_id,
                "chunkIndex": chunk.index,
                "totalChunks": chunk.total_chunks,
                "createdAt": stamp,
            },
        }
        for chunk, vector in zip(chunks, vectors)
    ]
