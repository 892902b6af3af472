"""
In-Memory Document Store

Process-local implementation of the ``DocumentStore`` contract, for
single-instance deployments and tests. Ranking uses the same cosine top-K
as the ephemeral retrieval path.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence

from ..documents.models import Chunk, DocumentStats, RetrievalResult
from ..retrieval.similarity import rank, top_k
from .base import build_chunk_records

logger = logging.getLogger("docqa.store")


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._records: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = RLock()

    async def exists(self, document_id: str) -> bool:
        with self._lock:
            return bool(self._records.get(document_id))

    async def upsert(
        self,
        document_id: str,
        chunks: Sequence[Chunk],
        vectors: Sequence[Sequence[float]],
    ) -> int:
        records = build_chunk_records(document_id, chunks, vectors)
        with self._lock:
            # Last write wins for concurrent first-time ingestion.
            by_id = {r["id"]: r for r in self._records.get(document_id, [])}
            by_id.update({r["id"]: r for r in records})
            self._records[document_id] = sorted(
                by_id.values(), key=lambda r: r["metadata"]["chunkIndex"]
            )
        logger.info("Stored %d chunks for %s (memory)", len(records), document_id)
        return len(records)

    async def query(
        self,
        document_id: str,
        vector: Sequence[float],
        k: int,
    ) -> RetrievalResult:
        with self._lock:
            records = list(self._records.get(document_id, []))
        if not records:
            return []

        hits = top_k(
            vector,
            [r["values"] for r in records],
            [r["metadata"]["text"] for r in records],
            k,
        )
        # top_k indexes by position; report the stored chunk index instead.
        return rank([
            hit._replace(index=records[hit.index]["metadata"]["chunkIndex"])
            for hit in hits
        ])

    async def purge(self, document_id: str) -> int:
        with self._lock:
            removed = self._records.pop(document_id, [])
        return len(removed)

    async def stats(self, document_id: str) -> Optional[DocumentStats]:
        with self._lock:
            records = self._records.get(document_id)
            if not records:
                return None
            meta = records[0]["metadata"]
        return DocumentStats(
            document_id=document_id,
            total_chunks=meta["totalChunks"],
            created_at=meta["createdAt"],
        )

    def __len__(self) -> int:
        with self._lock:
            return sum(len(records) for records in self._records.values())
