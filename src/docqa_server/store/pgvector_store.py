"""
PostgreSQL + pgvector Document Store

Persisted vector index for document chunks. Each operation opens its own
session from the factory, so concurrent per-question queries never share a
session.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..core.errors import StoreAdapterError
from ..db.models import DocumentChunk
from ..documents.models import Chunk, DocumentStats, RetrievalResult, ScoredChunk
from ..retrieval.similarity import rank
from .base import build_chunk_records

logger = logging.getLogger("docqa.store")


class PgVectorDocumentStore:
    """
    PostgreSQL-backed document store using pgvector for similarity search.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        upsert_batch_size: Optional[int] = None,
    ) -> None:
        """
        Parameters
        ----------
        session_factory : async_sessionmaker[AsyncSession]
            Factory producing a fresh session per operation.

        upsert_batch_size : Optional[int]
            Rows per INSERT statement. Defaults to settings.upsert_batch_size.
        """
        self._session_factory = session_factory
        self.upsert_batch_size = upsert_batch_size or settings.upsert_batch_size

    async def exists(self, document_id: str) -> bool:
        """
        Return True if any chunk of ``document_id`` is stored.

        Errors are logged and reported as "not stored" so the caller
        re-ingests instead of serving nothing.
        """
        stmt = (
            select(DocumentChunk.id)
            .where(DocumentChunk.document_id == document_id)
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                found = result.scalar_one_or_none() is not None
        except Exception as exc:
            logger.error("Existence check failed for %s: %s", document_id, exc)
            return False

        logger.info("Document %s stored: %s", document_id, found)
        return found

    async def upsert(
        self,
        document_id: str,
        chunks: Sequence[Chunk],
        vectors: Sequence[Sequence[float]],
    ) -> int:
        """
        Write every chunk of a document in fixed-size batches.

        All batches share one transaction: a failing batch rolls back the
        whole call.

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        StoreAdapterError
            If any batch fails.
        """
        records = build_chunk_records(document_id, chunks, vectors)
        if not records:
            return 0

        rows = [
            {
                "id": record["id"],
                "document_id": document_id,
                "chunk_index": record["metadata"]["chunkIndex"],
                "total_chunks": record["metadata"]["totalChunks"],
                "text": record["metadata"]["text"],
                "created_at": datetime.fromisoformat(record["metadata"]["createdAt"]),
                "embedding": record["values"],
            }
            for record in records
        ]

        batches = [
            rows[i : i + self.upsert_batch_size]
            for i in range(0, len(rows), self.upsert_batch_size)
        ]

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for number, batch in enumerate(batches, start=1):
                        stmt = pg_insert(DocumentChunk).values(batch)
                        stmt = stmt.on_conflict_do_update(
                            index_elements=[DocumentChunk.id],
                            set_={
                                "text": stmt.excluded.text,
                                "total_chunks": stmt.excluded.total_chunks,
                                "created_at": stmt.excluded.created_at,
                                "embedding": stmt.excluded.embedding,
                            },
                        )
                        await session.execute(stmt)
                        logger.debug(
                            "Upserted batch %d/%d for %s", number, len(batches), document_id
                        )
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Upsert failed for %s: %s", document_id, exc)
            raise StoreAdapterError(
                "Failed to store document chunks",
                details=type(exc).__name__,
            ) from exc

        logger.info("Stored %d chunks for %s", len(rows), document_id)
        return len(rows)

    async def query(
        self,
        document_id: str,
        vector: Sequence[float],
        k: int,
    ) -> RetrievalResult:
        """
        Top-``k`` chunks of ``document_id`` by cosine similarity.
        """
        if k <= 0:
            return []

        cosine_distance = DocumentChunk.embedding.cosine_distance(list(vector))
        stmt = (
            select(
                DocumentChunk.text,
                DocumentChunk.chunk_index,
                (1 - cosine_distance).label("score"),
            )
            .where(DocumentChunk.document_id == document_id)
            .order_by(cosine_distance)
            .limit(k)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        # Index ordering is not trusted as authoritative.
        return rank([
            ScoredChunk(text=row.text, score=float(row.score or 0.0), index=row.chunk_index)
            for row in rows
            if row.text
        ])

    async def purge(self, document_id: str) -> int:
        """
        Remove every chunk of ``document_id``.

        Returns the number of deleted records.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(DocumentChunk.id).where(DocumentChunk.document_id == document_id)
                    )
                    ids: List[str] = list(result.scalars().all())
                    if ids:
                        await session.execute(
                            delete(DocumentChunk).where(DocumentChunk.id.in_(ids))
                        )
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Purge failed for %s: %s", document_id, exc)
            raise StoreAdapterError(
                "Failed to delete document chunks",
                details=type(exc).__name__,
            ) from exc

        logger.info("Deleted %d chunks for %s", len(ids), document_id)
        return len(ids)

    async def stats(self, document_id: str) -> Optional[DocumentStats]:
        stmt = (
            select(DocumentChunk.total_chunks, DocumentChunk.created_at)
            .where(DocumentChunk.document_id == document_id)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.first()

        if row is None:
            return None
        return DocumentStats(
            document_id=document_id,
            total_chunks=row.total_chunks,
            created_at=row.created_at.isoformat(),
        )
