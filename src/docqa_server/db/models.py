"""
SQLAlchemy Models

Defines the persisted index schema: one row per document chunk, holding the
chunk's embedding (pgvector) and its metadata.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    Text,
    DateTime,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from pgvector.sqlalchemy import Vector

from ..config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Document Chunk Model
# ---------------------------------------------------------------------

class DocumentChunk(Base):
    """
    Embedded chunk of a source document.

    Records are written once per document on first ingestion, never
    mutated, and removed only by purging the whole document.
    """
    __tablename__ = "document_chunk"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Source URL; exported as ``pdfUrl`` in the record metadata.
    document_id: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    total_chunks: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # pgvector column - dimensionality fixed by the embedding model
    embedding = Column(Vector(settings.embedding_dimensions), nullable=False)

    __table_args__ = (
        Index("idx_document_chunk_document", "document_id", "chunk_index"),
    )
