from .base import DocumentStore, build_chunk_records, chunk_record_id
from .memory_store import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "build_chunk_records",
    "chunk_record_id",
    "InMemoryDocumentStore",
]
