"""
Database Package

Provides SQLAlchemy async session management and model definitions
for PostgreSQL with pgvector.
"""

from .session import async_engine, AsyncSessionLocal, init_schema
from .models import Base, DocumentChunk

__all__ = [
    "async_engine",
    "AsyncSessionLocal",
    "init_schema",
    "Base",
    "DocumentChunk",
]
