"""
Document Data Models

Canonical in-process representations of a fetched document, its extracted
text, the chunks derived from it, and retrieval results.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


@dataclass
class SourceDocument:
    """
    Raw downloaded document. Held only for the duration of one ingestion.
    """

    document_id: str
    content: bytes
    page_count: Optional[int] = None

    @property
    def byte_length(self) -> int:
        return len(self.content)


class ExtractionTier(str, Enum):
    """Which extraction strategy produced a piece of text."""

    STRUCTURAL = "structural"
    CONVERTED = "converted"
    OCR = "ocr"
    HEURISTIC = "heuristic"
    SPLIT_COMBINED = "split_combined"
    CACHED = "cached"
    NONE = "none"


class ExtractedText(BaseModel):
    """
    Text extracted from one document.

    The text is empty only when every tier was exhausted, in which case
    ``warning`` explains why.
    """

    document_id: str
    text: str
    tier: ExtractionTier
    note: Optional[str] = Field(
        default=None,
        description="Coverage caveat, e.g. partial split processing.",
    )
    warning: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _empty_text_requires_warning(self) -> "ExtractedText":
        if not self.text.strip() and not self.warning:
            raise ValueError("empty extraction result must carry a warning")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    @classmethod
    def exhausted(cls, document_id: str, warning: str = "No text extracted") -> "ExtractedText":
        return cls(
            document_id=document_id,
            text="",
            tier=ExtractionTier.NONE,
            warning=warning,
        )


class Chunk(BaseModel):
    """
    A contiguous word window of a document's extracted text.
    """

    document_id: str
    index: int = Field(..., ge=0)
    text: str = Field(..., min_length=1)
    total_chunks: int = Field(..., ge=1)

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )


class ScoredChunk(NamedTuple):
    """One retrieval hit."""

    text: str
    score: float
    index: int


RetrievalResult = List[ScoredChunk]


class DocumentStats(NamedTuple):
    """Summary of a stored document."""

    document_id: str
    total_chunks: int
    created_at: str
