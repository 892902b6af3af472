"""
API Models for the Document QA Server

Pydantic models used for request/response validation across the QA,
extraction, and stored-document endpoints.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..documents.fetcher import is_http_url


# ---------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------

class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["deleted", "ok"]
    count: Optional[int] = Field(default=None, ge=0)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


# Documented on every route; all error payloads share this shape.
ERROR_RESPONSES: Dict[Union[int, str], Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    404: {"model": ErrorResponse, "description": "Not found"},
    413: {"model": ErrorResponse, "description": "Document too large"},
    422: {"model": ErrorResponse, "description": "Document has no extractable text"},
    500: {"model": ErrorResponse, "description": "Internal error"},
    502: {"model": ErrorResponse, "description": "Upstream service failure"},
}


def _require_http_url(value: str) -> str:
    if not is_http_url(value):
        raise ValueError("Invalid documents parameter. Must be a valid HTTP/HTTPS URL.")
    return value


# ---------------------------------------------------------------------
# Question Answering
# ---------------------------------------------------------------------

class QARequest(BaseModel):
    """
    Ingestion+QA request: one document URL and the questions to answer.
    """
    documents: str = Field(..., min_length=1)
    questions: List[str] = Field(..., min_length=1)

    @field_validator("documents")
    @classmethod
    def _documents_is_http_url(cls, value: str) -> str:
        return _require_http_url(value)


class QAResponse(BaseModel):
    answers: List[str]


# ---------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------

class ExtractRequest(BaseModel):
    """
    Extraction request. The URL may arrive under any of three names;
    the first one present wins, in the order url, pdfUrl, documents.
    """
    url: Optional[str] = None
    pdfUrl: Optional[str] = None
    documents: Optional[str] = None

    @model_validator(mode="after")
    def _one_url_present(self) -> "ExtractRequest":
        if not self.resolved_url:
            raise ValueError("Missing URL. Provide `url`, `pdfUrl`, or `documents`.")
        return self

    @property
    def resolved_url(self) -> Optional[str]:
        return self.url or self.pdfUrl or self.documents


class ExtractResponse(BaseModel):
    text: str
    warning: Optional[str] = None


# ---------------------------------------------------------------------
# Stored Documents
# ---------------------------------------------------------------------

class DocumentDeleteRequest(BaseModel):
    documents: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")

    @field_validator("documents")
    @classmethod
    def _documents_is_http_url(cls, value: str) -> str:
        return _require_http_url(value)


class DocumentStatsResponse(BaseModel):
    documentId: str
    totalChunks: int = Field(..., ge=0)
    createdAt: str
