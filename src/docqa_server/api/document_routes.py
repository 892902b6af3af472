"""
Stored Document Routes

Inspect and purge documents held by the configured document store.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .models import (
    ERROR_RESPONSES,
    DocumentDeleteRequest,
    DocumentStatsResponse,
    OperationResult,
)
from .dependencies import get_document_store
from ..auth.security import require_api_token
from ..store.base import DocumentStore

router = APIRouter(
    prefix="/api/v1/documents",
    tags=["documents"],
    responses=ERROR_RESPONSES,
    dependencies=[Depends(require_api_token)],
)


def _require_store(store: Optional[DocumentStore]) -> DocumentStore:
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document persistence is disabled.",
        )
    return store


@router.get(
    "/stats",
    response_model=DocumentStatsResponse,
    summary="Get stored-document statistics",
)
async def get_document_stats(
    store: Annotated[Optional[DocumentStore], Depends(get_document_store)],
    url: str = Query(..., min_length=1),
) -> DocumentStatsResponse:
    stats = await _require_store(store).stats(url)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found.",
        )
    return DocumentStatsResponse(
        documentId=stats.document_id,
        totalChunks=stats.total_chunks,
        createdAt=stats.created_at,
    )


@router.delete(
    "",
    response_model=OperationResult,
    response_model_exclude_none=True,
    summary="Delete every stored chunk of a document",
)
async def delete_document(
    req: DocumentDeleteRequest,
    store: Annotated[Optional[DocumentStore], Depends(get_document_store)],
) -> OperationResult:
    """
    Purge the document so the next QA request re-ingests it.
    """
    removed = await _require_store(store).purge(req.documents)
    return OperationResult(status="deleted", count=removed)
