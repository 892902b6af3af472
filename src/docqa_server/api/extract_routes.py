"""
Extraction Routes

``POST /api/extract-text`` returns the text of a PDF using the tiered
extractor (and the shared text cache). An unreadable document is not an
error: the response carries empty text and a warning.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from .models import ERROR_RESPONSES, ExtractRequest, ExtractResponse
from .dependencies import get_extraction_service
from ..extraction.service import ExtractionService

router = APIRouter(prefix="/api", tags=["extraction"], responses=ERROR_RESPONSES)


@router.post(
    "/extract-text",
    response_model=ExtractResponse,
    response_model_exclude_none=True,
    summary="Extract text from a PDF URL",
)
async def extract_text(
    req: ExtractRequest,
    extraction: Annotated[ExtractionService, Depends(get_extraction_service)],
) -> ExtractResponse:
    extracted = await extraction.get_text(req.resolved_url)
    return ExtractResponse(text=extracted.text, warning=extracted.warning)
