"""
Question Answering Routes

``POST /api/v1/hackrx/run`` answers a batch of questions about one PDF,
ingesting the document into the store on first sight.
"""

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends

from .models import ERROR_RESPONSES, QARequest, QAResponse
from .dependencies import get_qa_service
from ..auth.security import require_api_token
from ..qa.service import DocumentQAService

logger = logging.getLogger("docqa.api")

router = APIRouter(prefix="/api/v1", tags=["qa"], responses=ERROR_RESPONSES)


@router.post(
    "/hackrx/run",
    response_model=QAResponse,
    summary="Answer questions about a PDF document",
    dependencies=[Depends(require_api_token)],
)
async def run_qa(
    req: QARequest,
    qa_service: Annotated[DocumentQAService, Depends(get_qa_service)],
) -> QAResponse:
    """
    Answer every question in ``req.questions`` from the document at
    ``req.documents``. Answers keep the question order; a question that
    fails gets a placeholder answer instead of failing the batch.
    """
    started = time.perf_counter()
    logger.info(
        "QA request for %s with %d questions", req.documents, len(req.questions)
    )

    outcome = await qa_service.answer(req.documents, req.questions)

    logger.info(
        "QA request for %s finished in %.2fs (ingested=%s%s)",
        req.documents,
        time.perf_counter() - started,
        outcome.ingested,
        f", notes={outcome.notes}" if outcome.notes else "",
    )
    return QAResponse(answers=outcome.answers)
