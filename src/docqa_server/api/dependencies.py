from functools import lru_cache
from typing import Optional
import logging

from ..config import settings
from ..db.session import AsyncSessionLocal
from ..documents.fetcher import DocumentFetcher
from ..embeddings.embedder import Embedder
from ..extraction.cache import TextCache
from ..extraction.pdf_services import PdfServicesClient, resolve_pdf_services_credentials
from ..extraction.pipeline import Extractor
from ..extraction.service import ExtractionService
from ..llm.synthesizer import AnswerSynthesizer
from ..qa.service import DocumentQAService
from ..store.base import DocumentStore
from ..store.memory_store import InMemoryDocumentStore
from ..store.pgvector_store import PgVectorDocumentStore

logger = logging.getLogger("docqa.api")


@lru_cache
def get_text_cache() -> TextCache:
    return TextCache()


@lru_cache
def get_fetcher() -> DocumentFetcher:
    return DocumentFetcher()


@lru_cache
def get_extractor() -> Extractor:
    credentials = resolve_pdf_services_credentials()
    conversion = PdfServicesClient(credentials) if credentials else None
    if conversion is None:
        logger.warning("PDF Services credentials missing; conversion and OCR tiers disabled")
    return Extractor(conversion=conversion)


@lru_cache
def get_extraction_service() -> ExtractionService:
    return ExtractionService(get_fetcher(), get_extractor(), get_text_cache())


@lru_cache
def get_embedder() -> Embedder:
    return Embedder()


@lru_cache
def get_synthesizer() -> AnswerSynthesizer:
    return AnswerSynthesizer()


@lru_cache
def get_document_store() -> Optional[DocumentStore]:
    """
    Store backend selected by ``settings.document_store``; None disables
    persistence.
    """
    if settings.document_store == "pgvector":
        return PgVectorDocumentStore(AsyncSessionLocal)
    if settings.document_store == "memory":
        return InMemoryDocumentStore()
    return None


@lru_cache
def get_qa_service() -> DocumentQAService:
    return DocumentQAService(
        extraction=get_extraction_service(),
        embedder=get_embedder(),
        synthesizer=get_synthesizer(),
        store=get_document_store(),
    )
