"""
Document Question Answering

Coordinates the pipeline for one request: existence check, ingestion
(extract, chunk, embed, store) when needed, then retrieval and answer
synthesis for every question in parallel.

Failure isolation
-----------------
- Request-wide failures (validation, fetch, empty document, embedding,
  store upsert) propagate to the caller.
- Per-question failures (retrieval, synthesis) become placeholder answers
  in that question's slot; sibling questions are unaffected.
- Answers always come back in input order.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..config import settings
from ..core.errors import EmptyDocumentError, ValidationError
from ..core.tasks import gather_settled
from ..documents.models import Chunk, RetrievalResult
from ..embeddings.embedder import Embedder
from ..extraction.service import ExtractionService
from ..llm.synthesizer import AnswerSynthesizer
from ..retrieval.chunker import cap_chunks, choose_chunk_size, chunk_text
from ..retrieval.similarity import top_k
from ..store.base import DocumentStore

logger = logging.getLogger("docqa.qa")

EMPTY_QUESTION_ANSWER = "Error: Empty question provided"
FAILED_QUESTION_ANSWER = "Error: Failed to process the question: {question}"

Vector = List[float]


@dataclass
class IngestionReport:
    document_id: str
    ingested: bool
    chunk_count: int = 0
    notes: List[str] = field(default_factory=list)


@dataclass
class QAOutcome:
    answers: List[str]
    ingested: bool
    notes: List[str] = field(default_factory=list)


class DocumentQAService:
    """
    Answers batches of questions about one document per call.

    With a ``store`` the document's chunk vectors are persisted and reused
    across requests. Without one, chunks are embedded per request and ranked
    in memory.
    """

    def __init__(
        self,
        extraction: ExtractionService,
        embedder: Embedder,
        synthesizer: AnswerSynthesizer,
        store: Optional[DocumentStore] = None,
        top_k: Optional[int] = None,
        max_chunks: Optional[int] = None,
        serialize_ingestion: Optional[bool] = None,
    ) -> None:
        self.extraction = extraction
        self.embedder = embedder
        self.synthesizer = synthesizer
        self.store = store
        self.top_k = top_k or settings.top_k
        self.max_chunks = max_chunks or settings.max_chunks
        self.serialize_ingestion = (
            settings.serialize_ingestion if serialize_ingestion is None else serialize_ingestion
        )
        # Locks live only while a request holds them.
        self._ingest_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def answer(self, url: str, questions: Sequence[str]) -> QAOutcome:
        """
        Answer ``questions`` about the document at ``url``.

        Returns
        -------
        QAOutcome
            One answer per question, in input order.
        """
        if not questions:
            raise ValidationError("Questions must be a non-empty array")

        if self.store is None:
            return await self._answer_ephemeral(url, questions)
        return await self._answer_persisted(url, questions)

    async def ensure_ingested(self, url: str) -> IngestionReport:
        """
        Make sure the document's chunks are in the store, ingesting it if
        the store does not know it yet.
        """
        if self.store is None:
            raise RuntimeError("ensure_ingested requires a document store")

        if await self.store.exists(url):
            return IngestionReport(document_id=url, ingested=False)

        if not self.serialize_ingestion:
            return await self._ingest(url)

        lock = self._ingest_locks.get(url)
        if lock is None:
            lock = asyncio.Lock()
            self._ingest_locks[url] = lock

        async with lock:
            # Another request may have finished ingesting while we waited.
            if await self.store.exists(url):
                return IngestionReport(document_id=url, ingested=False)
            return await self._ingest(url)

    # ------------------------------------------------------------------
    # Pipeline variants
    # ------------------------------------------------------------------

    async def _answer_persisted(self, url: str, questions: Sequence[str]) -> QAOutcome:
        report = await self.ensure_ingested(url)
        question_vectors = await self._embed_questions(questions)

        async def retrieve(vector: Vector) -> RetrievalResult:
            return await self.store.query(url, vector, self.top_k)

        answers = await self._answer_all(questions, question_vectors, retrieve)
        return QAOutcome(answers=answers, ingested=report.ingested, notes=report.notes)

    async def _answer_ephemeral(self, url: str, questions: Sequence[str]) -> QAOutcome:
        chunks, notes = await self._prepare_chunks(url)
        texts = [chunk.text for chunk in chunks]

        chunk_vectors, question_vectors = await asyncio.gather(
            self.embedder.embed(texts),
            self._embed_questions(questions),
        )

        async def retrieve(vector: Vector) -> RetrievalResult:
            return top_k(vector, chunk_vectors, texts, self.top_k)

        answers = await self._answer_all(questions, question_vectors, retrieve)
        return QAOutcome(answers=answers, ingested=True, notes=notes)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _ingest(self, url: str) -> IngestionReport:
        chunks, notes = await self._prepare_chunks(url)
        vectors = await self.embedder.embed([chunk.text for chunk in chunks])
        await self.store.upsert(url, chunks, vectors)
        return IngestionReport(
            document_id=url,
            ingested=True,
            chunk_count=len(chunks),
            notes=notes,
        )

    async def _prepare_chunks(self, url: str) -> Tuple[List[Chunk], List[str]]:
        extracted = await self.extraction.get_text(url)
        if extracted.is_empty:
            raise EmptyDocumentError(
                "Extracted PDF text is empty",
                details=extracted.warning,
            )

        notes: List[str] = []
        if extracted.note:
            notes.append(extracted.note)

        window = choose_chunk_size(len(extracted.text))
        chunks = chunk_text(extracted.text, window, document_id=url)
        logger.info(
            "Chunked %s into %d chunks of <=%d words (tier=%s)",
            url,
            len(chunks),
            window,
            extracted.tier.value,
        )

        chunks, truncated = cap_chunks(chunks, self.max_chunks)
        if truncated:
            note = f"Document truncated to its first {len(chunks)} chunks"
            logger.warning("%s: %s", url, note)
            notes.append(note)

        return chunks, notes

    async def _embed_questions(self, questions: Sequence[str]) -> List[Optional[Vector]]:
        """
        Embed every non-blank question in one call; blank slots stay None.
        """
        positions = [i for i, q in enumerate(questions) if q and q.strip()]
        if not positions:
            return [None] * len(questions)

        vectors = await self.embedder.embed([questions[i] for i in positions])
        aligned: List[Optional[Vector]] = [None] * len(questions)
        for position, vector in zip(positions, vectors):
            aligned[position] = vector
        return aligned

    async def _answer_all(
        self,
        questions: Sequence[str],
        vectors: Sequence[Optional[Vector]],
        retrieve,
    ) -> List[str]:
        async def answer_one(question: str, vector: Optional[Vector]) -> str:
            if vector is None:
                return EMPTY_QUESTION_ANSWER
            hits = await retrieve(vector)
            return await self.synthesizer.answer(question, [hit.text for hit in hits])

        settled = await gather_settled(
            [answer_one(q, v) for q, v in zip(questions, vectors)]
        )

        answers: List[str] = []
        for item in sorted(settled, key=lambda s: s.index):
            if item.ok:
                answers.append(item.value)
                continue
            question = questions[item.index]
            logger.error(
                "Question %d failed (%s): %s",
                item.index + 1,
                type(item.error).__name__,
                item.error,
            )
            answers.append(FAILED_QUESTION_ANSWER.format(question=question))
        return answers
