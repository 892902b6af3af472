"""
Embedding Client

This module implements the embedding client used for both document chunks
and questions. It is responsible for:

- Order-preserving batching of text inputs
- Serialized batches with a fixed pause between them (provider rate limits)
- Network and transport error isolation
- Strict response validation

The class is stateless and safe to reuse across requests.
"""

from __future__ import annotations

import asyncio
from typing import List, Sequence, Optional
import logging
import httpx

from ..config import settings
from ..core.errors import EmbeddingServiceError

logger = logging.getLogger("docqa.embedder")


class Embedder:
    """
    Asynchronous embedding generator for batches of text.

    This class performs no caching; the document store decides whether a
    document needs embedding at all.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize an Embedder.

        Parameters
        ----------
        api_key : Optional[str]
            Optional override for the API key. Defaults to settings.openai_api_key.

        model : Optional[str]
            Optional override for embedding model. Defaults to settings.embedding_model.

        base_url : Optional[str]
            Embeddings endpoint. Defaults to ``{settings.openai_base_url}/embeddings``.

        batch_size : Optional[int]
            Texts per request. Defaults to settings.embedding_batch_size.

        batch_delay : Optional[float]
            Seconds to wait between batches. Defaults to settings.embedding_batch_delay.
        """
        if api_key is None and settings.openai_api_key is not None:
            api_key = settings.openai_api_key.get_secret_value()
        self.api_key = api_key or ""
        self.model = model or settings.embedding_model
        self.base_url = base_url or f"{settings.openai_base_url.rstrip('/')}/embeddings"
        self.timeout = timeout
        self.batch_size = batch_size or settings.embedding_batch_size
        self.batch_delay = settings.embedding_batch_delay if batch_delay is None else batch_delay
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate embeddings for a sequence of input texts.

        Parameters
        ----------
        texts : Sequence[str]
            List or sequence of input text strings.

        Returns
        -------
        List[List[float]]
            One embedding per input, in input order.

        Raises
        ------
        EmbeddingServiceError
            If any batch fails or a response is malformed. No partial
            results are returned.
        """
        if not texts:
            return []

        all_embeddings: List[List[float]] = []
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for start in range(0, len(texts), self.batch_size):
                if start:
                    await asyncio.sleep(self.batch_delay)

                batch = list(texts[start : start + self.batch_size])
                payload = {
                    "model": self.model,
                    "input": batch,
                }

                try:
                    response = await client.post(
                        self.base_url,
                        json=payload,
                        headers=headers,
                    )
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.error(
                        "Embedding request failed (%s): batch start=%d size=%d, error=%s",
                        type(exc).__name__,
                        start,
                        len(batch),
                        str(exc),
                    )
                    raise EmbeddingServiceError(
                        "Failed to generate embeddings",
                        details=type(exc).__name__,
                    ) from exc

                try:
                    data = response.json()
                except ValueError as exc:
                    raise EmbeddingServiceError("Embedding response is not JSON.") from exc

                embeddings = self._extract_embeddings(data, len(batch))
                all_embeddings.extend(embeddings)

        logger.debug("Embedded %d texts (batch size %d)", len(texts), self.batch_size)
        return all_embeddings

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_embeddings(data: dict, expected: int) -> List[List[float]]:
        """
        Parse and validate embedding output format.

        OpenAI returns:
            { "data": [ {"index": 0, "embedding": [...]}, ... ] }

        Records are re-ordered by ``index`` when present.

        Raises
        ------
        EmbeddingServiceError
            If the API returns unexpected structure.
        """
        if not isinstance(data, dict) or "data" not in data:
            raise EmbeddingServiceError("Embedding response missing 'data' field.")

        records = data["data"]
        if not isinstance(records, list):
            raise EmbeddingServiceError("'data' field must be a list.")

        if len(records) != expected:
            raise EmbeddingServiceError(
                f"Embedding response has {len(records)} vectors for {expected} inputs."
            )

        if all(isinstance(r, dict) and isinstance(r.get("index"), int) for r in records):
            records = sorted(records, key=lambda r: r["index"])

        embeddings: List[List[float]] = []

        for index, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise EmbeddingServiceError(
                    f"Malformed embedding record at index {index}."
                )

            emb = record["embedding"]
            if not isinstance(emb, list) or not emb or not all(
                isinstance(x, (float, int)) for x in emb
            ):
                raise EmbeddingServiceError(
                    f"Invalid embedding vector at index {index}: must be float list."
                )

            embeddings.append([float(x) for x in emb])

        return embeddings
