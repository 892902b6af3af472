"""
Extraction Service

Resolves a document URL to extracted text: cache fast path, then download
and tiered extraction. Only non-empty text is cached.
"""

from __future__ import annotations

import logging

from ..documents.fetcher import DocumentFetcher
from ..documents.models import ExtractedText, ExtractionTier
from .cache import TextCache
from .pipeline import Extractor

logger = logging.getLogger("docqa.extract")


class ExtractionService:
    def __init__(
        self,
        fetcher: DocumentFetcher,
        extractor: Extractor,
        cache: TextCache,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.cache = cache

    async def get_text(self, url: str) -> ExtractedText:
        """
        Return extracted text for ``url``.

        Raises
        ------
        ValidationError, FetchError, PayloadTooLargeError
            Propagated from the fetcher; extraction itself never raises.
        """
        cached = self.cache.get(url)
        if cached is not None:
            logger.info("Cache hit for %s (%d chars)", url, len(cached))
            return ExtractedText(document_id=url, text=cached, tier=ExtractionTier.CACHED)

        document = await self.fetcher.fetch(url)
        extracted = await self.extractor.extract(document)

        if extracted.is_empty:
            logger.warning("No text extracted from %s: %s", url, extracted.warning)
        else:
            self.cache.set(url, extracted.text)

        return extracted
