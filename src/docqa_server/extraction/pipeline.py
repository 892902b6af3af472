"""
Tiered Text Extraction

``Extractor`` turns raw PDF bytes into text by trying an ordered list of
strategies and stopping at the first success:

1. structural parse (pypdf)
2. remote conversion service
3. remote OCR, then structural re-parse
4. heuristic byte scan

Documents above the split threshold are first partitioned into page ranges
(see ``splitter``), each part running tiers 1-3. Extraction never raises for
document-level problems: when everything fails the result is empty text with
a warning.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Optional

from ..config import settings
from ..documents.models import ExtractedText, ExtractionTier, SourceDocument
from .pdf_services import ConversionService
from .splitter import DocumentSplitter
from .tiers import (
    TierChain,
    conversion_tier,
    heuristic_tier,
    ocr_tier,
    run_tiers,
    structural_tier,
)

logger = logging.getLogger("docqa.extract")

NO_TEXT_WARNING = "No text extracted"


class Extractor:
    """
    Orchestrates the extraction tiers for one document at a time.

    The instance holds no per-document state and is safe to share across
    concurrent requests.
    """

    def __init__(
        self,
        conversion: Optional[ConversionService] = None,
        structural_timeout: Optional[float] = None,
        service_timeout: Optional[float] = None,
        heuristic_scan_bytes: Optional[int] = None,
        split_threshold_bytes: Optional[int] = None,
        splitter: Optional[DocumentSplitter] = None,
    ) -> None:
        """
        Parameters
        ----------
        conversion : Optional[ConversionService]
            Remote conversion/OCR service. When None, tiers 2 and 3 are
            skipped.

        service_timeout : Optional[float]
            Overall deadline for one conversion or OCR call. Defaults to
            settings.pdf_services_timeout.

        splitter : Optional[DocumentSplitter]
            Override for the oversized-document splitter (tests).
        """
        self.conversion = conversion
        self.structural_timeout = structural_timeout or settings.structural_timeout
        self.service_timeout = service_timeout or settings.pdf_services_timeout
        self.heuristic_scan_bytes = heuristic_scan_bytes or settings.heuristic_scan_bytes
        self.split_threshold_bytes = split_threshold_bytes or settings.split_threshold_bytes

        self.part_chain: TierChain = [
            (ExtractionTier.STRUCTURAL, partial(structural_tier, timeout=self.structural_timeout)),
            (
                ExtractionTier.CONVERTED,
                partial(conversion_tier, service=conversion, timeout=self.service_timeout),
            ),
            (
                ExtractionTier.OCR,
                partial(
                    ocr_tier,
                    service=conversion,
                    timeout=self.service_timeout,
                    parse_timeout=self.structural_timeout,
                ),
            ),
        ]
        self.heuristic_chain: TierChain = [
            (ExtractionTier.HEURISTIC, partial(heuristic_tier, scan_bytes=self.heuristic_scan_bytes)),
        ]
        self.full_chain: TierChain = [*self.part_chain, *self.heuristic_chain]

        self.splitter = splitter or DocumentSplitter(chain=self.part_chain)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract(self, document: SourceDocument) -> ExtractedText:
        """
        Extract text from ``document``.

        Returns
        -------
        ExtractedText
            Non-empty text tagged with the producing tier, or empty text with
            a warning when every tier was exhausted.
        """
        doc_id = document.document_id

        if not document.content:
            logger.warning("%s: empty payload", doc_id)
            return ExtractedText.exhausted(doc_id, NO_TEXT_WARNING)

        if document.byte_length > self.split_threshold_bytes:
            split_result = await self._extract_split(document)
            if split_result is not None:
                return split_result
        else:
            tier, result = await run_tiers(document.content, self.full_chain, label=doc_id)
            if tier is not None:
                return ExtractedText(document_id=doc_id, text=result.text, tier=tier)
            logger.warning("%s: all extraction tiers failed (%s)", doc_id, result.reason)

        return ExtractedText.exhausted(doc_id, NO_TEXT_WARNING)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _extract_split(self, document: SourceDocument) -> Optional[ExtractedText]:
        """
        Split path for oversized documents. Returns None when every strategy
        came up empty.
        """
        doc_id = document.document_id
        logger.info(
            "%s: %d bytes exceeds split threshold %d",
            doc_id,
            document.byte_length,
            self.split_threshold_bytes,
        )

        total_pages = await self.splitter.count_pages(document.content)
        document.page_count = total_pages

        if total_pages == 0:
            logger.warning("%s: document has no pages", doc_id)
            return None

        if total_pages is None:
            # Unreadable structure: the split cannot be planned.
            fallback = self.full_chain
        else:
            outcome = await self.splitter.extract(document.content, total_pages)
            if outcome.text:
                logger.info(
                    "%s: split extraction kept %d/%d parts (%d attempted)",
                    doc_id,
                    outcome.parts_succeeded,
                    outcome.parts_total,
                    outcome.parts_attempted,
                )
                return ExtractedText(
                    document_id=doc_id,
                    text=outcome.text,
                    tier=ExtractionTier.SPLIT_COMBINED,
                    note=outcome.note,
                )
            fallback = self.heuristic_chain

        tier, result = await run_tiers(document.content, fallback, label=doc_id)
        if tier is not None:
            return ExtractedText(document_id=doc_id, text=result.text, tier=tier)

        logger.warning("%s: all extraction strategies failed", doc_id)
        return None
