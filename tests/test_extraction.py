"""
Extraction Tests

Tier fallthrough, the heuristic scan, the split path of the Extractor, and
the caching ExtractionService. Structural parsing is patched at the tier
module so no real PDF is needed.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from docqa_server.documents.models import ExtractedText, ExtractionTier, SourceDocument
from docqa_server.extraction.cache import TextCache
from docqa_server.extraction.pdf_services import PageLimitExceededError
from docqa_server.extraction.pipeline import NO_TEXT_WARNING, Extractor
from docqa_server.extraction.service import ExtractionService
from docqa_server.extraction.splitter import DocumentSplitter, SplitOutcome
from docqa_server.extraction.structural import EncryptedDocumentError
from docqa_server.extraction.tiers import (
    TierOutcome,
    TierResult,
    conversion_tier,
    heuristic_scan,
    ocr_tier,
    run_tiers,
)

URL = "https://files.example.com/policy.pdf"
PARSE = "docqa_server.extraction.tiers.extract_text"


def _document(content=b"%PDF-1.4 binary"):
    return SourceDocument(document_id=URL, content=content)


def _conversion(text="", ocr=b"", text_error=None, ocr_error=None):
    service = AsyncMock()
    service.extract_text.return_value = text
    service.ocr.return_value = ocr
    if text_error:
        service.extract_text.side_effect = text_error
    if ocr_error:
        service.ocr.side_effect = ocr_error
    return service


# ---------------------------------------------------------------------
# Chain driver
# ---------------------------------------------------------------------

class TestRunTiers:
    @pytest.mark.asyncio
    async def test_stops_at_first_success(self):
        third = AsyncMock(return_value=TierResult.success("never"))
        chain = [
            (ExtractionTier.STRUCTURAL, AsyncMock(return_value=TierResult.recoverable("empty"))),
            (ExtractionTier.CONVERTED, AsyncMock(return_value=TierResult.success("converted text"))),
            (ExtractionTier.OCR, third),
        ]

        tier, result = await run_tiers(b"x", chain)

        assert tier is ExtractionTier.CONVERTED
        assert result.text == "converted text"
        third.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fatal_stops_chain(self):
        later = AsyncMock(return_value=TierResult.success("never"))
        chain = [
            (ExtractionTier.STRUCTURAL, AsyncMock(return_value=TierResult.fatal("PDF is password protected"))),
            (ExtractionTier.HEURISTIC, later),
        ]

        tier, result = await run_tiers(b"x", chain)

        assert tier is None
        assert result.outcome is TierOutcome.FATAL
        later.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        tier, result = await run_tiers(b"x", [])
        assert tier is None
        assert not result.ok


# ---------------------------------------------------------------------
# Heuristic scan
# ---------------------------------------------------------------------

class TestHeuristicScan:
    def test_collects_parenthesised_runs_with_letters(self):
        content = b"%PDF-1.4 BT (Hello World from PDF) Tj (1234567890123) Tj (short) ET"

        assert heuristic_scan(content, 1024) == "Hello World from PDF"

    def test_longest_delimiter_style_wins(self):
        content = (
            b"(only one paren run) "
            b"[first bracketed run of text] [second bracketed run of text]"
        )

        assert heuristic_scan(content, 1024) == (
            "first bracketed run of text second bracketed run of text"
        )

    def test_scan_is_bounded(self):
        content = b"x" * 100 + b"(Text beyond the scanned prefix)"

        assert heuristic_scan(content, 100) == ""

    def test_non_ascii_bytes_do_not_fail(self):
        content = b"\xff\xfe\x00 (Caf\xe9 au lait sur la table)"

        assert heuristic_scan(content, 1024) == "Café au lait sur la table"


# ---------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------

class TestExtractorFallthrough:
    @pytest.mark.asyncio
    async def test_structural_success(self):
        extractor = Extractor(conversion=_conversion())

        with patch(PARSE, return_value="  Policy wording  "):
            result = await extractor.extract(_document())

        assert result.tier is ExtractionTier.STRUCTURAL
        assert result.text == "Policy wording"
        assert result.warning is None

    @pytest.mark.asyncio
    async def test_conversion_after_empty_parse(self):
        conversion = _conversion(text="Converted wording")
        extractor = Extractor(conversion=conversion)

        with patch(PARSE, return_value=""):
            result = await extractor.extract(_document())

        assert result.tier is ExtractionTier.CONVERTED
        assert result.text == "Converted wording"
        conversion.ocr.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ocr_after_conversion_page_limit(self):
        conversion = _conversion(
            text_error=PageLimitExceededError("page limit exceeded"),
            ocr=b"%PDF searchable",
        )
        extractor = Extractor(conversion=conversion)

        with patch(PARSE, side_effect=[ValueError("bad xref"), "Recognised wording"]):
            result = await extractor.extract(_document())

        assert result.tier is ExtractionTier.OCR
        assert result.text == "Recognised wording"
        conversion.ocr.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_heuristic_without_conversion_service(self):
        extractor = Extractor(conversion=None)
        content = b"%PDF-1.4 BT (Recovered heuristic wording) Tj ET"

        with patch(PARSE, return_value=""):
            result = await extractor.extract(_document(content))

        assert result.tier is ExtractionTier.HEURISTIC
        assert result.text == "Recovered heuristic wording"

    @pytest.mark.asyncio
    async def test_every_tier_exhausted(self):
        extractor = Extractor(conversion=_conversion(text_error=RuntimeError("down"), ocr_error=RuntimeError("down")))

        with patch(PARSE, return_value=""):
            result = await extractor.extract(_document(b"%PDF-1.4 no text"))

        assert result.is_empty
        assert result.tier is ExtractionTier.NONE
        assert result.warning == NO_TEXT_WARNING

    @pytest.mark.asyncio
    async def test_encrypted_document_stops_immediately(self):
        conversion = _conversion(text="never used")
        extractor = Extractor(conversion=conversion)

        with patch(PARSE, side_effect=EncryptedDocumentError("PDF is password protected")):
            result = await extractor.extract(_document(b"(Readable heuristic wording)"))

        assert result.is_empty
        assert result.warning == NO_TEXT_WARNING
        conversion.extract_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_payload(self):
        result = await Extractor().extract(_document(b""))

        assert result.is_empty
        assert result.warning == NO_TEXT_WARNING


async def _hang(*args, **kwargs):
    await asyncio.sleep(30)


class TestRemoteTierDeadlines:
    @pytest.mark.asyncio
    async def test_conversion_deadline(self):
        conversion = _conversion()
        conversion.extract_text.side_effect = _hang

        result = await conversion_tier(b"%PDF", service=conversion, timeout=0.05)

        assert result.outcome is TierOutcome.RECOVERABLE
        assert result.reason == "conversion exceeded 0.05s"

    @pytest.mark.asyncio
    async def test_ocr_deadline(self):
        conversion = _conversion()
        conversion.ocr.side_effect = _hang

        result = await ocr_tier(b"%PDF", service=conversion, timeout=0.05, parse_timeout=1.0)

        assert result.outcome is TierOutcome.RECOVERABLE
        assert result.reason == "OCR exceeded 0.05s"

    @pytest.mark.asyncio
    async def test_hung_conversion_falls_through_to_heuristic(self):
        conversion = _conversion()
        conversion.extract_text.side_effect = _hang
        conversion.ocr.side_effect = _hang
        extractor = Extractor(conversion=conversion, service_timeout=0.05)

        with patch(PARSE, return_value=""):
            result = await extractor.extract(_document(b"(Readable heuristic wording)"))

        assert result.tier is ExtractionTier.HEURISTIC
        assert result.text == "Readable heuristic wording"


class TestExtractorSplitPath:
    def _extractor(self, splitter):
        return Extractor(conversion=None, split_threshold_bytes=10, splitter=splitter)

    @pytest.mark.asyncio
    async def test_split_result_is_combined(self):
        splitter = AsyncMock(spec=DocumentSplitter)
        splitter.count_pages.return_value = 600
        splitter.extract.return_value = SplitOutcome(
            text="--- Part 1 ---\nfirst\n\n[Partial coverage: 4 of 12 parts processed]",
            parts_total=12,
            parts_attempted=4,
            parts_succeeded=1,
            pages_per_part=50,
            note="Partial coverage: 4 of 12 parts processed",
        )
        document = _document(b"%PDF" + b"0" * 64)

        result = await self._extractor(splitter).extract(document)

        assert result.tier is ExtractionTier.SPLIT_COMBINED
        assert result.note == "Partial coverage: 4 of 12 parts processed"
        assert document.page_count == 600
        splitter.extract.assert_awaited_once_with(document.content, 600)

    @pytest.mark.asyncio
    async def test_empty_split_falls_back_to_heuristic(self):
        splitter = AsyncMock(spec=DocumentSplitter)
        splitter.count_pages.return_value = 250
        splitter.extract.return_value = SplitOutcome("", 3, 3, 0, 100)

        result = await self._extractor(splitter).extract(
            _document(b"%PDF (Heuristic wording for the split fallback)")
        )

        assert result.tier is ExtractionTier.HEURISTIC

    @pytest.mark.asyncio
    async def test_unknown_page_count_runs_whole_document_chain(self):
        splitter = AsyncMock(spec=DocumentSplitter)
        splitter.count_pages.return_value = None

        with patch(PARSE, return_value="Whole document wording"):
            result = await self._extractor(splitter).extract(_document(b"%PDF" + b"0" * 64))

        assert result.tier is ExtractionTier.STRUCTURAL
        splitter.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_zero_pages(self):
        splitter = AsyncMock(spec=DocumentSplitter)
        splitter.count_pages.return_value = 0

        result = await self._extractor(splitter).extract(_document(b"%PDF (Words that are not used)"))

        assert result.is_empty
        splitter.extract.assert_not_awaited()


# ---------------------------------------------------------------------
# ExtractionService
# ---------------------------------------------------------------------

class TestExtractionService:
    def _service(self, extracted):
        fetcher = AsyncMock()
        fetcher.fetch.return_value = _document()
        extractor = AsyncMock(spec=Extractor)
        extractor.extract.return_value = extracted
        return ExtractionService(fetcher, extractor, TextCache()), fetcher, extractor

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self):
        extracted = ExtractedText(document_id=URL, text="Policy wording", tier=ExtractionTier.STRUCTURAL)
        service, fetcher, extractor = self._service(extracted)

        first = await service.get_text(URL)
        second = await service.get_text(URL)

        assert first.tier is ExtractionTier.STRUCTURAL
        assert second.tier is ExtractionTier.CACHED
        assert second.text == "Policy wording"
        fetcher.fetch.assert_awaited_once_with(URL)
        extractor.extract.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_text_is_not_cached(self):
        service, fetcher, _ = self._service(ExtractedText.exhausted(URL))

        await service.get_text(URL)
        result = await service.get_text(URL)

        assert result.is_empty
        assert fetcher.fetch.await_count == 2
        assert len(service.cache) == 0


def test_empty_extraction_requires_warning():
    with pytest.raises(ValueError):
        ExtractedText(document_id=URL, text="  ", tier=ExtractionTier.STRUCTURAL)
