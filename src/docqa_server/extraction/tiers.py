"""
Extraction Tiers

Each tier is an async function ``(bytes) -> TierResult``. Tiers never raise
for document-level problems; they report one of three outcomes:

- ``SUCCESS``: non-empty text was produced
- ``RECOVERABLE``: this tier failed, the next one may still succeed
- ``FATAL``: no later tier can succeed (e.g. a password-protected PDF)

The ordering policy lives in ``pipeline.Extractor``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from ..documents.models import ExtractionTier
from .pdf_services import ConversionService, is_page_limit_error
from .structural import EncryptedDocumentError, NoPagesError, extract_text, run_with_deadline

logger = logging.getLogger("docqa.extract")


class TierOutcome(str, Enum):
    SUCCESS = "success"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass(frozen=True)
class TierResult:
    outcome: TierOutcome
    text: str = ""
    reason: Optional[str] = None

    @classmethod
    def success(cls, text: str) -> "TierResult":
        return cls(TierOutcome.SUCCESS, text=text)

    @classmethod
    def recoverable(cls, reason: str) -> "TierResult":
        return cls(TierOutcome.RECOVERABLE, reason=reason)

    @classmethod
    def fatal(cls, reason: str) -> "TierResult":
        return cls(TierOutcome.FATAL, reason=reason)

    @property
    def ok(self) -> bool:
        return self.outcome is TierOutcome.SUCCESS


def _from_text(text: str, empty_reason: str) -> TierResult:
    text = text.strip()
    if text:
        return TierResult.success(text)
    return TierResult.recoverable(empty_reason)


# ---------------------------------------------------------------------
# Tier 1: structural parse
# ---------------------------------------------------------------------

async def structural_tier(content: bytes, *, timeout: float) -> TierResult:
    """Parse the PDF structure directly with pypdf."""
    try:
        text = await run_with_deadline(extract_text, content, timeout=timeout)
    except asyncio.TimeoutError:
        return TierResult.recoverable(f"structural parse exceeded {timeout}s")
    except (EncryptedDocumentError, NoPagesError) as exc:
        return TierResult.fatal(str(exc))
    except Exception as exc:
        # pypdf raises a wide range of errors on malformed input.
        return TierResult.recoverable(f"structural parse failed: {type(exc).__name__}: {exc}")

    return _from_text(text, "structural parse produced no text")


# ---------------------------------------------------------------------
# Tier 2: remote conversion
# ---------------------------------------------------------------------

async def conversion_tier(
    content: bytes,
    *,
    service: Optional[ConversionService],
    timeout: float,
) -> TierResult:
    """Extract text through the remote conversion service."""
    if service is None:
        return TierResult.recoverable("conversion service not configured")

    try:
        text = await asyncio.wait_for(service.extract_text(content), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Conversion exceeded %ss", timeout)
        return TierResult.recoverable(f"conversion exceeded {timeout}s")
    except Exception as exc:
        if is_page_limit_error(exc):
            logger.warning("Conversion rejected document: page limit exceeded")
            return TierResult.recoverable("conversion page limit exceeded")
        return TierResult.recoverable(f"conversion failed: {type(exc).__name__}: {exc}")

    return _from_text(text, "conversion produced no text")


# ---------------------------------------------------------------------
# Tier 3: remote OCR + re-parse
# ---------------------------------------------------------------------

async def ocr_tier(
    content: bytes,
    *,
    service: Optional[ConversionService],
    timeout: float,
    parse_timeout: float,
) -> TierResult:
    """OCR the document remotely, then parse the searchable result."""
    if service is None:
        return TierResult.recoverable("OCR service not configured")

    try:
        searchable = await asyncio.wait_for(service.ocr(content), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("OCR exceeded %ss", timeout)
        return TierResult.recoverable(f"OCR exceeded {timeout}s")
    except Exception as exc:
        if is_page_limit_error(exc):
            logger.warning("OCR rejected document: page limit exceeded")
            return TierResult.recoverable("OCR page limit exceeded")
        return TierResult.recoverable(f"OCR failed: {type(exc).__name__}: {exc}")

    if not searchable:
        return TierResult.recoverable("OCR returned an empty document")

    result = await structural_tier(searchable, timeout=parse_timeout)
    if result.ok:
        return result
    return TierResult.recoverable(f"no text extracted after OCR ({result.reason})")


# ---------------------------------------------------------------------
# Tier 4: heuristic byte scan
# ---------------------------------------------------------------------

_HEURISTIC_PATTERNS = (
    re.compile(r"\(([^()\r\n]{10,})\)"),
    re.compile(r"\[([^\[\]\r\n]{10,})\]"),
    re.compile(r'"([^"\r\n]{10,})"'),
)
_LETTER = re.compile(r"[A-Za-z]")
_WHITESPACE = re.compile(r"\s+")


def heuristic_scan(content: bytes, scan_bytes: int) -> str:
    """
    Scan a bounded prefix of the raw bytes for delimited text runs.

    Runs of at least ten characters containing a letter are collected per
    delimiter style (parentheses, brackets, double quotes); the style with
    the longest aggregate text wins.
    """
    window = content[:scan_bytes].decode("latin-1")

    best = ""
    for pattern in _HEURISTIC_PATTERNS:
        runs = [
            _WHITESPACE.sub(" ", match).strip()
            for match in pattern.findall(window)
            if _LETTER.search(match)
        ]
        candidate = " ".join(run for run in runs if run)
        if len(candidate) > len(best):
            best = candidate
    return best


async def heuristic_tier(content: bytes, *, scan_bytes: int) -> TierResult:
    """Last-resort scan; empty output is reported as recoverable."""
    text = await asyncio.to_thread(heuristic_scan, content, scan_bytes)
    return _from_text(text, "heuristic scan found no text")


# ---------------------------------------------------------------------
# Chain driver
# ---------------------------------------------------------------------

TierFn = Callable[[bytes], Awaitable[TierResult]]
TierChain = Sequence[Tuple[ExtractionTier, TierFn]]


async def run_tiers(
    content: bytes,
    chain: TierChain,
    label: str = "document",
) -> Tuple[Optional[ExtractionTier], TierResult]:
    """
    Apply tiers in order until one succeeds or one reports a fatal failure.

    Returns the winning tier (None when none succeeded) and its result, or
    the last failure.
    """
    last = TierResult.recoverable("no extraction tiers configured")

    for tier, run in chain:
        result = await run(content)
        if result.ok:
            logger.info("%s: %s tier extracted %d chars", label, tier.value, len(result.text))
            return tier, result

        logger.info("%s: %s tier failed: %s", label, tier.value, result.reason)
        last = result
        if result.outcome is TierOutcome.FATAL:
            break

    return None, last
