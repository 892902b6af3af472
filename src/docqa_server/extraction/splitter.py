"""
Oversized Document Splitting

Large PDFs are partitioned into page-range parts that are extracted
independently, so a single remote call never has to handle the whole
document.

Policy
------
- Pages per part depend on whether the document is presumed text-native or
  scanned. Page count is the only signal: documents above a fixed page
  ceiling are treated as scanned and get smaller parts.
- Parts are materialised lazily inside their own task.
- A capped number of parts is attempted per pass, concurrently, and one
  part's failure never cancels its siblings.
- If the first pass yields nothing, a single retry runs with half the pages
  per part and a larger (still bounded) part cap.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from ..config import settings
from ..core.tasks import gather_settled
from .structural import count_pages, run_with_deadline, slice_pages
from .tiers import TierChain, run_tiers

logger = logging.getLogger("docqa.split")


class PartFailedError(RuntimeError):
    """Raised inside a part task when no tier could extract the part."""


@dataclass(frozen=True)
class PageRange:
    """Zero-based, inclusive page range."""

    start: int
    end: int

    @property
    def page_count(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class SplitOutcome:
    text: str
    parts_total: int
    parts_attempted: int
    parts_succeeded: int
    pages_per_part: int
    note: Optional[str] = None


def pages_per_part(
    total_pages: int,
    text_native: Optional[int] = None,
    scanned: Optional[int] = None,
    scanned_ceiling: Optional[int] = None,
) -> int:
    """
    Choose the part size for a document of ``total_pages`` pages.
    """
    text_native = text_native or settings.split_pages_text_native
    scanned = scanned or settings.split_pages_scanned
    scanned_ceiling = scanned_ceiling or settings.scanned_page_ceiling

    if total_pages > scanned_ceiling:
        return max(1, scanned)
    return max(1, text_native)


def plan_parts(total_pages: int, per_part: int) -> List[PageRange]:
    """
    Partition pages ``[0, total_pages - 1]`` into contiguous ranges.

    Returns ``ceil(total_pages / per_part)`` ranges; the last may be shorter.
    """
    if per_part <= 0:
        raise ValueError("per_part must be positive")
    if total_pages <= 0:
        return []

    count = math.ceil(total_pages / per_part)
    return [
        PageRange(start=i * per_part, end=min((i + 1) * per_part, total_pages) - 1)
        for i in range(count)
    ]


class DocumentSplitter:
    """
    Extracts an oversized PDF part by part through a tier chain.
    """

    def __init__(
        self,
        chain: TierChain,
        part_timeout: Optional[float] = None,
        page_count_timeout: Optional[float] = None,
        max_parts_first_pass: Optional[int] = None,
        max_parts_retry: Optional[int] = None,
    ) -> None:
        self.chain = chain
        self.part_timeout = part_timeout or settings.part_timeout
        self.page_count_timeout = page_count_timeout or settings.page_count_timeout
        self.max_parts_first_pass = max_parts_first_pass or settings.max_parts_first_pass
        self.max_parts_retry = max_parts_retry or settings.max_parts_retry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def count_pages(self, content: bytes) -> Optional[int]:
        """
        Lightweight structural load for the page count; None on failure.
        """
        try:
            return await run_with_deadline(
                count_pages, content, timeout=self.page_count_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Page count exceeded %ss", self.page_count_timeout)
        except Exception as exc:
            logger.warning("Page count failed: %s: %s", type(exc).__name__, exc)
        return None

    async def extract(self, content: bytes, total_pages: int) -> SplitOutcome:
        """
        Extract ``content`` in parts, retrying once with denser parts if the
        first pass yields nothing.
        """
        per_part = pages_per_part(total_pages)
        outcome = await self._run_pass(content, total_pages, per_part, self.max_parts_first_pass)
        if outcome.parts_succeeded:
            return outcome

        denser = max(1, per_part // 2)
        logger.warning(
            "No parts succeeded at %d pages/part; retrying at %d pages/part",
            per_part,
            denser,
        )
        return await self._run_pass(content, total_pages, denser, self.max_parts_retry)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_pass(
        self,
        content: bytes,
        total_pages: int,
        per_part: int,
        max_parts: int,
    ) -> SplitOutcome:
        parts = plan_parts(total_pages, per_part)
        attempted = parts[:max_parts]

        logger.info(
            "Splitting %d pages into %d parts of %d pages; attempting %d",
            total_pages,
            len(parts),
            per_part,
            len(attempted),
        )

        settled = await gather_settled(
            [self._process_part(content, number, page_range)
             for number, page_range in enumerate(attempted, start=1)]
        )

        sections: List[str] = []
        for item in settled:
            if item.ok:
                sections.append(f"--- Part {item.index + 1} ---\n{item.value}")
            else:
                logger.warning(
                    "Part %d (pages %d-%d) failed: %s",
                    item.index + 1,
                    attempted[item.index].start + 1,
                    attempted[item.index].end + 1,
                    item.error,
                )

        note = None
        if len(attempted) < len(parts):
            note = f"Partial coverage: {len(attempted)} of {len(parts)} parts processed"

        text = "\n\n".join(sections)
        if text and note:
            text = f"{text}\n\n[{note}]"

        return SplitOutcome(
            text=text,
            parts_total=len(parts),
            parts_attempted=len(attempted),
            parts_succeeded=len(sections),
            pages_per_part=per_part,
            note=note if sections else None,
        )

    async def _process_part(self, content: bytes, number: int, page_range: PageRange) -> str:
        async def work() -> str:
            part = await asyncio.to_thread(
                slice_pages, content, page_range.start, page_range.end
            )
            _, result = await run_tiers(part, self.chain, label=f"part {number}")
            if not result.ok:
                raise PartFailedError(result.reason or "no text extracted")
            return result.text

        try:
            return await asyncio.wait_for(work(), timeout=self.part_timeout)
        except asyncio.TimeoutError as exc:
            raise PartFailedError(f"exceeded {self.part_timeout}s") from exc
