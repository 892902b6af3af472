"""
Structural PDF Parsing

Thin pypdf helpers used by the extraction tiers and the splitter. All
functions here are synchronous and CPU-bound; callers run them in a worker
thread under a deadline (see ``run_with_deadline``).
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Callable, List, TypeVar

from pypdf import PdfReader, PdfWriter

logger = logging.getLogger("docqa.extract")

T = TypeVar("T")


class EncryptedDocumentError(RuntimeError):
    """Raised when a PDF is encrypted and cannot be opened without a password."""


class NoPagesError(RuntimeError):
    """Raised when a PDF parses but contains no pages."""


def _open(content: bytes) -> PdfReader:
    reader = PdfReader(io.BytesIO(content))
    if reader.is_encrypted:
        # Many "encrypted" PDFs only restrict permissions and open with "".
        try:
            opened = reader.decrypt("")
        except Exception as exc:
            raise EncryptedDocumentError("PDF is password protected") from exc
        if not opened:
            raise EncryptedDocumentError("PDF is password protected")
    return reader


def extract_pages_text(content: bytes) -> List[str]:
    """
    Walk the document's pages in order and return each page's text.
    """
    reader = _open(content)
    if len(reader.pages) == 0:
        raise NoPagesError("PDF has no pages")

    pages: List[str] = []
    for page in reader.pages:
        pages.append(page.extract_text() or "")
    return pages


def extract_text(content: bytes) -> str:
    """Concatenate every page's text, one page per line block."""
    return "\n".join(extract_pages_text(content)).strip()


def count_pages(content: bytes) -> int:
    """Return the number of pages without extracting any text."""
    return len(_open(content).pages)


def slice_pages(content: bytes, start: int, end: int) -> bytes:
    """
    Build a new PDF holding pages ``start``..``end`` (inclusive, zero-based).
    """
    reader = _open(content)
    writer = PdfWriter()
    for number in range(start, min(end, len(reader.pages) - 1) + 1):
        writer.add_page(reader.pages[number])

    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


async def run_with_deadline(func: Callable[..., T], *args, timeout: float) -> T:
    """
    Run a blocking pypdf call in a worker thread with a hard deadline.

    On timeout the awaiting coroutine gives up with ``asyncio.TimeoutError``;
    the worker thread is abandoned and finishes in the background.
    """
    return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
