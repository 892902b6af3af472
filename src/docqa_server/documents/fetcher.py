"""
Document Fetcher

Downloads a remote document into memory with a hard deadline and a size
limit. Both the declared ``Content-Length`` and the streamed byte count are
checked so oversized bodies are rejected without buffering them fully.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..config import settings
from ..core.errors import FetchError, PayloadTooLargeError, ValidationError
from .models import SourceDocument

logger = logging.getLogger("docqa.fetch")

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def is_http_url(value: str) -> bool:
    """Return True when ``value`` parses as an absolute http/https URL."""
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class DocumentFetcher:
    """
    Asynchronous HTTP downloader for source documents.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout or settings.fetch_timeout
        self.max_bytes = max_bytes or settings.max_document_bytes
        self._transport = transport

    async def fetch(self, url: str) -> SourceDocument:
        """
        Download ``url`` and return its bytes.

        Raises
        ------
        ValidationError
            If the URL is not http/https.
        PayloadTooLargeError
            If the body exceeds the size limit.
        FetchError
            On non-2xx responses, timeouts and transport failures.
        """
        if not is_http_url(url):
            raise ValidationError("Invalid URL format")

        # Transport-level retries cover connection failures only.
        transport = self._transport or httpx.AsyncHTTPTransport(retries=2)

        try:
            # httpx timeouts bound each operation; wait_for bounds the whole body.
            content = await asyncio.wait_for(
                self._download(url, transport), timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("Document download timed out: %s", url)
            raise FetchError("Document download timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Document download failed (%s): %s", type(exc).__name__, url
            )
            raise FetchError(
                f"Failed to download PDF: {type(exc).__name__}",
                details=str(exc),
            ) from exc

        logger.info("Downloaded %d bytes from %s", len(content), url)
        return SourceDocument(document_id=url, content=content)

    async def _download(self, url: str, transport: httpx.AsyncBaseTransport) -> bytes:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=transport,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            async with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise FetchError(
                        f"Failed to download PDF: {response.status_code} "
                        f"{response.reason_phrase}"
                    )

                self._check_declared_length(response)

                buffer = bytearray()
                async for piece in response.aiter_bytes():
                    buffer.extend(piece)
                    if len(buffer) > self.max_bytes:
                        raise PayloadTooLargeError("File size exceeds limit")

        return bytes(buffer)

    def _check_declared_length(self, response: httpx.Response) -> None:
        header = response.headers.get("content-length")
        if not header:
            return
        try:
            declared = int(header)
        except ValueError:
            return
        if declared > self.max_bytes:
            raise PayloadTooLargeError("File size exceeds limit")
