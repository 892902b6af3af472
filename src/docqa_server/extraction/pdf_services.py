"""
Remote Conversion / OCR Service Adapter

The extraction tiers consume a remote document service only through the
narrow ``ConversionService`` protocol:

- ``extract_text(content) -> str``: structured text extraction
- ``ocr(content) -> bytes``: produce a searchable PDF from a scanned one

``PdfServicesClient`` implements it against the Adobe PDF Services REST API
(OAuth client credentials, asset upload, asynchronous job submission,
polling, result download). The rest of the codebase never sees a
vendor-specific type.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
import time
import zipfile
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Protocol

import httpx

from ..config import settings

logger = logging.getLogger("docqa.extract")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class PdfServicesError(RuntimeError):
    """Raised when a conversion or OCR job fails."""


class PageLimitExceededError(PdfServicesError):
    """The service rejected the document for having too many pages."""


def is_page_limit_error(exc: BaseException) -> bool:
    """Detect a page-limit rejection from the error type or its message."""
    if isinstance(exc, PageLimitExceededError):
        return True
    message = str(exc).lower()
    return "page_limit" in message or "page limit" in message


# ---------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------

class ConversionService(Protocol):
    async def extract_text(self, content: bytes) -> str: ...

    async def ocr(self, content: bytes) -> bytes: ...


# ---------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------

class PdfServicesCredentials(NamedTuple):
    client_id: str
    client_secret: str


def resolve_pdf_services_credentials(
    credentials_file: Optional[str] = None,
) -> Optional[PdfServicesCredentials]:
    """
    Resolve the client credential pair.

    Environment (via settings) wins; otherwise the JSON credentials file
    ``{"client_credentials": {"client_id": ..., "client_secret": ...}}`` is
    consulted. Returns None when neither source is complete.
    """
    client_id = settings.pdf_services_client_id
    client_secret = settings.pdf_services_client_secret
    if client_id and client_secret:
        return PdfServicesCredentials(
            client_id=client_id.get_secret_value(),
            client_secret=client_secret.get_secret_value(),
        )

    path = Path(credentials_file or settings.pdf_services_credentials_file)
    if path.is_file():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            creds = data.get("client_credentials") or {}
            file_id = creds.get("client_id")
            file_secret = creds.get("client_secret")
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("Unreadable PDF Services credentials file %s: %s", path, exc)
        else:
            if file_id and file_secret:
                return PdfServicesCredentials(client_id=file_id, client_secret=file_secret)

    logger.warning(
        "PDF Services credentials not configured. Set PDF_SERVICES_CLIENT_ID and "
        "PDF_SERVICES_CLIENT_SECRET or provide %s",
        path,
    )
    return None


# ---------------------------------------------------------------------
# REST Client
# ---------------------------------------------------------------------

class PdfServicesClient:
    """
    Asynchronous client for the PDF Services extract and OCR operations.
    """

    def __init__(
        self,
        credentials: PdfServicesCredentials,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials = credentials
        self.base_url = (base_url or settings.pdf_services_base_url).rstrip("/")
        self.timeout = timeout or settings.pdf_services_timeout
        self.poll_interval = (
            settings.pdf_services_poll_interval if poll_interval is None else poll_interval
        )
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract_text(self, content: bytes) -> str:
        """
        Run an extract job and join every text-bearing element.
        """
        async with self._client() as client:
            headers = await self._auth_headers(client)
            asset_id = await self._upload(client, headers, content)
            status = await self._run_job(
                client,
                headers,
                "extractpdf",
                {"assetID": asset_id, "elementsToExtract": ["text"]},
            )
            resource = status.get("resource") or {}
            archive = await self._download(client, resource.get("downloadUri"))

        return _text_from_extract_archive(archive)

    async def ocr(self, content: bytes) -> bytes:
        """
        Run an OCR job and return the searchable PDF bytes.
        """
        async with self._client() as client:
            headers = await self._auth_headers(client)
            asset_id = await self._upload(client, headers, content)
            status = await self._run_job(client, headers, "ocr", {"assetID": asset_id})
            asset = status.get("asset") or {}
            return await self._download(client, asset.get("downloadUri"))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _auth_headers(self, client: httpx.AsyncClient) -> Dict[str, str]:
        resp = await client.post(
            f"{self.base_url}/token",
            data={
                "client_id": self.credentials.client_id,
                "client_secret": self.credentials.client_secret,
            },
        )
        _raise_for_status(resp, "token")
        token = resp.json().get("access_token")
        if not token:
            raise PdfServicesError("Token response missing 'access_token'.")
        return {
            "Authorization": f"Bearer {token}",
            "X-API-Key": self.credentials.client_id,
        }

    async def _upload(
        self,
        client: httpx.AsyncClient,
        headers: Dict[str, str],
        content: bytes,
    ) -> str:
        resp = await client.post(
            f"{self.base_url}/assets",
            json={"mediaType": "application/pdf"},
            headers=headers,
        )
        _raise_for_status(resp, "asset creation")
        data = resp.json()
        upload_uri = data.get("uploadUri")
        asset_id = data.get("assetID")
        if not upload_uri or not asset_id:
            raise PdfServicesError("Asset response missing 'uploadUri' or 'assetID'.")

        put = await client.put(
            upload_uri,
            content=content,
            headers={"Content-Type": "application/pdf"},
        )
        _raise_for_status(put, "asset upload")
        return asset_id

    async def _run_job(
        self,
        client: httpx.AsyncClient,
        headers: Dict[str, str],
        operation: str,
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        resp = await client.post(
            f"{self.base_url}/operation/{operation}",
            json=payload,
            headers=headers,
        )
        _raise_for_status(resp, f"{operation} submission")
        polling_url = resp.headers.get("location")
        if not polling_url:
            raise PdfServicesError(f"{operation} submission returned no polling location.")

        deadline = time.monotonic() + self.timeout
        while True:
            poll = await client.get(polling_url, headers=headers)
            _raise_for_status(poll, f"{operation} status")
            status = poll.json()
            state = str(status.get("status", "")).lower()

            if state == "done":
                return status
            if state == "failed":
                error = status.get("error") or {}
                message = f"{operation} job failed: {error.get('code', '')} {error.get('message', '')}".strip()
                if is_page_limit_error(PdfServicesError(message)):
                    raise PageLimitExceededError(message)
                raise PdfServicesError(message)

            if time.monotonic() >= deadline:
                raise PdfServicesError(f"{operation} job did not finish in {self.timeout}s")
            await asyncio.sleep(self.poll_interval)

    async def _download(self, client: httpx.AsyncClient, uri: Optional[str]) -> bytes:
        if not uri:
            raise PdfServicesError("Job result missing 'downloadUri'.")
        resp = await client.get(uri)
        _raise_for_status(resp, "result download")
        return resp.content


def _raise_for_status(resp: httpx.Response, stage: str) -> None:
    if resp.status_code < 400:
        return
    body = resp.text[:500]
    message = f"PDF Services {stage} failed: {resp.status_code} {body}"
    if is_page_limit_error(PdfServicesError(body)):
        raise PageLimitExceededError(message)
    raise PdfServicesError(message)


def _text_from_extract_archive(archive: bytes) -> str:
    """
    Unpack an extract result zip and join the ``Text`` of every element in
    its JSON member.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as bundle:
            for name in bundle.namelist():
                if not name.endswith(".json"):
                    continue
                data = json.loads(bundle.read(name).decode("utf-8"))
                elements = data.get("elements") or []
                return " ".join(
                    el["Text"] for el in elements if isinstance(el, dict) and el.get("Text")
                )
    except (zipfile.BadZipFile, ValueError) as exc:
        raise PdfServicesError(f"Malformed extract result: {type(exc).__name__}") from exc
    return ""
