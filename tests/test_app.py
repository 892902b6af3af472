"""
Application Wiring Tests

Lifespan configuration checks, the error payload contract and request
model validation.
"""

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import SecretStr, ValidationError as PydanticValidationError

from docqa_server.api.models import ExtractRequest, QARequest
from docqa_server.core.errors import (
    ChunkingError,
    EmbeddingServiceError,
    EmptyDocumentError,
    FetchError,
    PayloadTooLargeError,
    RetrievalError,
    StoreAdapterError,
    SynthesisError,
    ValidationError,
)
from docqa_server.main import create_app, lifespan


class TestLifespan:
    @pytest.mark.asyncio
    async def test_missing_openai_key_is_fatal(self):
        with patch("docqa_server.main.settings") as mock:
            mock.openai_api_key = None

            with pytest.raises(RuntimeError):
                async with lifespan(create_app()):
                    pass

    @pytest.mark.asyncio
    async def test_shutdown_releases_resources(self):
        engine = AsyncMock()
        with patch("docqa_server.main.settings") as mock, \
                patch("docqa_server.main.async_engine", engine):
            mock.openai_api_key = SecretStr("sk-test")

            async with lifespan(create_app()):
                pass

        engine.dispose.assert_awaited_once()


class TestErrorPayloads:
    @pytest.mark.parametrize(
        "error_cls,status",
        [
            (ValidationError, 400),
            (ChunkingError, 400),
            (FetchError, 502),
            (PayloadTooLargeError, 413),
            (EmptyDocumentError, 422),
            (EmbeddingServiceError, 502),
            (RetrievalError, 500),
            (SynthesisError, 502),
            (StoreAdapterError, 500),
        ],
    )
    def test_status_codes(self, error_cls, status):
        assert error_cls("boom").status_code == status

    def test_payload_omits_empty_details(self):
        assert FetchError("Failed").to_payload() == {"error": "Failed"}
        assert FetchError("Failed", details="timeout").to_payload() == {
            "error": "Failed",
            "details": "timeout",
        }


class TestRequestModels:
    def test_qa_request(self):
        req = QARequest(documents="https://x.example.com/a.pdf", questions=["q"])
        assert req.questions == ["q"]

    @pytest.mark.parametrize("documents", ["not a url", "file:///etc/passwd", "https://"])
    def test_qa_request_rejects_non_http(self, documents):
        with pytest.raises(PydanticValidationError):
            QARequest(documents=documents, questions=["q"])

    def test_extract_request_url_precedence(self):
        req = ExtractRequest(pdfUrl="https://b.example.com", documents="https://c.example.com")
        assert req.resolved_url == "https://b.example.com"

    def test_extract_request_requires_a_url(self):
        with pytest.raises(PydanticValidationError):
            ExtractRequest()
