import math
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from docintake.config.settings import Settings
from docintake.ocr.example_client_adapter import ExampleOcrClientAdapter
from docintake.ocr.exceptions import (
    OcrPermissionDeniedError,
    OcrProviderError,
    OcrQuotaExceededError,
)
from docintake.ocr.factory import OcrClientFactory
from docintake.ocr.openai_vision_adapter import OpenAIVisionOcrAdapter


def _response(content: str, logprobs: list[float] | None = None) -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    if logprobs is None:
        choice.logprobs = None
    else:
        choice.logprobs.content = [MagicMock(logprob=value) for value in logprobs]
    response = MagicMock()
    response.choices = [choice]
    return response


def _adapter(mock_client: MagicMock, api_key: str = "k") -> OpenAIVisionOcrAdapter:
    adapter = OpenAIVisionOcrAdapter(api_key=api_key, model="m", timeout_seconds=30)
    adapter._client = mock_client
    return adapter


class TestExampleOcrClientAdapter:
    @pytest.mark.asyncio
    async def test_serves_requested_pages(self) -> None:
        client = ExampleOcrClientAdapter(["one", "two", "three"], confidence=0.7)
        batch = await client.detect_document_text(b"%PDF", 2, 5)
        assert batch.first_page == 2
        assert batch.per_page_text == ["two", "three"]
        assert batch.confidence == [0.7, 0.7]


class TestOpenAIVisionOcrAdapter:
    @pytest.mark.asyncio
    async def test_transcribes_each_page(self, multi_page_pdf_bytes: bytes) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=[_response("Page one", [0.0, 0.0]), _response("Page two")]
        )
        batch = await _adapter(mock_client).detect_document_text(multi_page_pdf_bytes, 1, 5)
        assert batch.per_page_text == ["Page one", "Page two"]
        assert batch.confidence == [1.0, OpenAIVisionOcrAdapter.DEFAULT_CONFIDENCE]

    def test_confidence_is_mean_token_probability(self) -> None:
        choice = _response("x", [math.log(0.5), math.log(0.5)]).choices[0]
        assert OpenAIVisionOcrAdapter._confidence(choice) == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_maps_rate_limit_to_quota_error(self, sample_pdf_bytes: bytes) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.RateLimitError("slow down", response=MagicMock(), body=None)
        )
        with pytest.raises(OcrQuotaExceededError):
            await _adapter(mock_client).detect_document_text(sample_pdf_bytes, 1, 1)

    @pytest.mark.asyncio
    async def test_invalid_pdf_is_provider_error(self) -> None:
        with pytest.raises(OcrProviderError):
            await _adapter(MagicMock()).detect_document_text(b"not a pdf", 1, 1)

    @pytest.mark.asyncio
    async def test_missing_credentials(self) -> None:
        adapter = _adapter(MagicMock(), api_key="")
        assert not adapter.is_configured
        with pytest.raises(OcrPermissionDeniedError):
            await adapter.detect_document_text(b"%PDF", 1, 1)


class TestOcrClientFactory:
    def test_example_provider(self) -> None:
        settings = MagicMock(ocr_provider="example")
        assert isinstance(OcrClientFactory.create(settings), ExampleOcrClientAdapter)

    def test_openai_provider(self) -> None:
        settings = MagicMock(
            ocr_provider="openai",
            ocr_api_key="k",
            ocr_model_name="m",
            ocr_timeout_seconds=30,
            ocr_render_dpi=100,
            ocr_base_url="",
        )
        assert isinstance(OcrClientFactory.create(settings), OpenAIVisionOcrAdapter)

    def test_default_settings_build_unconfigured_client(self) -> None:
        client = OcrClientFactory.create(Settings(_env_file=None, ocr_api_key=""))
        assert isinstance(client, OpenAIVisionOcrAdapter)
        assert not client.is_configured

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown OCR provider"):
            OcrClientFactory.create(MagicMock(ocr_provider="tesseract"))
