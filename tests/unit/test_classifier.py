import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from docintake.classification.classifier import UNKNOWN_TYPE, DocumentClassifier
from docintake.classification.models import ClassificationMethod
from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import LlmProviderError
from docintake.registry.type_registry import TypeRegistry
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy

INVOICE_TEXT = (
    "Factura emitida por el proveedor al cliente con importe, IVA y subtotal. "
    "Factura rectificativa: proveedor, cliente, importe, IVA y subtotal revisados. "
    "Referencia interna del documento emitido en marzo, revisada en junta por el presidente."
)


def _client(*answers: object, configured: bool = True) -> MagicMock:
    client = MagicMock(spec=BaseLlmClient)
    client.is_configured = configured
    client.generate = AsyncMock(side_effect=list(answers))
    return client


@pytest.fixture()
def make_classifier(
    type_registry: TypeRegistry, vocabulary: DocumentTypeVocabulary, fast_retry: RetryPolicy
):
    def make(client: MagicMock | None = None) -> DocumentClassifier:
        return DocumentClassifier(
            type_registry=type_registry,
            vocabulary=vocabulary,
            llm_client=client,
            retry_policy=fast_retry,
            prompt_template="{supported_types}|{filename}|{full_text_length}|{text_preview}",
        )

    return make


class TestFilenameTier:
    @pytest.mark.asyncio
    async def test_filename_match_wins(self, make_classifier) -> None:
        client = _client()
        result = await make_classifier(client).classify("Factura_2024_0117.pdf", INVOICE_TEXT)
        assert result.document_type == "factura"
        assert result.method is ClassificationMethod.FILENAME
        assert result.confidence >= 0.9
        assert not result.fallback_used
        client.generate.assert_not_awaited()

    def test_accented_filename(self, make_classifier) -> None:
        result = make_classifier().classify_by_filename("ALBARÁN entrega 12.pdf")
        assert result.document_type == "albaran"

    def test_no_pattern(self, make_classifier) -> None:
        result = make_classifier().classify_by_filename("scan_0001.pdf")
        assert result.document_type == UNKNOWN_TYPE
        assert result.confidence == pytest.approx(0.3)


class TestTextTier:
    @pytest.mark.asyncio
    async def test_keyword_scoring_picks_dominant_type(self, make_classifier) -> None:
        result = await make_classifier().classify("scan_0001.pdf", INVOICE_TEXT)
        assert result.document_type == "factura"
        assert result.method is ClassificationMethod.TEXT_ANALYSIS
        assert result.confidence >= 0.8

    @pytest.mark.asyncio
    async def test_ten_strong_keywords_beat_two(self, make_classifier) -> None:
        text = "escritura " * 10 + "presupuesto " * 2
        result = await make_classifier().classify("scan_0001.pdf", text)
        assert result.document_type == "escritura"
        assert result.method is ClassificationMethod.TEXT_ANALYSIS

    def test_confidence_is_capped(self, make_classifier) -> None:
        result = make_classifier().classify_by_text(INVOICE_TEXT * 5)
        assert result.confidence == pytest.approx(0.95)

    def test_no_keywords(self, make_classifier) -> None:
        result = make_classifier().classify_by_text("lorem ipsum dolor sit amet " * 10)
        assert result.document_type == UNKNOWN_TYPE
        assert result.confidence == 0.0

    @pytest.mark.asyncio
    async def test_short_text_skips_text_tier(self, make_classifier) -> None:
        result = await make_classifier().classify("scan_0001.pdf", "factura iva importe")
        assert result.method is ClassificationMethod.FILENAME
        assert result.fallback_used


class TestAiTier:
    @pytest.mark.asyncio
    async def test_ai_answer_is_normalized(self, make_classifier) -> None:
        client = _client(json.dumps({"document_type": "Invoice", "confidence": 0.85}))
        result = await make_classifier(client).classify("scan_0001.pdf", "short text")
        assert result.document_type == "factura"
        assert result.method is ClassificationMethod.AI_AGENT
        assert result.confidence == pytest.approx(0.85)
        prompt = client.generate.await_args.args[0]
        assert "scan_0001.pdf" in prompt
        assert "factura" in prompt

    @pytest.mark.asyncio
    async def test_low_confidence_uses_best_attempt(self, make_classifier) -> None:
        client = _client(json.dumps({"document_type": "contrato", "confidence": 0.5}))
        result = await make_classifier(client).classify("scan_0001.pdf", None)
        assert result.document_type == "contrato"
        assert result.fallback_used

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back_to_unknown(self, make_classifier) -> None:
        client = _client(*[LlmProviderError("boom")] * 3)
        result = await make_classifier(client).classify("scan_0001.pdf", None)
        assert result.document_type == UNKNOWN_TYPE
        assert result.confidence == pytest.approx(0.3)
        assert result.fallback_used
        assert client.generate.await_count == 3

    @pytest.mark.asyncio
    async def test_ai_failure_result(self, make_classifier) -> None:
        client = _client(*[LlmProviderError("boom")] * 3)
        result = await make_classifier(client).classify_with_ai("text", "scan.pdf")
        assert result.method is ClassificationMethod.AI_AGENT
        assert result.confidence == pytest.approx(0.3)

    @pytest.mark.asyncio
    async def test_missing_type_in_answer(self, make_classifier) -> None:
        client = _client(json.dumps({"confidence": 0.9}))
        result = await make_classifier(client).classify_with_ai("text", "scan.pdf")
        assert result.document_type == UNKNOWN_TYPE
        assert result.confidence == pytest.approx(0.4)

    @pytest.mark.asyncio
    async def test_unconfigured_client_is_skipped(self, make_classifier) -> None:
        client = _client(configured=False)
        result = await make_classifier(client).classify("scan_0001.pdf", None)
        client.generate.assert_not_awaited()
        assert result.method is ClassificationMethod.FILENAME

    @pytest.mark.asyncio
    async def test_use_ai_false(self, make_classifier) -> None:
        client = _client()
        await make_classifier(client).classify("scan_0001.pdf", None, use_ai=False)
        client.generate.assert_not_awaited()
