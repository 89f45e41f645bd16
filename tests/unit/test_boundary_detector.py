import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from docintake.boundaries.detector import (
    FALLBACK_CONFIDENCE,
    UNKNOWN_TYPE,
    MultiDocumentBoundaryDetector,
    ProposedSegment,
    cut_line_range,
    line_of,
    resolve_fragment,
)
from docintake.boundaries.models import FragmentResolution
from docintake.extraction.models import METHOD_MANUAL_REVIEW, METHOD_OCR, ExtractionResult
from docintake.extraction.orchestrator import ExtractionOrchestrator
from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import LlmResponseFormatError
from docintake.llm.models import ModelConfig
from docintake.registry.type_registry import TypeRegistry
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy

SOURCE = "\n".join(
    [
        "--- Page 1 ---",
        "ACTA DE LA JUNTA ORDINARIA DE PROPIETARIOS",
        "Se aprueban las cuentas del ejercicio 2023.",
        "Fdo. El Secretario",
        "",
        "--- Page 2 ---",
        "FACTURA N. 2024-0117",
        "Proveedor: Ascensores del Norte S.L.",
        "Gracias por su confianza",
    ]
)

TWO_DOCUMENTS = {
    "isMultiDocument": True,
    "confidence": 0.9,
    "detectedDocuments": [
        {
            "type": "acta",
            "startLine": 1,
            "endLine": 5,
            "confidence": 0.9,
            "suggestedTitle": "Acta junta ordinaria",
            "keywords": ["junta"],
            "startMarker": "--- Page 1 ---",
            "endMarker": "--- Page 2 ---",
        },
        {
            "type": "Invoice",
            "startLine": 6,
            "endLine": 9,
            "confidence": 0.85,
            "suggestedTitle": "Factura 2024-0117",
            "startMarker": "--- Page 2 ---",
            "endMarker": "Gracias por su confianza",
        },
    ],
    "analysisDetails": "Split on page markers",
}

PROMPT = "{supported_types}|{total_lines}|{text_length}|{text}{truncation_note}"


def _extraction(result: ExtractionResult) -> MagicMock:
    extraction = MagicMock(spec=ExtractionOrchestrator)
    extraction.extract = AsyncMock(return_value=result)
    return extraction


def _ocr_result(text: str = SOURCE) -> ExtractionResult:
    return ExtractionResult(success=True, method=METHOD_OCR, text=text, confidence=0.8, pages=2)


def _client(*answers: object) -> MagicMock:
    client = MagicMock(spec=BaseLlmClient)
    client.is_configured = True
    client.generate = AsyncMock(side_effect=list(answers))
    return client


@pytest.fixture()
def make_detector(
    type_registry: TypeRegistry, vocabulary: DocumentTypeVocabulary, fast_retry: RetryPolicy
):
    def make(
        client: MagicMock, result: ExtractionResult | None = None, max_chars: int = 750_000
    ) -> MultiDocumentBoundaryDetector:
        return MultiDocumentBoundaryDetector(
            extraction=_extraction(result or _ocr_result()),
            llm_client=client,
            model_config=ModelConfig(),
            type_registry=type_registry,
            vocabulary=vocabulary,
            max_chars=max_chars,
            retry_policy=fast_retry,
            prompt_template=PROMPT,
        )

    return make


class TestLineHelpers:
    def test_line_of(self) -> None:
        assert line_of("a\nb\nc", 0) == 1
        assert line_of("a\nb\nc", 4) == 3

    def test_cut_line_range_clamps(self) -> None:
        lines = ["one", "two", "three"]
        assert cut_line_range(lines, 2, 3) == "two\nthree"
        assert cut_line_range(lines, 0, 99) == "one\ntwo\nthree"


class TestResolveFragment:
    def _segment(self, start: int, end: int, start_marker: str | None, end_marker: str | None):
        return ProposedSegment(
            document_type="acta",
            start_line=start,
            end_line=end,
            confidence=0.9,
            suggested_title="Acta",
            start_marker=start_marker,
            end_marker=end_marker,
        )

    def test_cut_between_markers(self) -> None:
        lines = SOURCE.split("\n")
        fragment, resolution = resolve_fragment(
            SOURCE, lines, self._segment(1, 5, "--- Page 1 ---", "--- Page 2 ---"), 2
        )
        assert resolution is FragmentResolution.MARKERS
        assert fragment.startswith("\nACTA DE LA JUNTA")
        assert fragment.endswith("Fdo. El Secretario\n\n")

    def test_marker_outside_tolerance_uses_line_range(self) -> None:
        lines = SOURCE.split("\n")
        fragment, resolution = resolve_fragment(
            SOURCE, lines, self._segment(1, 2, "--- Page 1 ---", "--- Page 2 ---"), 2
        )
        assert resolution is FragmentResolution.LINE_RANGE
        assert fragment == "--- Page 1 ---\nACTA DE LA JUNTA ORDINARIA DE PROPIETARIOS"

    def test_missing_marker_uses_line_range(self) -> None:
        lines = SOURCE.split("\n")
        fragment, resolution = resolve_fragment(
            SOURCE, lines, self._segment(7, 8, "NOT IN TEXT", "--- Page 2 ---"), 2
        )
        assert resolution is FragmentResolution.LINE_RANGE
        assert fragment == "FACTURA N. 2024-0117\nProveedor: Ascensores del Norte S.L."

    def test_end_marker_before_start_marker_is_ignored(self) -> None:
        lines = SOURCE.split("\n")
        _, resolution = resolve_fragment(
            SOURCE, lines, self._segment(6, 9, "--- Page 2 ---", "--- Page 1 ---"), 2
        )
        assert resolution is FragmentResolution.LINE_RANGE

    def test_no_markers(self) -> None:
        lines = SOURCE.split("\n")
        _, resolution = resolve_fragment(SOURCE, lines, self._segment(1, 3, None, None), 2)
        assert resolution is FragmentResolution.LINE_RANGE


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_two_documents_reconstruct_source(self, make_detector) -> None:
        result = await make_detector(_client(json.dumps(TWO_DOCUMENTS))).analyze(b"%PDF", "mixed.pdf")

        assert result.is_multi_document
        assert len(result.segments) == 2
        assert result.total_lines == 9
        assert result.extraction_method == METHOD_OCR
        first, second = result.segments
        assert first.resolution is FragmentResolution.MARKERS
        assert second.resolution is FragmentResolution.MARKERS
        rebuilt = (
            first.start_marker
            + first.text_fragment
            + second.start_marker
            + second.text_fragment
            + second.end_marker
        )
        assert rebuilt == SOURCE

    @pytest.mark.asyncio
    async def test_types_are_normalized_against_registry(self, make_detector) -> None:
        result = await make_detector(_client(json.dumps(TWO_DOCUMENTS))).analyze(b"%PDF", "mixed.pdf")
        assert [s.document_type for s in result.segments] == ["acta", "factura"]
        assert result.supported_documents == 2
        assert result.unsupported_documents == 0

    @pytest.mark.asyncio
    async def test_unsupported_label_is_kept(self, make_detector) -> None:
        answer = {
            "isMultiDocument": False,
            "confidence": 0.7,
            "detectedDocuments": [
                {"type": "Parte médico", "startLine": 1, "endLine": 9, "confidence": 0.6}
            ],
        }
        result = await make_detector(_client(json.dumps(answer))).analyze(b"%PDF", "parte.pdf")
        segment = result.segments[0]
        assert segment.document_type == "parte médico"
        assert not segment.is_supported_by_pipeline
        assert segment.suggested_title == "parte médico Document"
        assert result.analysis_details == "Analysis completed"
        assert result.unsupported_documents == 1

    @pytest.mark.asyncio
    async def test_invalid_answer_falls_back_to_single_unknown(self, make_detector) -> None:
        client = _client(*["not json"] * 3)
        result = await make_detector(client).analyze(b"%PDF", "mixed.pdf")

        assert not result.is_multi_document
        assert result.confidence == pytest.approx(FALLBACK_CONFIDENCE)
        assert len(result.segments) == 1
        segment = result.segments[0]
        assert segment.document_type == UNKNOWN_TYPE
        assert (segment.start_line, segment.end_line) == (1, 9)
        assert segment.text_fragment == SOURCE
        assert segment.suggested_title == "Unknown Document"

    @pytest.mark.asyncio
    async def test_extraction_failure_returns_no_segments(self, make_detector) -> None:
        failed = ExtractionResult(success=False, method=METHOD_MANUAL_REVIEW, error="too large")
        client = _client()
        result = await make_detector(client, failed).analyze(b"%PDF", "huge.pdf")

        assert result.segments == []
        assert result.total_lines == 0
        assert result.extraction_method == METHOD_MANUAL_REVIEW
        assert result.analysis_details == "Text extraction failed: too large"
        client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_long_text_is_truncated_for_the_model(self, make_detector) -> None:
        client = _client(json.dumps(TWO_DOCUMENTS))
        result = await make_detector(client, max_chars=40).analyze(b"%PDF", "mixed.pdf")

        assert result.text_truncated
        assert result.extracted_text == SOURCE
        prompt = client.generate.await_args.args[0]
        assert prompt.endswith("[TEXT TRUNCATED]")
        assert "|40|" in prompt

    @pytest.mark.asyncio
    async def test_to_dict_omits_text_by_default(self, make_detector) -> None:
        result = await make_detector(_client(json.dumps(TWO_DOCUMENTS))).analyze(b"%PDF", "mixed.pdf")
        data = result.to_dict()
        assert "extracted_text" not in data
        assert data["text_length"] == len(SOURCE)
        assert data["supported_documents"] == 2
        assert result.to_dict(include_text=True)["extracted_text"] == SOURCE


class TestParseResponse:
    def test_requires_multi_document_flag(self) -> None:
        with pytest.raises(LlmResponseFormatError):
            MultiDocumentBoundaryDetector.parse_response(json.dumps({"detectedDocuments": []}))

    def test_requires_document_list(self) -> None:
        raw = json.dumps({"isMultiDocument": True, "detectedDocuments": {"type": "acta"}})
        with pytest.raises(LlmResponseFormatError):
            MultiDocumentBoundaryDetector.parse_response(raw)

    def test_segment_defaults(self) -> None:
        raw = json.dumps(
            {
                "isMultiDocument": False,
                "confidence": 3,
                "detectedDocuments": [{"startLine": 4, "endLine": 2, "confidence": "high"}],
            }
        )
        proposal = MultiDocumentBoundaryDetector.parse_response(raw)
        assert proposal.confidence == 1.0
        segment = proposal.segments[0]
        assert segment.document_type == UNKNOWN_TYPE
        assert (segment.start_line, segment.end_line) == (4, 4)
        assert segment.confidence == 0.5
        assert segment.start_marker is None

    def test_non_finite_numbers_use_defaults(self) -> None:
        raw = (
            '{"isMultiDocument": false, "confidence": NaN, "detectedDocuments": '
            '[{"type": "acta", "startLine": NaN, "endLine": Infinity, "confidence": NaN}]}'
        )
        proposal = MultiDocumentBoundaryDetector.parse_response(raw)
        assert proposal.confidence == 0.5
        segment = proposal.segments[0]
        assert (segment.start_line, segment.end_line) == (1, 1)
        assert segment.confidence == 0.5

    def test_non_string_markers_are_dropped(self) -> None:
        raw = json.dumps(
            {
                "isMultiDocument": False,
                "detectedDocuments": [
                    {
                        "type": "acta",
                        "startLine": 1,
                        "endLine": 9,
                        "startMarker": 12345678901234567,
                        "endMarker": ["Fdo."],
                    }
                ],
            }
        )
        segment = MultiDocumentBoundaryDetector.parse_response(raw).segments[0]
        assert segment.start_marker is None
        assert segment.end_marker is None


class TestMalformedAnswers:
    @pytest.mark.asyncio
    async def test_numeric_marker_is_cut_by_line_range(self, make_detector) -> None:
        answer = {
            "isMultiDocument": False,
            "confidence": 0.8,
            "detectedDocuments": [
                {
                    "type": "acta",
                    "startLine": 2,
                    "endLine": 4,
                    "startMarker": 12345678901234567,
                    "endMarker": "Fdo. El Secretario",
                }
            ],
        }
        result = await make_detector(_client(json.dumps(answer))).analyze(b"%PDF", "acta.pdf")
        segment = result.segments[0]
        assert segment.resolution is FragmentResolution.LINE_RANGE
        assert segment.text_fragment.startswith("ACTA DE LA JUNTA")

    @pytest.mark.asyncio
    async def test_nan_line_numbers_do_not_raise(self, make_detector) -> None:
        answer = (
            '{"isMultiDocument": false, "confidence": 0.8, "detectedDocuments": '
            '[{"type": "acta", "startLine": NaN, "endLine": Infinity}]}'
        )
        result = await make_detector(_client(answer)).analyze(b"%PDF", "acta.pdf")
        segment = result.segments[0]
        assert (segment.start_line, segment.end_line) == (1, 1)
        assert segment.text_fragment == "--- Page 1 ---"
