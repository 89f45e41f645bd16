"""Splits the text of one PDF into the logical documents it contains.

The text comes from the extraction orchestrator; a language model proposes
segments (type, line range, verbatim start and end markers). Each segment is
then cut from the source text:

* by markers, when both markers are found in order and each lies within
  ``marker_line_tolerance`` lines of the proposed line range. The fragment is
  the text strictly between the two markers;
* otherwise by joining the proposed line range, and the segment is flagged
  with ``FragmentResolution.LINE_RANGE``.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from docintake.boundaries.models import (
    AnalysisResult,
    DetectedDocumentSegment,
    FragmentResolution,
)
from docintake.extraction.models import ExtractionContext
from docintake.extraction.orchestrator import ExtractionOrchestrator
from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import LlmError, LlmResponseFormatError
from docintake.llm.json_parsing import parse_json_object
from docintake.llm.models import ModelConfig
from docintake.llm.prompt_loader import load_prompt_template
from docintake.logging.logger import Log
from docintake.metadata.agent import RETRYABLE_LLM_ERRORS
from docintake.registry.type_registry import TypeRegistry
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy, retry_async

UNKNOWN_TYPE = "unknown"
FALLBACK_CONFIDENCE = 0.1


@dataclass(frozen=True)
class ProposedSegment:
    """A segment as proposed by the model, before the text is cut."""

    document_type: str
    start_line: int
    end_line: int
    confidence: float
    suggested_title: str
    description: str = ""
    keywords: tuple[str, ...] = ()
    start_marker: str | None = None
    end_marker: str | None = None


@dataclass(frozen=True)
class ProposedAnalysis:
    is_multi_document: bool
    confidence: float
    segments: list[ProposedSegment] = field(default_factory=list)
    analysis_details: str = ""


def line_of(text: str, index: int) -> int:
    """1-based line number of a character index."""
    return text.count("\n", 0, index) + 1


def cut_line_range(lines: list[str], start_line: int, end_line: int) -> str:
    start = max(0, start_line - 1)
    end = min(len(lines) - 1, end_line - 1)
    return "\n".join(lines[start : end + 1])


def resolve_fragment(
    text: str,
    lines: list[str],
    segment: ProposedSegment,
    tolerance: int,
) -> tuple[str, FragmentResolution]:
    """Cut a segment's text by markers when they agree with its line range."""
    if segment.start_marker and segment.end_marker:
        start_index = text.find(segment.start_marker)
        if start_index != -1:
            content_start = start_index + len(segment.start_marker)
            end_index = text.find(segment.end_marker, content_start)
            if end_index != -1 and _within_range(
                text, start_index, end_index, segment, tolerance
            ):
                return text[content_start:end_index], FragmentResolution.MARKERS
    return (
        cut_line_range(lines, segment.start_line, segment.end_line),
        FragmentResolution.LINE_RANGE,
    )


def _within_range(
    text: str, start_index: int, end_index: int, segment: ProposedSegment, tolerance: int
) -> bool:
    low = segment.start_line - tolerance
    high = segment.end_line + tolerance
    return low <= line_of(text, start_index) <= high and low <= line_of(text, end_index) <= high


class MultiDocumentBoundaryDetector:
    def __init__(
        self,
        *,
        extraction: ExtractionOrchestrator,
        llm_client: BaseLlmClient,
        model_config: ModelConfig,
        type_registry: TypeRegistry,
        vocabulary: DocumentTypeVocabulary,
        max_chars: int = 750_000,
        marker_line_tolerance: int = 2,
        min_text_length: int = 50,
        max_pages: int = 5,
        retry_policy: RetryPolicy | None = None,
        prompt_template: str | None = None,
    ) -> None:
        self._extraction = extraction
        self._llm_client = llm_client
        self._model_config = model_config
        self._type_registry = type_registry
        self._vocabulary = vocabulary
        self._max_chars = max_chars
        self._marker_line_tolerance = marker_line_tolerance
        self._min_text_length = min_text_length
        self._max_pages = max_pages
        self._retry_policy = retry_policy or RetryPolicy()
        self._prompt_template = prompt_template or load_prompt_template("boundary_prompt.txt")

    async def analyze(self, buffer: bytes, filename: str) -> AnalysisResult:
        extraction = await self._extraction.extract(
            ExtractionContext(
                buffer=buffer,
                filename=filename,
                min_text_length=self._min_text_length,
                max_pages=self._max_pages,
            )
        )
        if not extraction.success or not extraction.text:
            Log.warning(f"Boundary analysis of {filename} has no text: {extraction.error}")
            return AnalysisResult(
                is_multi_document=False,
                confidence=0.0,
                segments=[],
                total_lines=0,
                extracted_text="",
                analysis_details=f"Text extraction failed: {extraction.error}",
                extraction_method=extraction.method,
                max_supported_length=self._max_chars,
            )

        text = extraction.text
        lines = text.split("\n")
        truncated = len(text) > self._max_chars
        if truncated:
            Log.warning(
                f"{filename}: {len(text)} chars exceeds {self._max_chars}, "
                "analyzing a truncated text"
            )

        proposal = await self._propose(text[: self._max_chars], len(lines), truncated, filename)
        segments = [self._resolve(segment, text, lines) for segment in proposal.segments]
        result = AnalysisResult(
            is_multi_document=proposal.is_multi_document,
            confidence=proposal.confidence,
            segments=segments,
            total_lines=len(lines),
            extracted_text=text,
            analysis_details=proposal.analysis_details,
            extraction_method=extraction.method,
            text_truncated=truncated,
            max_supported_length=self._max_chars,
        )
        Log.info(
            f"Boundary analysis of {filename}: {len(segments)} documents "
            f"({result.supported_documents} supported)"
        )
        return result

    async def _propose(
        self, text: str, total_lines: int, truncated: bool, filename: str
    ) -> ProposedAnalysis:
        prompt = self._prompt_template.format(
            supported_types=", ".join(self._type_registry.get_supported_types()),
            total_lines=total_lines,
            text_length=len(text),
            text=text,
            truncation_note="\n[TEXT TRUNCATED]" if truncated else "",
        )

        async def call() -> ProposedAnalysis:
            raw = await self._llm_client.generate(prompt, self._model_config)
            return self.parse_response(raw)

        try:
            return await retry_async(
                call,
                policy=self._retry_policy,
                retry_on=RETRYABLE_LLM_ERRORS,
                description=f"Boundary analysis of {filename}",
            )
        except LlmError as exc:
            Log.error(f"Boundary analysis of {filename} failed, treating as one document: {exc}")
            return ProposedAnalysis(
                is_multi_document=False,
                confidence=FALLBACK_CONFIDENCE,
                segments=[
                    ProposedSegment(
                        document_type=UNKNOWN_TYPE,
                        start_line=1,
                        end_line=max(1, total_lines),
                        confidence=FALLBACK_CONFIDENCE,
                        suggested_title="Unknown Document",
                        description="Boundary analysis unavailable",
                    )
                ],
                analysis_details=f"Boundary analysis failed: {exc}",
            )

    @classmethod
    def parse_response(cls, raw: str) -> ProposedAnalysis:
        """Validate the model's JSON answer.

        Raises:
            LlmResponseFormatError: if the answer lacks the required structure.
        """
        data = parse_json_object(raw)
        if not isinstance(data.get("isMultiDocument"), bool):
            raise LlmResponseFormatError("Invalid isMultiDocument field")
        documents = data.get("detectedDocuments")
        if not isinstance(documents, list):
            raise LlmResponseFormatError("Invalid detectedDocuments field")

        return ProposedAnalysis(
            is_multi_document=data["isMultiDocument"],
            confidence=_clamp(data.get("confidence")),
            segments=[cls._parse_segment(item) for item in documents if isinstance(item, dict)],
            analysis_details=str(data.get("analysisDetails") or "Analysis completed"),
        )

    @staticmethod
    def _parse_segment(item: dict[str, Any]) -> ProposedSegment:
        raw_type = item.get("type")
        document_type = raw_type.strip().lower() if isinstance(raw_type, str) and raw_type.strip() else UNKNOWN_TYPE
        start_line = _positive_int(item.get("startLine"), 1)
        end_line = max(start_line, _positive_int(item.get("endLine"), 1))
        keywords = item.get("keywords")
        return ProposedSegment(
            document_type=document_type,
            start_line=start_line,
            end_line=end_line,
            confidence=_clamp(item.get("confidence")),
            suggested_title=str(item.get("suggestedTitle") or f"{document_type} Document"),
            description=str(item.get("description") or ""),
            keywords=tuple(str(k) for k in keywords) if isinstance(keywords, list) else (),
            start_marker=_marker(item.get("startMarker")),
            end_marker=_marker(item.get("endMarker")),
        )

    def _resolve(
        self, segment: ProposedSegment, text: str, lines: list[str]
    ) -> DetectedDocumentSegment:
        fragment, resolution = resolve_fragment(
            text, lines, segment, self._marker_line_tolerance
        )
        if resolution is FragmentResolution.LINE_RANGE and segment.start_marker:
            Log.debug(
                f"Markers for '{segment.suggested_title}' not usable, "
                f"cut by lines {segment.start_line}-{segment.end_line}"
            )
        normalized = self._vocabulary.normalize(segment.document_type)
        supported = self._type_registry.is_supported(normalized)
        return DetectedDocumentSegment(
            document_type=normalized if supported else segment.document_type,
            start_line=segment.start_line,
            end_line=segment.end_line,
            confidence=segment.confidence,
            suggested_title=segment.suggested_title,
            start_marker=segment.start_marker,
            end_marker=segment.end_marker,
            description=segment.description,
            keywords=segment.keywords,
            text_fragment=fragment,
            resolution=resolution,
            is_supported_by_pipeline=supported,
        )


def _clamp(value: Any, default: float = 0.5) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and math.isnan(value):
        return default
    return max(0.0, min(1.0, float(value)))


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return max(1, int(value))


def _marker(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None
