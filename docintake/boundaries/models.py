from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class FragmentResolution(str, Enum):
    """How a segment's text was cut from the source."""

    MARKERS = "markers"
    LINE_RANGE = "line-range"


@dataclass(frozen=True)
class DetectedDocumentSegment:
    document_type: str
    start_line: int
    end_line: int
    confidence: float
    suggested_title: str
    start_marker: str | None = None
    end_marker: str | None = None
    description: str = ""
    keywords: tuple[str, ...] = field(default_factory=tuple)
    text_fragment: str = ""
    resolution: FragmentResolution = FragmentResolution.LINE_RANGE
    is_supported_by_pipeline: bool = False


@dataclass(frozen=True)
class AnalysisResult:
    is_multi_document: bool
    confidence: float
    segments: list[DetectedDocumentSegment]
    total_lines: int
    extracted_text: str
    analysis_details: str
    extraction_method: str
    text_truncated: bool = False
    max_supported_length: int = 750_000

    @property
    def text_length(self) -> int:
        return len(self.extracted_text)

    @property
    def supported_documents(self) -> int:
        return sum(1 for segment in self.segments if segment.is_supported_by_pipeline)

    @property
    def unsupported_documents(self) -> int:
        return len(self.segments) - self.supported_documents

    def to_dict(self, include_text: bool = False) -> dict[str, Any]:
        data = asdict(self)
        if not include_text:
            data.pop("extracted_text")
        data["text_length"] = self.text_length
        data["supported_documents"] = self.supported_documents
        data["unsupported_documents"] = self.unsupported_documents
        return data
