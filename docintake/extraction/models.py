from dataclasses import dataclass, field
from typing import Any

METHOD_DIRECT = "pdf-text-direct"
METHOD_SUBPROCESS = "pdf-text-subprocess"
METHOD_OCR = "ocr"
METHOD_ALL_IN_ONE = "multimodal-all-in-one"
METHOD_MANUAL_REVIEW = "manual-review-required"
METHOD_ALL_FAILED = "all-strategies-failed"


@dataclass(frozen=True)
class ExtractionContext:
    """Input shared by every strategy attempt for one document."""

    buffer: bytes
    filename: str
    document_id: str | None = None
    min_text_length: int = 50
    max_pages: int = 5


@dataclass
class ExtractionResult:
    """Outcome of one extraction attempt."""

    success: bool
    method: str
    text: str | None = None
    confidence: float = 0.0
    pages: int = 0
    error: str | None = None
    all_in_one_complete: bool = False
    document_type: str | None = None
    extracted_metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.success and not self.text:
            raise ValueError("A successful extraction result must carry non-empty text")
        self.confidence = max(0.0, min(1.0, self.confidence))

    @property
    def text_length(self) -> int:
        return len(self.text) if self.text else 0

    def is_sufficient(self, min_text_length: int) -> bool:
        return self.success and self.text_length >= min_text_length
