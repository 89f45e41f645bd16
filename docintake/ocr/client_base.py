from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class OcrBatch:
    """Text detected on a contiguous run of pages.

    ``per_page_text[i]`` and ``confidence[i]`` belong to page ``first_page + i``.
    A batch shorter than requested means the document has no further pages.
    """

    first_page: int
    per_page_text: list[str] = field(default_factory=list)
    confidence: list[float] = field(default_factory=list)


class BaseOcrClient(ABC):
    """Contract for document-level OCR providers."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether provider credentials are available."""

    @abstractmethod
    async def detect_document_text(
        self, pdf_bytes: bytes, first_page: int, last_page: int
    ) -> OcrBatch:
        """Detect text on pages ``first_page..last_page`` (1-based, inclusive).

        Raises:
            OcrQuotaExceededError: on rate or quota limits.
            OcrPermissionDeniedError: on missing or rejected credentials.
            OcrProviderError: on network errors, timeouts or malformed responses.
        """
