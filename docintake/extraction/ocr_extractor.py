from functools import partial

from docintake.extraction.base import BaseExtractionStrategy
from docintake.extraction.models import METHOD_OCR, ExtractionContext, ExtractionResult
from docintake.logging.logger import Log
from docintake.ocr.client_base import BaseOcrClient
from docintake.ocr.exceptions import (
    OcrError,
    OcrPermissionDeniedError,
    OcrProviderError,
    OcrQuotaExceededError,
)
from docintake.resilience.retry import RetryPolicy, retry_async


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


class OpticalCharacterExtractor(BaseExtractionStrategy):
    """OCR for scanned documents, requested in bounded page batches.

    Each page's text is prefixed with ``--- Page N ---`` so later stages can
    use page breaks as document boundaries.
    """

    name = METHOD_OCR
    priority = 2

    def __init__(
        self,
        client: BaseOcrClient,
        *,
        pages_per_batch: int = 5,
        max_pages: int = 50,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._pages_per_batch = max(1, pages_per_batch)
        self._max_pages = max_pages
        self._retry_policy = retry_policy or RetryPolicy()

    def can_handle(self, context: ExtractionContext) -> bool:
        return bool(context.buffer) and self._client.is_configured

    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        texts: list[str] = []
        confidences: list[float] = []
        first_page = 1
        try:
            while first_page <= self._max_pages:
                last_page = min(first_page + self._pages_per_batch - 1, self._max_pages)
                batch = await retry_async(
                    partial(
                        self._client.detect_document_text, context.buffer, first_page, last_page
                    ),
                    policy=self._retry_policy,
                    retry_on=(OcrProviderError, OcrQuotaExceededError),
                    description=f"OCR pages {first_page}-{last_page} of {context.filename}",
                )
                texts.extend(batch.per_page_text)
                confidences.extend(batch.confidence)
                Log.debug(
                    f"OCR batch {first_page}-{last_page} of {context.filename}: "
                    f"{len(batch.per_page_text)} pages"
                )
                if len(batch.per_page_text) < last_page - first_page + 1:
                    break
                first_page = last_page + 1
        except OcrPermissionDeniedError as exc:
            return self.failure(f"OCR credentials rejected: {exc}")
        except OcrError as exc:
            return self.failure(f"OCR failed: {exc}")

        if not any(text.strip() for text in texts):
            return ExtractionResult(
                success=False, method=METHOD_OCR, pages=len(texts), error="OCR found no text"
            )

        text = "\n\n".join(
            f"{page_marker(number)}\n{page_text.strip()}"
            for number, page_text in enumerate(texts, start=1)
        )
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return ExtractionResult(
            success=True,
            method=METHOD_OCR,
            text=text,
            confidence=confidence,
            pages=len(texts),
        )
