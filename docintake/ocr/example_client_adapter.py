"""Example OCR client adapter.

Use this module as a reference when implementing new OCR providers.
Implement BaseOcrClient and register the provider in OcrClientFactory.
"""

from docintake.ocr.client_base import BaseOcrClient, OcrBatch


class ExampleOcrClientAdapter(BaseOcrClient):
    """Example adapter that serves pre-recorded page texts.

    No network calls. Pages beyond the recorded ones are reported as missing,
    which ends batching the same way a real provider does on the last page.
    """

    def __init__(self, pages: list[str] | None = None, confidence: float = 0.8) -> None:
        self._pages = pages if pages is not None else []
        self._confidence = confidence

    @property
    def is_configured(self) -> bool:
        return True

    async def detect_document_text(
        self, pdf_bytes: bytes, first_page: int, last_page: int
    ) -> OcrBatch:
        _ = pdf_bytes
        texts = self._pages[first_page - 1 : last_page]
        return OcrBatch(
            first_page=first_page,
            per_page_text=list(texts),
            confidence=[self._confidence] * len(texts),
        )
