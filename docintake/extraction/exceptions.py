from docintake.extraction.models import ExtractionResult


class ExtractionError(Exception):
    """Base exception for text extraction."""


class ExtractionFailedError(ExtractionError):
    """Raised when no strategy produced usable text for a document."""

    def __init__(self, result: ExtractionResult) -> None:
        super().__init__(f"Extraction failed ({result.method}): {result.error}")
        self.result = result
