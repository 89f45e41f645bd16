from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PdfText:
    """Text layer of a PDF together with its page count."""

    text: str
    pages: int


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    name: str = "base"

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract the embedded text layer from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfText with page texts joined by newlines and the page count.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
