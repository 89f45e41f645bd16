import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from docintake.database.repositories.documents_repository import DocumentsRepository
from docintake.registry.type_registry import TypeRegistry
from docintake.registry.vocabulary import DocumentTypeVocabulary
from docintake.resilience.retry import RetryPolicy

INVOICE_LINES = [
    "FACTURA N. 2024-0117",
    "Proveedor: Ascensores del Norte S.L.",
    "Cliente: Comunidad de Propietarios Calle Mayor 12",
    "Fecha: 15/03/2024",
    "Concepto: Mantenimiento trimestral del ascensor",
    "Subtotal: 1.000,00 EUR  IVA 21%: 210,00 EUR",
    "Importe total: 1.210,00 EUR",
]


def _pdf(pages: list[list[str]]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    for lines in pages:
        y = 780
        for line in lines:
            c.drawString(72, y, line)
            y -= 18
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a single-page invoice PDF with a text layer."""
    return _pdf([INVOICE_LINES])


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return _pdf([["Page one content"], ["Page two content"]])


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    return _pdf([[]])


@pytest.fixture()
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, initial_delay_seconds=0.0, max_delay_seconds=0.0)


@pytest.fixture(scope="session")
def type_registry() -> TypeRegistry:
    return TypeRegistry()


@pytest.fixture(scope="session")
def vocabulary() -> DocumentTypeVocabulary:
    return DocumentTypeVocabulary()


@pytest.fixture()
def documents_repo() -> MagicMock:
    repo = MagicMock(spec=DocumentsRepository)
    repo.update_status = AsyncMock()
    repo.reset_statuses = AsyncMock()
    repo.find_by_id = AsyncMock()
    return repo
