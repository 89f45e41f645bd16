import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from docintake.extraction.direct_text import DirectTextExtractor
from docintake.extraction.models import METHOD_DIRECT, METHOD_SUBPROCESS, ExtractionContext
from docintake.pdf.base import BasePdfExtractor, PdfText
from docintake.pdf.exceptions import PdfExtractionError
from docintake.pdf.pdfplumber_adapter import PdfPlumberAdapter


def _failing_extractor() -> MagicMock:
    extractor = MagicMock(spec=BasePdfExtractor)
    extractor.name = "pymupdf"
    extractor.extract.side_effect = PdfExtractionError("broken xref")
    return extractor


def _process(stdout: bytes, stderr: bytes = b"") -> MagicMock:
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=0)
    return process


class TestDirectTextExtractor:
    def test_can_handle_any_buffer(self) -> None:
        strategy = DirectTextExtractor(PdfPlumberAdapter())
        assert strategy.can_handle(ExtractionContext(buffer=b"%PDF", filename="a.pdf"))
        assert not strategy.can_handle(ExtractionContext(buffer=b"", filename="a.pdf"))

    @pytest.mark.asyncio
    async def test_extracts_text_layer(self, sample_pdf_bytes: bytes) -> None:
        strategy = DirectTextExtractor(PdfPlumberAdapter())
        result = await strategy.extract(
            ExtractionContext(buffer=sample_pdf_bytes, filename="factura.pdf")
        )
        assert result.success
        assert result.method == METHOD_DIRECT
        assert "Ascensores del Norte" in (result.text or "")
        assert result.pages == 1
        assert result.confidence == DirectTextExtractor.CONFIDENCE

    @pytest.mark.asyncio
    async def test_no_text_layer_fails(self, empty_pdf_bytes: bytes) -> None:
        strategy = DirectTextExtractor(PdfPlumberAdapter())
        result = await strategy.extract(
            ExtractionContext(buffer=empty_pdf_bytes, filename="scan.pdf")
        )
        assert not result.success
        assert result.error == "No text layer found"

    @pytest.mark.asyncio
    async def test_falls_back_to_subprocess(self) -> None:
        stdout = json.dumps({"success": True, "text": "recovered text", "pages": 3, "error": None})
        with patch(
            "docintake.extraction.direct_text.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=_process(stdout.encode())),
        ) as mock_exec:
            result = await DirectTextExtractor(_failing_extractor()).extract(
                ExtractionContext(buffer=b"%PDF-broken", filename="a.pdf")
            )
        assert result.success
        assert result.method == METHOD_SUBPROCESS
        assert result.text == "recovered text"
        assert result.pages == 3
        args = mock_exec.await_args.args
        assert args[1:3] == ("-m", "docintake.pdf.subprocess_extract")
        assert args[-2:] == ("--engine", "pymupdf")

    @pytest.mark.asyncio
    async def test_subprocess_garbage_output_fails(self) -> None:
        with patch(
            "docintake.extraction.direct_text.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=_process(b"Segmentation fault", b"core dumped")),
        ):
            result = await DirectTextExtractor(_failing_extractor()).extract(
                ExtractionContext(buffer=b"%PDF-broken", filename="a.pdf")
            )
        assert not result.success
        assert result.method == METHOD_SUBPROCESS
        assert "core dumped" in (result.error or "")

    @pytest.mark.asyncio
    async def test_subprocess_timeout_kills_process(self) -> None:
        async def hang() -> tuple[bytes, bytes]:
            await asyncio.sleep(10)
            return b"", b""

        process = _process(b"")
        process.communicate = hang
        with patch(
            "docintake.extraction.direct_text.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=process),
        ):
            result = await DirectTextExtractor(
                _failing_extractor(), subprocess_timeout_seconds=0.01
            ).extract(ExtractionContext(buffer=b"%PDF-broken", filename="a.pdf"))
        assert not result.success
        assert "timed out" in (result.error or "")
        process.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_in_process_success_does_not_spawn(self) -> None:
        extractor = MagicMock(spec=BasePdfExtractor)
        extractor.extract.return_value = PdfText(text="x" * 80, pages=1)
        with patch(
            "docintake.extraction.direct_text.asyncio.create_subprocess_exec", new=AsyncMock()
        ) as mock_exec:
            result = await DirectTextExtractor(extractor).extract(
                ExtractionContext(buffer=b"%PDF", filename="a.pdf")
            )
        assert result.success
        mock_exec.assert_not_awaited()
