"""Text-layer extraction for PDFs with embedded text.

Parsing runs in a worker thread. When the in-process parser fails, the same
engine is run in an isolated interpreter
(``python -m docintake.pdf.subprocess_extract``) under a hard wall-clock
timeout, and its JSON answer is used instead.
"""

import asyncio
import json
import sys
import tempfile
from pathlib import Path

from docintake.extraction.base import BaseExtractionStrategy
from docintake.extraction.models import (
    METHOD_DIRECT,
    METHOD_SUBPROCESS,
    ExtractionContext,
    ExtractionResult,
)
from docintake.logging.logger import Log
from docintake.pdf.base import BasePdfExtractor
from docintake.pdf.exceptions import PdfExtractionError


class DirectTextExtractor(BaseExtractionStrategy):
    name = METHOD_DIRECT
    priority = 1

    CONFIDENCE = 0.95

    def __init__(
        self,
        pdf_extractor: BasePdfExtractor,
        *,
        subprocess_timeout_seconds: float = 30.0,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._subprocess_timeout_seconds = subprocess_timeout_seconds

    def can_handle(self, context: ExtractionContext) -> bool:
        return bool(context.buffer)

    async def extract(self, context: ExtractionContext) -> ExtractionResult:
        try:
            pdf_text = await asyncio.to_thread(self._pdf_extractor.extract, context.buffer)
        except PdfExtractionError as exc:
            Log.warning(
                f"In-process parse of {context.filename} failed ({exc}), "
                "retrying in a subprocess"
            )
            return await self._extract_in_subprocess(context)

        if not pdf_text.text.strip():
            return ExtractionResult(
                success=False,
                method=METHOD_DIRECT,
                pages=pdf_text.pages,
                error="No text layer found",
            )
        return ExtractionResult(
            success=True,
            method=METHOD_DIRECT,
            text=pdf_text.text,
            confidence=self.CONFIDENCE,
            pages=pdf_text.pages,
        )

    async def _extract_in_subprocess(self, context: ExtractionContext) -> ExtractionResult:
        with tempfile.TemporaryDirectory(prefix="docintake-") as tmp_dir:
            pdf_path = Path(tmp_dir) / "input.pdf"
            await asyncio.to_thread(pdf_path.write_bytes, context.buffer)
            try:
                process = await asyncio.create_subprocess_exec(
                    sys.executable,
                    "-m",
                    "docintake.pdf.subprocess_extract",
                    str(pdf_path),
                    "--engine",
                    self._pdf_extractor.name,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                return self.failure(f"Could not start extraction subprocess: {exc}", METHOD_SUBPROCESS)

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self._subprocess_timeout_seconds
                )
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                return self.failure(
                    f"Extraction subprocess timed out after {self._subprocess_timeout_seconds}s",
                    METHOD_SUBPROCESS,
                )

        return self._parse_subprocess_output(stdout, stderr)

    def _parse_subprocess_output(self, stdout: bytes, stderr: bytes) -> ExtractionResult:
        try:
            payload = json.loads(stdout.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            detail = stderr.decode("utf-8", errors="replace").strip()[-500:]
            return self.failure(
                f"Extraction subprocess returned no JSON: {detail or 'empty output'}",
                METHOD_SUBPROCESS,
            )

        if not isinstance(payload, dict):
            return self.failure("Extraction subprocess returned a non-object answer", METHOD_SUBPROCESS)

        text = payload.get("text")
        pages = payload.get("pages")
        if not payload.get("success") or not isinstance(text, str) or not text.strip():
            return ExtractionResult(
                success=False,
                method=METHOD_SUBPROCESS,
                pages=pages if isinstance(pages, int) else 0,
                error=str(payload.get("error") or "No text layer found"),
            )
        return ExtractionResult(
            success=True,
            method=METHOD_SUBPROCESS,
            text=text,
            confidence=self.CONFIDENCE,
            pages=pages if isinstance(pages, int) else 0,
        )
