"""OCR through an OpenAI-compatible vision model.

Pages are rasterized locally with PyMuPDF and transcribed one request per page.
Per-page confidence is the mean token probability reported by the model
(``exp`` of the mean log-probability); providers that do not return
log-probabilities get ``DEFAULT_CONFIDENCE``.
"""

import asyncio
import base64
import math
from typing import Any

import httpx
import openai
import pymupdf

from docintake.ocr.client_base import BaseOcrClient, OcrBatch
from docintake.ocr.exceptions import (
    OcrPermissionDeniedError,
    OcrProviderError,
    OcrQuotaExceededError,
    OcrTimeoutError,
)


class OpenAIVisionOcrAdapter(BaseOcrClient):
    """Document text detection backed by a vision-capable chat model."""

    DEFAULT_CONFIDENCE = 0.8

    SYSTEM_PROMPT = (
        "You are an OCR engine. Transcribe every piece of text visible on the page "
        "image exactly as printed, preserving line breaks and reading order. "
        "Do not summarize, translate, or add commentary. "
        "If the page has no text, answer with an empty string."
    )

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        render_dpi: int = 150,
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._render_dpi = render_dpi
        self._base_url = base_url
        self._client: openai.AsyncOpenAI | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) and bool(self._model)

    async def detect_document_text(
        self, pdf_bytes: bytes, first_page: int, last_page: int
    ) -> OcrBatch:
        if not self.is_configured:
            raise OcrPermissionDeniedError("OCR provider credentials are not configured")

        images = await asyncio.to_thread(
            self._render_pages, pdf_bytes, first_page, last_page
        )
        if not images:
            return OcrBatch(first_page=first_page)

        try:
            pages = await asyncio.wait_for(
                asyncio.gather(*(self._transcribe(image) for image in images)),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise OcrTimeoutError(
                f"OCR batch {first_page}-{last_page} timed out after "
                f"{self._timeout_seconds}s"
            ) from exc

        return OcrBatch(
            first_page=first_page,
            per_page_text=[text for text, _ in pages],
            confidence=[confidence for _, confidence in pages],
        )

    def _sdk_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                timeout=self._timeout_seconds,
                base_url=self._base_url,
                max_retries=0,
            )
        return self._client

    def _render_pages(self, pdf_bytes: bytes, first_page: int, last_page: int) -> list[bytes]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                last = min(last_page, doc.page_count)
                return [
                    doc[number - 1].get_pixmap(dpi=self._render_dpi).tobytes("png")
                    for number in range(first_page, last + 1)
                ]
        except Exception as exc:
            raise OcrProviderError(f"Could not rasterize PDF pages: {exc}") from exc

    async def _transcribe(self, image: bytes) -> tuple[str, float]:
        encoded = base64.b64encode(image).decode("ascii")
        try:
            response = await self._sdk_client().chat.completions.create(
                model=self._model,
                temperature=0.0,
                logprobs=True,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": "Transcribe this page."},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:image/png;base64,{encoded}"},
                            },
                        ],
                    },
                ],
            )
        except openai.RateLimitError as exc:
            raise OcrQuotaExceededError(f"OCR quota exceeded: {exc}") from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise OcrPermissionDeniedError(f"OCR permission denied: {exc}") from exc
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise OcrTimeoutError(f"OCR request timed out: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise OcrProviderError(f"OCR provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise OcrProviderError(f"OCR provider API error: {exc}") from exc

        if not response.choices:
            raise OcrProviderError("OCR provider returned no choices")
        choice = response.choices[0]
        return (choice.message.content or "").strip(), self._confidence(choice)

    @classmethod
    def _confidence(cls, choice: Any) -> float:
        logprobs = getattr(choice, "logprobs", None)
        tokens = getattr(logprobs, "content", None) if logprobs is not None else None
        if not tokens:
            return cls.DEFAULT_CONFIDENCE
        mean_logprob = sum(token.logprob for token in tokens) / len(tokens)
        return max(0.0, min(1.0, math.exp(mean_logprob)))
