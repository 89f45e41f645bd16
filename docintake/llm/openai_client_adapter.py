import asyncio
import base64
from typing import Any

import httpx
import openai

from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import (
    LlmConfigurationError,
    LlmEmptyResponseError,
    LlmProviderError,
    LlmTimeoutError,
)
from docintake.llm.models import ModelConfig, PdfAttachment


class OpenAIClientAdapter(BaseLlmClient):
    """Language-model client built on the OpenAI-compatible chat API."""

    KEYLESS_PLACEHOLDER_KEY = "not-needed"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        require_api_key: bool = True,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._base_url = base_url
        self._require_api_key = require_api_key
        self._client: openai.AsyncOpenAI | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._model) and (bool(self._api_key) or not self._require_api_key)

    async def generate(
        self,
        prompt: str,
        config: ModelConfig,
        *,
        system_prompt: str = "",
        json_output: bool = True,
        attachment: PdfAttachment | None = None,
    ) -> str:
        if not self.is_configured:
            raise LlmConfigurationError("LLM provider credentials are not configured")

        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": self._user_content(prompt, attachment)})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "messages": messages,
        }
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await asyncio.wait_for(
                self._sdk_client().chat.completions.create(**kwargs),
                timeout=config.timeout_seconds,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise LlmTimeoutError(
                f"AI provider timed out after {config.timeout_seconds}s"
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise LlmProviderError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise LlmProviderError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise LlmEmptyResponseError("AI returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise LlmEmptyResponseError("AI returned empty response")
        return content

    def _sdk_client(self) -> openai.AsyncOpenAI:
        """Create the SDK client on first use; the SDK rejects an empty key."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key or self.KEYLESS_PLACEHOLDER_KEY,
                timeout=self._timeout_seconds,
                base_url=self._base_url,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def _user_content(
        prompt: str, attachment: PdfAttachment | None
    ) -> str | list[dict[str, Any]]:
        if attachment is None:
            return prompt
        encoded = base64.b64encode(attachment.data).decode("ascii")
        return [
            {
                "type": "file",
                "file": {
                    "filename": attachment.filename,
                    "file_data": f"data:application/pdf;base64,{encoded}",
                },
            },
            {"type": "text", "text": prompt},
        ]
