"""Example language-model client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseLlmClient and register the provider in LlmClientFactory.
"""

import json
from typing import ClassVar

from docintake.llm.client_base import BaseLlmClient
from docintake.llm.models import ModelConfig, PdfAttachment


class ExampleClientAdapter(BaseLlmClient):
    """Example adapter that returns a fixed JSON answer.

    No network calls. Useful for local development and tests: every consumer
    treats the default answer as a low-confidence, unknown-type response.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "document_type": "unknown",
        "confidence": 0.0,
        "reasoning": "example adapter",
    }

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

    async def generate(
        self,
        prompt: str,
        config: ModelConfig,
        *,
        system_prompt: str = "",
        json_output: bool = True,
        attachment: PdfAttachment | None = None,
    ) -> str:
        _ = prompt, config, system_prompt, json_output, attachment
        return json.dumps(self._response)
