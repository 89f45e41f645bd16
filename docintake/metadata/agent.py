from typing import Any

from docintake.llm.client_base import BaseLlmClient
from docintake.llm.exceptions import (
    LlmEmptyResponseError,
    LlmError,
    LlmProviderError,
    LlmResponseFormatError,
    LlmTimeoutError,
)
from docintake.llm.json_parsing import parse_json_object
from docintake.llm.models import ModelConfig
from docintake.llm.prompt_loader import load_prompt_template
from docintake.logging.logger import Log
from docintake.metadata.exceptions import MetadataExtractionError
from docintake.registry.models import DocumentTypeConfig
from docintake.resilience.retry import RetryPolicy, retry_async

RETRYABLE_LLM_ERRORS: tuple[type[LlmError], ...] = (
    LlmTimeoutError,
    LlmProviderError,
    LlmEmptyResponseError,
    LlmResponseFormatError,
)


class MetadataExtractionAgent:
    """Asks the language model for a document type's structured fields."""

    MAX_TEXT_CHARS = 60_000

    def __init__(
        self,
        *,
        client: BaseLlmClient,
        model_config: ModelConfig,
        retry_policy: RetryPolicy,
        prompt_template: str | None = None,
    ) -> None:
        self._client = client
        self._model_config = model_config
        self._retry_policy = retry_policy
        self._prompt_template = prompt_template or load_prompt_template("extraction_prompt.txt")

    async def extract(
        self, config: DocumentTypeConfig, field_names: list[str], text: str
    ) -> dict[str, Any]:
        """Return the raw field values proposed by the model.

        Raises:
            MetadataExtractionError: when every attempt failed.
        """
        prompt = self._prompt_template.format(
            agent_name=config.agent_name,
            display_name=config.display_name,
            fields="\n".join(f"- {name}" for name in field_names),
            text=text[: self.MAX_TEXT_CHARS],
        )

        async def call() -> dict[str, Any]:
            raw = await self._client.generate(prompt, self._model_config)
            return parse_json_object(raw)

        try:
            data = await retry_async(
                call,
                policy=self._retry_policy,
                retry_on=RETRYABLE_LLM_ERRORS,
                description=f"Agent {config.agent_name}",
            )
        except LlmError as exc:
            raise MetadataExtractionError(f"Agent {config.agent_name} failed: {exc}") from exc
        Log.info(f"Agent {config.agent_name} returned {len(data)} fields")
        return data
