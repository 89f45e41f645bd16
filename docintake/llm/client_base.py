from abc import ABC, abstractmethod

from docintake.llm.models import ModelConfig, PdfAttachment


class BaseLlmClient(ABC):
    """Contract for provider-specific language-model clients."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        config: ModelConfig,
        *,
        system_prompt: str = "",
        json_output: bool = True,
        attachment: PdfAttachment | None = None,
    ) -> str:
        """Return provider response as plain text.

        Raises:
            LlmTimeoutError: if the call exceeds ``config.timeout_seconds``.
            LlmProviderError: on network or API failures.
            LlmEmptyResponseError: if the provider returns no content.
        """

    @property
    def is_configured(self) -> bool:
        """Whether credentials are present for this client."""
        return True
