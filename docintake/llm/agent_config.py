from docintake.config.settings import Settings
from docintake.llm.models import ModelConfig


class AgentModelConfigs:
    """Resolves generation settings per agent.

    Structured-extraction agents produce long nested answers and get the larger
    token budget; the classifier has its own budget and a shorter timeout.
    """

    CLASSIFIER_TIMEOUT_SECONDS = 30.0

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def for_extraction_agent(self) -> ModelConfig:
        return ModelConfig(
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.llm_complex_max_tokens,
            timeout_seconds=float(self._settings.llm_timeout_seconds),
        )

    def for_classifier(self) -> ModelConfig:
        return ModelConfig(
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.llm_classifier_max_tokens,
            timeout_seconds=min(
                self.CLASSIFIER_TIMEOUT_SECONDS, float(self._settings.llm_timeout_seconds)
            ),
        )

    def for_boundary_analysis(self) -> ModelConfig:
        return ModelConfig(
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.llm_complex_max_tokens,
            timeout_seconds=float(self._settings.llm_timeout_seconds),
        )
