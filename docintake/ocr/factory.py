from docintake.config.settings import Settings
from docintake.ocr.client_base import BaseOcrClient
from docintake.ocr.example_client_adapter import ExampleOcrClientAdapter
from docintake.ocr.openai_vision_adapter import OpenAIVisionOcrAdapter


class OcrClientFactory:
    """Creates the configured OCR client."""

    PROVIDERS = ("example", "openai")

    @classmethod
    def create(cls, settings: Settings) -> BaseOcrClient:
        provider = settings.ocr_provider.lower()
        if provider == "example":
            return ExampleOcrClientAdapter()
        if provider == "openai":
            return OpenAIVisionOcrAdapter(
                api_key=settings.ocr_api_key,
                model=settings.ocr_model_name,
                timeout_seconds=settings.ocr_timeout_seconds,
                render_dpi=settings.ocr_render_dpi,
                base_url=settings.ocr_base_url.strip() or None,
            )
        raise ValueError(
            f"Unknown OCR provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
