from docintake.llm.client_base import BaseLlmClient
from docintake.llm.factory import LlmClientFactory
from docintake.llm.models import ModelConfig, PdfAttachment

__all__ = ["BaseLlmClient", "LlmClientFactory", "ModelConfig", "PdfAttachment"]
